"""
Pydantic schemas for ICE server configuration exchanged with the peer.
"""

from __future__ import annotations

import re
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, validator

_SEPARATORS = re.compile(r"[-_\s]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def normalise_key(key: str) -> str:
    """
    Convert a Link parameter name into a Python identifier.

    ``credential-type``, ``credential_type`` and ``credentialType`` all map to
    ``credential_type``.
    """

    key = _CAMEL_BOUNDARY.sub("_", key.strip())
    return _SEPARATORS.sub("_", key).strip("_").lower()


class IceServerConfig(BaseModel):
    urls: Union[str, List[str]]
    username: Optional[str] = None
    credential: Optional[str] = None
    model_config = ConfigDict(extra="allow")

    @validator("urls", pre=True)
    def _require_urls(cls, value: object) -> object:
        if not value:
            raise ValueError("urls is required")
        return value


class PeerConfiguration(BaseModel):
    ice_servers: List[IceServerConfig] = Field(default_factory=list)
    model_config = ConfigDict(extra="allow")


__all__ = ["IceServerConfig", "PeerConfiguration", "normalise_key"]
