"""
Client configuration and YAML profile loading.

A profile file maps profile names to :class:`ClientConfig` fields::

    default:
      endpoint: https://whip.example.com/whip/endpoint
      token: secret
    lab:
      endpoint: http://127.0.0.1:8080/whip
      timeout: 5
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, validator

DEFAULT_PROFILE = "default"
DEFAULT_USER_AGENT = "whipclient/0.1"


class ClientConfig(BaseModel):
    endpoint: Optional[str] = None
    token: Optional[str] = None
    timeout: Optional[float] = None
    user_agent: str = Field(default=DEFAULT_USER_AGENT, alias="userAgent")
    headers: Dict[str, str] = Field(default_factory=dict)
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @validator("timeout", pre=True)
    def _validate_timeout(cls, value: object) -> Optional[float]:
        if value is None:
            return None
        coerced = float(value)
        if coerced <= 0:
            raise ValueError("timeout must be positive")
        return coerced

    @validator("token", pre=True)
    def _blank_token(cls, value: object) -> Optional[str]:
        text = str(value).strip() if value is not None else ""
        return text or None

    def request_headers(self) -> Dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        headers.update(self.headers)
        return headers


def load_config(path: Union[str, Path], profile: str = DEFAULT_PROFILE) -> ClientConfig:
    """
    Load ``profile`` from a YAML profile file.

    Raises ``KeyError`` when the profile is not defined.
    """

    with Path(path).open("r", encoding="utf-8") as handle:
        profiles = yaml.safe_load(handle) or {}
    if not isinstance(profiles, dict):
        raise ValueError(f"{path}: expected a mapping of profiles")
    if profile not in profiles:
        raise KeyError(f"profile {profile!r} not found in {path}")
    return ClientConfig.model_validate(profiles[profile] or {})


__all__ = ["ClientConfig", "DEFAULT_PROFILE", "load_config"]
