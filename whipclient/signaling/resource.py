"""
HTTP operations against a WHIP endpoint and its session resource.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

import httpx

LOG = logging.getLogger(__name__)

SDP_CONTENT_TYPE = "application/sdp"
TRICKLE_CONTENT_TYPE = "application/trickle-ice-sdpfrag"
JSON_CONTENT_TYPE = "application/json"

# Statuses a resource uses to say it does not implement trickle ICE.
TRICKLE_UNSUPPORTED = frozenset({405, 501})


@dataclass(frozen=True)
class ResourceResponse:
    status: int
    headers: httpx.Headers
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> "ResourceResponse":
        return cls(status=response.status_code, headers=response.headers, body=response.text)


class ResourceClient:
    """
    Thin wrapper over :class:`httpx.AsyncClient` for the WHIP verbs.

    Non-success statuses are returned, not raised; callers decide which ones
    are fatal.  Transport errors (``httpx.HTTPError``) propagate.
    """

    def __init__(
        self,
        *,
        token: Optional[str] = None,
        http: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.token = token
        self._owns_http = http is None
        self._http = http if http is not None else httpx.AsyncClient(timeout=timeout)
        self._static_headers: Dict[str, str] = dict(headers or {})

    async def __aenter__(self) -> "ResourceClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def _headers(self, content_type: Optional[str] = None, **extra: Optional[str]) -> Dict[str, str]:
        headers = dict(self._static_headers)
        if content_type:
            headers["Content-Type"] = content_type
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        for key, value in extra.items():
            if value is not None:
                headers[key.replace("_", "-").title()] = value
        return headers

    async def _send(
        self, method: str, url: str, headers: Dict[str, str], content: Optional[str] = None
    ) -> ResourceResponse:
        LOG.debug("%s %s", method, url)
        response = await self._http.request(method, url, headers=headers, content=content)
        LOG.debug("%s %s -> %s", method, url, response.status_code)
        return ResourceResponse.from_httpx(response)

    async def create(self, endpoint: str, offer_sdp: str) -> ResourceResponse:
        return await self._send("POST", endpoint, self._headers(SDP_CONTENT_TYPE), offer_sdp)

    async def patch(
        self, resource_url: str, fragment: str, *, if_match: Optional[str] = None
    ) -> ResourceResponse:
        headers = self._headers(TRICKLE_CONTENT_TYPE, if_match=if_match)
        return await self._send("PATCH", resource_url, headers, fragment)

    async def delete(self, resource_url: str) -> ResourceResponse:
        return await self._send("DELETE", resource_url, self._headers())

    async def mute(self, resource_url: str, muted: bool) -> ResourceResponse:
        body = json.dumps(bool(muted))
        return await self._send("POST", resource_url, self._headers(JSON_CONTENT_TYPE), body)


def resolve_resource_url(endpoint: str, location: str) -> str:
    """Resolve a (possibly relative) ``Location`` against the endpoint URL."""

    return str(httpx.URL(endpoint).join(location))


__all__ = [
    "ResourceClient",
    "ResourceResponse",
    "TRICKLE_UNSUPPORTED",
    "resolve_resource_url",
]
