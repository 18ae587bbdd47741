"""
Error taxonomy raised by the WHIP client.
"""

from __future__ import annotations

from typing import Optional


class WHIPError(RuntimeError):
    """Base class for WHIP client errors."""


class AlreadyPublishingError(WHIPError):
    """Raised when ``publish`` is called while a session already exists."""


class NotPublishingError(WHIPError):
    """Raised when an operation needs a session and none exists."""


class SignalingRejectedError(WHIPError):
    """Raised when the WHIP endpoint answers with a non-success status."""

    def __init__(self, status: int, message: Optional[str] = None) -> None:
        self.status = int(status)
        super().__init__(message or f"Request rejected with status {self.status}")


class PatchRejectedError(SignalingRejectedError):
    """Raised when a trickle/restart PATCH is rejected by the resource."""


class MalformedResponseError(WHIPError):
    """Raised when a response lacks something the protocol makes mandatory."""


class ResourceNotReadyError(WHIPError):
    """Raised when the session resource URL was never obtained."""


class SdpParseError(WHIPError, ValueError):
    """Raised when an SDP body does not carry the expected ICE attributes."""


__all__ = [
    "AlreadyPublishingError",
    "MalformedResponseError",
    "NotPublishingError",
    "PatchRejectedError",
    "ResourceNotReadyError",
    "SdpParseError",
    "SignalingRejectedError",
    "WHIPError",
]
