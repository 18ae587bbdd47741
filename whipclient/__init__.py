"""
WHIP (WebRTC-HTTP Ingestion Protocol) publishing client.

The package implements the signalling side of a WHIP publisher: the SDP
offer/answer exchange, trickle ICE PATCH requests, ICE restarts and session
teardown.  Media transport is delegated to any object implementing
:class:`whipclient.rtc.PeerConnection`.
"""

from __future__ import annotations

from .client import WHIPClient
from .config import ClientConfig, load_config
from .errors import (
    AlreadyPublishingError,
    MalformedResponseError,
    NotPublishingError,
    PatchRejectedError,
    ResourceNotReadyError,
    SdpParseError,
    SignalingRejectedError,
    WHIPError,
)
from .rtc import ICECandidate, PeerConnection, Session, SessionDescription
from .signaling import IceServerConfig, PeerConfiguration

__all__ = [
    "AlreadyPublishingError",
    "ClientConfig",
    "ICECandidate",
    "IceServerConfig",
    "MalformedResponseError",
    "NotPublishingError",
    "PatchRejectedError",
    "PeerConfiguration",
    "PeerConnection",
    "ResourceNotReadyError",
    "SdpParseError",
    "Session",
    "SessionDescription",
    "SignalingRejectedError",
    "WHIPClient",
    "WHIPError",
    "load_config",
]
