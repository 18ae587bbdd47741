"""
In-memory WHIP session state.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from ..signaling.schemas import IceServerConfig
    from .peer import PeerConnection


@dataclass
class ICECandidate:
    """Serialisable ICE candidate container."""

    candidate: str
    sdp_mid: Optional[str] = None
    sdp_mline_index: Optional[int] = None


@dataclass
class SessionDescription:
    type: str
    sdp: str


@dataclass
class CandidateBatch:
    """Candidates and end-of-candidates marker waiting for the next PATCH."""

    candidates: List[ICECandidate] = field(default_factory=list)
    end_of_candidates: bool = False

    def __bool__(self) -> bool:
        return bool(self.candidates) or self.end_of_candidates


@dataclass(frozen=True, eq=False)
class RestartMarker:
    """
    Token identifying one in-flight ICE restart.

    Markers compare by identity, so a restart only ever clears its own marker.
    """

    started_at: float = field(default_factory=time.monotonic)


@dataclass
class Session:
    """
    Tracks the state of one published WHIP session.

    ``resource_url`` is assigned once, right after the create request
    succeeds.  ``etag`` only changes when an ICE restart answer carries one.
    """

    peer: Optional["PeerConnection"]
    endpoint: str
    token: Optional[str] = None
    resource_url: Optional[str] = None
    etag: Optional[str] = None
    local_ice_username: Optional[str] = None
    local_ice_password: Optional[str] = None
    restart_marker: Optional[RestartMarker] = None
    ice_servers: List["IceServerConfig"] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.peer is not None


__all__ = ["CandidateBatch", "ICECandidate", "RestartMarker", "Session", "SessionDescription"]
