"""
WebRTC collaborator interfaces and trickle ICE scheduling.
"""

from __future__ import annotations

from .peer import PeerConnection, Transceiver
from .scheduler import CandidateScheduler
from .webrtc import CandidateBatch, ICECandidate, RestartMarker, Session, SessionDescription

__all__ = [
    "CandidateBatch",
    "CandidateScheduler",
    "ICECandidate",
    "PeerConnection",
    "RestartMarker",
    "Session",
    "SessionDescription",
    "Transceiver",
]
