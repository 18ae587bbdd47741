"""
Capability interface expected from the media transport engine.

The WHIP client never gathers candidates or runs DTLS itself.  It drives any
object that satisfies :class:`PeerConnection`; adapters for a concrete WebRTC
stack live outside this package.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence

from ..signaling.schemas import PeerConfiguration
from .webrtc import ICECandidate, SessionDescription

ICE_CANDIDATE_EVENT = "icecandidate"
CONNECTION_STATE_EVENT = "connectionstatechange"

CandidateCallback = Callable[[Optional[ICECandidate]], None]
StateCallback = Callable[[str], None]


class Transceiver(Protocol):
    mid: Optional[str]
    kind: str


class PeerConnection(Protocol):
    connection_state: str
    remote_description: Optional[SessionDescription]

    async def create_offer(self, *, ice_restart: bool = False) -> SessionDescription: ...

    async def set_local_description(self, description: SessionDescription) -> None: ...

    async def set_remote_description(self, description: SessionDescription) -> None: ...

    def get_transceivers(self) -> Sequence[Transceiver]: ...

    def restart_ice(self) -> None: ...

    def get_configuration(self) -> PeerConfiguration: ...

    def set_configuration(self, configuration: PeerConfiguration) -> None: ...

    def on(self, event: str, callback: Callable[..., None]) -> None:
        """
        Register ``callback`` for ``icecandidate`` (called with an
        :class:`ICECandidate`, or ``None`` once gathering completes) or
        ``connectionstatechange`` (called with the new state string).
        """

    async def close(self) -> None: ...


__all__ = [
    "CONNECTION_STATE_EVENT",
    "CandidateCallback",
    "ICE_CANDIDATE_EVENT",
    "PeerConnection",
    "StateCallback",
    "Transceiver",
]
