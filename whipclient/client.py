"""
WHIP publishing client.

:class:`WHIPClient` drives one publishing session at a time: it exchanges the
SDP offer/answer with the WHIP endpoint, keeps the session resource updated
with trickled candidates, performs ICE restarts and tears the session down.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Mapping, Optional

import httpx

from .config import ClientConfig
from .errors import (
    AlreadyPublishingError,
    MalformedResponseError,
    NotPublishingError,
    ResourceNotReadyError,
    SignalingRejectedError,
)
from .rtc.peer import CONNECTION_STATE_EVENT, ICE_CANDIDATE_EVENT, PeerConnection
from .rtc.scheduler import CandidateScheduler
from .rtc.webrtc import RestartMarker, Session, SessionDescription
from .sdp.description import ice_credentials
from .signaling.links import LinkEntry, ice_servers_from_links, parse_link_header
from .signaling.resource import ResourceClient, resolve_resource_url

LOG = logging.getLogger(__name__)

SdpTransform = Callable[[str], str]


def _identity(sdp: str) -> str:
    return sdp


class WHIPClient:
    """
    Publish a peer connection to a WHIP endpoint.

    ``on_offer`` and ``on_answer`` let callers rewrite the SDP on its way out
    and in, e.g. to work around endpoint interoperability quirks.
    """

    def __init__(
        self,
        *,
        http: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        headers: Optional[Mapping[str, str]] = None,
        on_offer: Optional[SdpTransform] = None,
        on_answer: Optional[SdpTransform] = None,
        on_connection_state_change: Optional[Callable[[str], None]] = None,
        endpoint: Optional[str] = None,
        token: Optional[str] = None,
    ) -> None:
        self.endpoint = endpoint
        self.token = token
        self.on_offer: SdpTransform = on_offer or _identity
        self.on_answer: SdpTransform = on_answer or _identity
        self.on_connection_state_change = on_connection_state_change
        self._owns_http = http is None
        self._http = http if http is not None else httpx.AsyncClient(timeout=timeout)
        self._headers: Dict[str, str] = dict(headers or {})
        self._session: Optional[Session] = None
        self._resource: Optional[ResourceClient] = None
        self._scheduler: Optional[CandidateScheduler] = None

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs) -> "WHIPClient":
        return cls(
            timeout=config.timeout,
            headers=config.request_headers(),
            endpoint=config.endpoint,
            token=config.token,
            **kwargs,
        )

    async def __aenter__(self) -> "WHIPClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def scheduler(self) -> Optional[CandidateScheduler]:
        return self._scheduler

    def _require_session(self) -> Session:
        if self._session is None or not self._session.is_active:
            raise NotPublishingError("No WHIP session is active")
        return self._session

    # ---------------------------------------------------------------- publish

    async def publish(
        self, peer: PeerConnection, url: Optional[str] = None, token: Optional[str] = None
    ) -> Session:
        """
        Create the session resource and apply the answer to ``peer``.

        ``url`` and ``token`` default to the values the client was built with.
        """

        if self._session is not None:
            raise AlreadyPublishingError("Already publishing")
        url = url or self.endpoint
        if not url:
            raise ValueError("No WHIP endpoint URL given")

        session = Session(peer=peer, endpoint=url, token=token or self.token)
        resource = ResourceClient(token=session.token, http=self._http, headers=self._headers)
        scheduler = CandidateScheduler(session, resource)
        self._session, self._resource, self._scheduler = session, resource, scheduler

        peer.on(CONNECTION_STATE_EVENT, self._handle_connection_state)
        peer.on(ICE_CANDIDATE_EVENT, scheduler.on_candidate)

        offer = await peer.create_offer()
        offer.sdp = self.on_offer(offer.sdp)
        # Parsed from the SDP: transport introspection differs between engines.
        session.local_ice_username, session.local_ice_password = ice_credentials(offer.sdp)

        LOG.info("Publishing to %s", session.endpoint)
        response = await resource.create(session.endpoint, offer.sdp)
        if not response.ok:
            raise SignalingRejectedError(response.status)
        location = response.headers.get("location")
        if not location:
            raise MalformedResponseError("Response missing location header")

        session.resource_url = resolve_resource_url(session.endpoint, location)
        session.etag = response.headers.get("etag")
        self._apply_ice_servers(session, parse_link_header(response.headers.get("link")))

        scheduler.schedule()

        await peer.set_local_description(offer)
        await peer.set_remote_description(
            SessionDescription(type="answer", sdp=self.on_answer(response.body))
        )
        scheduler.mark_answered()
        LOG.info("Session resource created at %s", session.resource_url)
        return session

    def _apply_ice_servers(self, session: Session, links: Dict[str, List[LinkEntry]]) -> None:
        peer = session.peer
        current = peer.get_configuration()
        if current.ice_servers:
            LOG.debug("Peer already has ICE servers configured; ignoring advertised ones")
            return
        servers = ice_servers_from_links(links)
        if not servers:
            return
        peer.set_configuration(current.model_copy(update={"ice_servers": servers}))
        session.ice_servers = servers
        LOG.info("Configured %d ICE server(s) advertised by the endpoint", len(servers))

    def _handle_connection_state(self, state: str) -> None:
        if state in {"disconnected", "failed"}:
            LOG.warning("Peer connection %s", state)
        else:
            LOG.info("Peer connection %s", state)
        if self.on_connection_state_change is not None:
            self.on_connection_state_change(state)

    # ------------------------------------------------------------ maintenance

    async def patch(self) -> None:
        """Send pending trickle data now instead of waiting for the deferred flush."""

        if self._scheduler is not None:
            await self._scheduler.patch()

    async def restart(self) -> None:
        session = self._require_session()
        if not session.resource_url:
            raise ResourceNotReadyError("Cannot restart ICE before the session resource exists")
        scheduler = self._scheduler
        peer = session.peer

        # A restart gathers a fresh set of candidates.
        scheduler.cancel()
        scheduler.clear()

        peer.restart_ice()
        offer = await peer.create_offer(ice_restart=True)
        session.local_ice_username, session.local_ice_password = ice_credentials(offer.sdp)
        await peer.set_local_description(offer)

        session.restart_marker = RestartMarker()
        scheduler.cancel()
        LOG.info("Restarting ICE for %s", session.resource_url)
        await scheduler.patch()

    async def mute(self, muted: bool) -> bool:
        """
        Notify the resource of the mute state.

        Failures are logged, not raised; returns whether the resource
        acknowledged the notification with a success status.
        """

        session = self._require_session()
        if not session.resource_url:
            LOG.warning("Cannot send mute notification before the session resource exists")
            return False
        try:
            response = await self._resource.mute(session.resource_url, muted)
        except httpx.HTTPError:
            LOG.warning("Mute notification to %s failed", session.resource_url, exc_info=True)
            return False
        if not response.ok:
            LOG.warning("Mute notification rejected with status %s", response.status)
        return response.ok

    # ------------------------------------------------------------------- stop

    async def stop(self) -> None:
        session = self._session
        if session is None or session.peer is None:
            return

        self._scheduler.cancel()
        peer = session.peer
        try:
            await peer.close()
        finally:
            session.peer = None
            self._session = None

        if not session.resource_url:
            raise ResourceNotReadyError("WHIP resource url not available yet")

        LOG.info("Deleting session resource %s", session.resource_url)
        response = await self._resource.delete(session.resource_url)
        if not response.ok:
            LOG.warning("DELETE %s returned status %s", session.resource_url, response.status)


__all__ = ["SdpTransform", "WHIPClient"]
