"""
Trickle ICE candidate scheduling.

Candidates discovered by the peer are accumulated in a :class:`CandidateBatch`
and flushed to the session resource with a PATCH.  Bursts discovered within
one loop iteration are coalesced into a single request by deferring the flush
with ``loop.call_soon``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from ..errors import PatchRejectedError
from ..sdp.fragment import build_fragment, group_candidates, merge_restart_answer
from ..signaling.resource import TRICKLE_UNSUPPORTED, ResourceClient
from .webrtc import CandidateBatch, ICECandidate, RestartMarker, Session, SessionDescription

LOG = logging.getLogger(__name__)


class CandidateScheduler:
    """
    Owns the pending candidate batch of one session and its PATCH dispatch.

    At most one PATCH is in flight at a time; concurrent triggers wait their
    turn and then send whatever is pending by then.
    """

    def __init__(
        self,
        session: Session,
        resource: ResourceClient,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.session = session
        self.resource = resource
        self._loop = loop if loop is not None else asyncio.get_running_loop()
        self._batch = CandidateBatch()
        self._timer: Optional[asyncio.Handle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._lock = asyncio.Lock()
        # Until the answer is applied only the first m-line's transport exists.
        self._first_mline_only = True

    # ------------------------------------------------------------------ state

    @property
    def pending(self) -> CandidateBatch:
        return self._batch

    @property
    def scheduled(self) -> bool:
        return self._timer is not None

    def mark_answered(self) -> None:
        self._first_mline_only = False

    def clear(self) -> None:
        self._batch = CandidateBatch()

    # ----------------------------------------------------------------- events

    def on_candidate(self, candidate: Optional[ICECandidate]) -> None:
        """
        Peer ``icecandidate`` observer.

        Safe to call from a foreign thread; the event is then handed over to
        the scheduler's loop before touching the batch.
        """

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._record(candidate)
        else:
            self._loop.call_soon_threadsafe(self._record, candidate)

    def _record(self, candidate: Optional[ICECandidate]) -> None:
        if candidate is None:
            self._batch.end_of_candidates = True
        elif self._first_mline_only and (candidate.sdp_mline_index or 0) > 0:
            LOG.debug("Skipping candidate for m-line %s", candidate.sdp_mline_index)
            return
        else:
            self._batch.candidates.append(candidate)

        if self._timer is None and self.session.restart_marker is None:
            self.schedule()

    # ------------------------------------------------------------- scheduling

    def schedule(self) -> None:
        if self._timer is None:
            self._timer = self._loop.call_soon(self._fire)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        task = self._loop.create_task(self._run_deferred())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_deferred(self) -> None:
        try:
            await self.patch()
        except Exception:
            LOG.exception("Deferred trickle patch failed for %s", self.session.resource_url)

    async def wait_idle(self) -> None:
        """Wait until no deferred patch is scheduled or running."""

        while self._timer is not None or self._tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(0)

    # ------------------------------------------------------------------ patch

    async def patch(self) -> None:
        self.cancel()
        async with self._lock:
            await self._patch_locked()

    async def _patch_locked(self) -> None:
        session = self.session
        marker = session.restart_marker
        if not (self._batch or marker) or not session.resource_url:
            return
        peer = session.peer
        if peer is None:
            return

        batch, self._batch = self._batch, CandidateBatch()
        groups = group_candidates(peer.get_transceivers(), batch.candidates, batch.end_of_candidates)
        fragment = build_fragment(
            session.local_ice_username or "",
            session.local_ice_password or "",
            groups,
            batch.end_of_candidates,
        )
        if_match = "*" if marker is not None else session.etag

        LOG.debug(
            "PATCH %s: %d candidates, end=%s, restart=%s",
            session.resource_url,
            len(batch.candidates),
            batch.end_of_candidates,
            marker is not None,
        )
        try:
            response = await self.resource.patch(session.resource_url, fragment, if_match=if_match)
            if not response.ok:
                if response.status not in TRICKLE_UNSUPPORTED:
                    raise PatchRejectedError(response.status)
                LOG.info("Resource does not support trickle ICE (status %s)", response.status)
            elif marker is not None and response.status == 200:
                etag = response.headers.get("etag")
                if etag:
                    session.etag = etag
                if response.body:
                    await self._apply_restart_answer(response.body)
        finally:
            # Candidates gathered while a restart was in flight were held back.
            if self._release(marker) and self._batch:
                self.schedule()

    def _release(self, marker: Optional[RestartMarker]) -> bool:
        if marker is not None and self.session.restart_marker is marker:
            self.session.restart_marker = None
            return True
        return False

    async def _apply_restart_answer(self, answer: str) -> None:
        peer = self.session.peer
        remote = peer.remote_description if peer is not None else None
        if remote is None:
            LOG.warning("ICE restart answer received without a remote description to update")
            return
        merged = merge_restart_answer(SessionDescription(remote.type, remote.sdp), answer)
        await peer.set_remote_description(merged)


__all__ = ["CandidateScheduler"]
