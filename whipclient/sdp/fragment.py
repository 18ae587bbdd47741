"""
Trickle-ICE SDP fragment codec.

Outgoing fragments follow the ``application/trickle-ice-sdpfrag`` layout:
the two ICE credential lines, then one synthetic media block per mid that
carries candidates.  Incoming restart answers are folded back into the
current remote description through :class:`SdpDocument`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Sequence

from ..errors import SdpParseError
from .description import CRLF, SdpDocument, ice_credentials

if TYPE_CHECKING:
    from ..rtc.peer import Transceiver
    from ..rtc.webrtc import ICECandidate, SessionDescription

LOG = logging.getLogger(__name__)

TRICKLE_MEDIA_LINE = "m={kind} 9 UDP/TLS/RTP/SAVPF 0"
END_OF_CANDIDATES = "a=end-of-candidates"


@dataclass
class MediaFragmentGroup:
    mid: str
    kind: str
    candidates: List["ICECandidate"] = field(default_factory=list)


def candidate_attribute(candidate: str) -> str:
    """Render a candidate string as an ``a=candidate:`` line."""

    value = candidate.strip()
    if value.startswith("a="):
        value = value[2:]
    if not value.startswith("candidate:"):
        value = "candidate:" + value
    return "a=" + value


def group_candidates(
    transceivers: Sequence["Transceiver"],
    candidates: Sequence["ICECandidate"],
    end_of_candidates: bool,
) -> List[MediaFragmentGroup]:
    """
    Attribute each candidate to its transceiver's media kind by mid.

    Whenever there is trickle data at all, the first transceiver gets a
    group even if it received no candidates, so a lone end-of-candidates
    marker still has a media block to ride on.
    """

    groups: Dict[str, MediaFragmentGroup] = {}
    if not (candidates or end_of_candidates):
        return []

    if transceivers:
        first = transceivers[0]
        if first.mid is not None:
            groups[first.mid] = MediaFragmentGroup(mid=first.mid, kind=first.kind)

    by_mid = {t.mid: t for t in transceivers if t.mid is not None}
    for candidate in candidates:
        mid = candidate.sdp_mid
        if mid is None:
            if not transceivers or transceivers[0].mid is None:
                LOG.warning("Dropping candidate without mid: %s", candidate.candidate)
                continue
            mid = transceivers[0].mid
        group = groups.get(mid)
        if group is None:
            transceiver = by_mid.get(mid)
            if transceiver is not None:
                kind = transceiver.kind
            elif transceivers:
                LOG.debug("No transceiver for mid %s; using first transceiver kind", mid)
                kind = transceivers[0].kind
            else:
                kind = "audio"
            group = groups[mid] = MediaFragmentGroup(mid=mid, kind=kind)
        group.candidates.append(candidate)
    return list(groups.values())


def build_fragment(
    username: str,
    password: str,
    media_groups: Sequence[MediaFragmentGroup],
    end_of_candidates: bool,
) -> str:
    lines = [f"a=ice-ufrag:{username}", f"a=ice-pwd:{password}"]
    for group in media_groups:
        lines.append(TRICKLE_MEDIA_LINE.format(kind=group.kind))
        lines.append(f"a=mid:{group.mid}")
        lines.extend(candidate_attribute(c.candidate) for c in group.candidates)
        if end_of_candidates:
            lines.append(END_OF_CANDIDATES)
    return CRLF.join(lines) + CRLF


def parse_candidates(sdp: str) -> List[str]:
    """Return every ``a=candidate:`` line of ``sdp``."""

    return SdpDocument.parse(sdp).candidate_lines()


def merge_restart_answer(
    remote_description: "SessionDescription", answer_body: str
) -> "SessionDescription":
    """
    Fold an ICE restart answer into ``remote_description``.

    The answer's credentials overwrite every ``a=ice-ufrag``/``a=ice-pwd``
    line, every previous candidate is dropped, and the answer's candidates
    are inserted right after each ``m=`` line.
    """

    try:
        username, password = ice_credentials(answer_body)
    except SdpParseError as exc:
        raise SdpParseError(f"ICE restart answer unusable: {exc}") from exc
    candidates = parse_candidates(answer_body)

    document = SdpDocument.parse(remote_description.sdp)
    document.replace_attribute("ice-ufrag", username)
    document.replace_attribute("ice-pwd", password)
    document.remove_attribute("candidate")
    document.insert_after_media_lines(candidates)

    remote_description.sdp = document.to_sdp()
    return remote_description


__all__ = [
    "MediaFragmentGroup",
    "build_fragment",
    "candidate_attribute",
    "group_candidates",
    "merge_restart_answer",
    "parse_candidates",
]
