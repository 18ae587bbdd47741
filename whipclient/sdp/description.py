"""
Line-oriented SDP document model.

An SDP body is kept as its session-level lines followed by one section per
``m=`` line.  Only attribute lines are ever rewritten; every other line is
carried through verbatim so re-serialising an untouched document yields the
same text (modulo line endings, which are always normalised to CRLF).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple

from ..errors import SdpParseError

CRLF = "\r\n"


def _attribute_name(line: str) -> Optional[str]:
    if not line.startswith("a="):
        return None
    return line[2:].split(":", 1)[0]


def _attribute_value(line: str) -> str:
    _, _, value = line.partition(":")
    return value.strip()


@dataclass
class MediaSection:
    """One ``m=`` line and the lines that follow it up to the next section."""

    lines: List[str] = field(default_factory=list)

    @property
    def media_line(self) -> str:
        return self.lines[0]

    @property
    def kind(self) -> str:
        return self.media_line[2:].split(" ", 1)[0]

    @property
    def mid(self) -> Optional[str]:
        for line in self.lines:
            if _attribute_name(line) == "mid":
                return _attribute_value(line)
        return None


@dataclass
class SdpDocument:
    session_lines: List[str] = field(default_factory=list)
    media: List[MediaSection] = field(default_factory=list)

    @classmethod
    def parse(cls, sdp: str) -> "SdpDocument":
        document = cls()
        for raw in sdp.splitlines():
            line = raw.strip()
            if not line:
                continue
            if line.startswith("m="):
                document.media.append(MediaSection([line]))
            elif document.media:
                document.media[-1].lines.append(line)
            else:
                document.session_lines.append(line)
        return document

    def to_sdp(self) -> str:
        lines = list(self.session_lines)
        for section in self.media:
            lines.extend(section.lines)
        return CRLF.join(lines) + CRLF if lines else ""

    # ------------------------------------------------------------------ queries

    def _blocks(self) -> Iterator[List[str]]:
        yield self.session_lines
        for section in self.media:
            yield section.lines

    def attributes(self, name: str) -> List[str]:
        """Values of every ``a=<name>`` line in document order."""

        return [
            _attribute_value(line)
            for block in self._blocks()
            for line in block
            if _attribute_name(line) == name
        ]

    def attribute(self, name: str) -> Optional[str]:
        values = self.attributes(name)
        return values[0] if values else None

    def candidate_lines(self) -> List[str]:
        return [
            line for block in self._blocks() for line in block if _attribute_name(line) == "candidate"
        ]

    # ---------------------------------------------------------------- mutations

    def replace_attribute(self, name: str, value: str) -> int:
        """Rewrite the value of every ``a=<name>`` line, returning how many changed."""

        count = 0
        for block in self._blocks():
            for index, line in enumerate(block):
                if _attribute_name(line) == name:
                    block[index] = f"a={name}:{value}"
                    count += 1
        return count

    def remove_attribute(self, name: str) -> int:
        count = 0
        for block in self._blocks():
            kept = [line for line in block if _attribute_name(line) != name]
            count += len(block) - len(kept)
            block[:] = kept
        return count

    def insert_after_media_lines(self, lines: Iterable[str]) -> None:
        extra = list(lines)
        for section in self.media:
            section.lines[1:1] = extra


def ice_credentials(sdp: str) -> Tuple[str, str]:
    """
    Return the first ``(ice-ufrag, ice-pwd)`` pair found in ``sdp``.
    """

    document = SdpDocument.parse(sdp)
    username = document.attribute("ice-ufrag")
    password = document.attribute("ice-pwd")
    if not username or not password:
        raise SdpParseError("SDP is missing a=ice-ufrag/a=ice-pwd attributes")
    return username, password


__all__ = ["CRLF", "MediaSection", "SdpDocument", "ice_credentials"]
