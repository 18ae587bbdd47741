"""
``Link`` response header parsing.

WHIP endpoints advertise STUN/TURN servers as ``rel="ice-server"`` links::

    Link: <turn:turn.example.net?transport=udp>; rel="ice-server";
          username="user"; credential="secret"; credential-type="password"
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .schemas import IceServerConfig, normalise_key

LOG = logging.getLogger(__name__)

ICE_SERVER_REL = "ice-server"

# Only split on commas that start a new <url> entry.
_ENTRY_SPLIT = re.compile(r",\s*(?=<)")


@dataclass
class LinkEntry:
    relation: str
    url: str
    params: Dict[str, str] = field(default_factory=dict)


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    return value


def parse_link_entry(entry: str) -> Optional[LinkEntry]:
    """
    Parse a single ``<url>; key=value`` element.

    Returns ``None`` when the element carries no ``rel`` parameter.
    """

    target, *parts = entry.split(";")
    target = target.strip()
    if not (target.startswith("<") and target.endswith(">")):
        raise ValueError(f"Link target not enclosed in angle brackets: {target!r}")
    url = target[1:-1].strip()
    if not url:
        raise ValueError("Link target is empty")

    relation: Optional[str] = None
    params: Dict[str, str] = {}
    for part in parts:
        if not part.strip():
            continue
        key, sep, value = part.partition("=")
        key = key.strip()
        if not key:
            raise ValueError(f"Link parameter without a name: {part!r}")
        value = _unquote(value) if sep else ""
        if key.lower() == "rel":
            relation = value
        else:
            params[key] = value

    if not relation:
        return None
    return LinkEntry(relation=relation, url=url, params=params)


def parse_link_header(header_value: Optional[str]) -> Dict[str, List[LinkEntry]]:
    """
    Group the entries of a ``Link`` header by relation.

    A malformed entry is logged and skipped; the rest of the header is still
    parsed.
    """

    links: Dict[str, List[LinkEntry]] = {}
    if not header_value:
        return links
    for raw in _ENTRY_SPLIT.split(header_value.strip()):
        if not raw.strip():
            continue
        try:
            entry = parse_link_entry(raw)
        except Exception:
            LOG.warning("Ignoring malformed Link entry %r", raw, exc_info=True)
            continue
        if entry is None:
            continue
        links.setdefault(entry.relation, []).append(entry)
    return links


def ice_servers_from_links(links: Dict[str, List[LinkEntry]]) -> List[IceServerConfig]:
    servers: List[IceServerConfig] = []
    for entry in links.get(ICE_SERVER_REL, []):
        fields = {normalise_key(key): value for key, value in entry.params.items()}
        fields.pop("urls", None)
        try:
            servers.append(IceServerConfig(urls=entry.url, **fields))
        except ValueError:
            LOG.warning("Ignoring unusable ice-server link %s", entry.url, exc_info=True)
    return servers


__all__ = [
    "ICE_SERVER_REL",
    "LinkEntry",
    "ice_servers_from_links",
    "parse_link_entry",
    "parse_link_header",
]
