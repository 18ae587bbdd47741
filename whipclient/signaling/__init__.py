"""
WHIP HTTP signalling: resource operations and Link header handling.
"""

from __future__ import annotations

from .links import LinkEntry, ice_servers_from_links, parse_link_header
from .resource import ResourceClient, ResourceResponse, resolve_resource_url
from .schemas import IceServerConfig, PeerConfiguration

__all__ = [
    "IceServerConfig",
    "LinkEntry",
    "PeerConfiguration",
    "ResourceClient",
    "ResourceResponse",
    "ice_servers_from_links",
    "parse_link_header",
    "resolve_resource_url",
]
