"""
SDP helpers.
"""

from __future__ import annotations

from .description import SdpDocument, ice_credentials
from .fragment import (
    MediaFragmentGroup,
    build_fragment,
    group_candidates,
    merge_restart_answer,
    parse_candidates,
)

__all__ = [
    "MediaFragmentGroup",
    "SdpDocument",
    "build_fragment",
    "group_candidates",
    "ice_credentials",
    "merge_restart_answer",
    "parse_candidates",
]
