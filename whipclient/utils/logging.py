"""
Logging setup for processes that embed the WHIP client.

Library modules only log through ``logging.getLogger(__name__)``; call
:func:`configure_logging` from entry points that own the process.
"""

from __future__ import annotations

import logging
import sys
from typing import Iterable, Optional

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"

# httpx logs every request at INFO; the client already logs what matters.
NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(
    level: int = logging.INFO,
    format: Optional[str] = None,
    noisy: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure the root logger once and tame chatty transport loggers.

    Existing root handlers are left alone.  ``noisy`` loggers are capped at
    WARNING unless ``level`` asks for DEBUG output.
    """

    if level > logging.DEBUG:
        for name in noisy:
            logging.getLogger(name).setLevel(logging.WARNING)

    if logging.getLogger().handlers:
        return

    logging.basicConfig(
        level=level,
        format=format or DEFAULT_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
