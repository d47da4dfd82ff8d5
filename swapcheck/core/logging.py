"""
swapcheck — Logging configuration.

``configure_logging()`` is called by the CLI before the database is opened.
Log records go to stderr; stdout carries only the JSON run summary.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional

from swapcheck import config


_CONFIGURED = False

# pymongo logs topology heartbeats and every command at DEBUG.
_NOISY_LOGGERS = ("pymongo", "pymongo.command", "pymongo.topology", "pymongo.connection")


def resolve_level(name: Optional[str]) -> int:
    """``"debug"`` -> ``logging.DEBUG``; unknown names fall back to INFO."""
    level = logging.getLevelName((name or config.LOG_LEVEL).strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    level: Optional[str] = None,
    stream: Optional[IO[str]] = None,
    fmt: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt: str = "%Y-%m-%d %H:%M:%S",
) -> None:
    """Configure the root logger once per process.

    Parameters
    ----------
    level:
        Level name from ``--log-level``; ``config.LOG_LEVEL`` when omitted.
    stream:
        Handler stream, stderr by default.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    root = logging.getLogger()
    root.setLevel(resolve_level(level))

    if not root.handlers:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
        root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _CONFIGURED = True
