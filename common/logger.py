"""
Process-wide logging setup. Every module asks for a named logger here.
"""

from __future__ import annotations

import logging
import os
import sys

_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return
    level_name = (os.environ.get("LOGLEVEL") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root = logging.getLogger("rovcore")
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a child of the ``rovcore`` logger, configuring output on first use."""
    _configure_root()
    return logging.getLogger(f"rovcore.{name}")


__all__ = ["get_logger"]
