"""Logging setup for the sidecar process.

Call ``setup()`` once at the top of ``main()``. Logs go to stderr
because stdout carries the request/response stream.
"""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_ENV = "DRIPTRACKER_LOG_LEVEL"

_LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def resolve_level(*, verbose: bool = False) -> int:
    """Pick the root log level.

    ``verbose`` wins; otherwise ``DRIPTRACKER_LOG_LEVEL`` (a level name
    such as ``WARNING``) is used, falling back to INFO when unset or
    unrecognized.
    """
    if verbose:
        return logging.DEBUG
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(name) if name else logging.INFO
    return level if isinstance(level, int) else logging.INFO


def setup(*, verbose: bool = False) -> None:
    """Configure the root logger with ISO-8601 timestamps on stderr."""
    logging.basicConfig(
        level=resolve_level(verbose=verbose),
        format=_LOG_FORMAT,
        datefmt=_DATE_FORMAT,
        stream=sys.stderr,
        force=True,
    )
