"""Logging setup — Rich handler on stderr, level from config or env."""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from typing import Generator, Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV = "QRAFTBOX_LOG_LEVEL"
FALLBACK_LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"

_LEVEL_ALIASES = {"warn": "WARNING"}


def resolve_level(level: Optional[str] = None) -> int:
    """Map a level name (or the env vars) to a logging level, defaulting to WARNING."""
    name = (
        level
        or os.environ.get(LOG_LEVEL_ENV)
        or os.environ.get(FALLBACK_LOG_LEVEL_ENV)
        or DEFAULT_LOG_LEVEL
    ).strip()
    name = _LEVEL_ALIASES.get(name.lower(), name.upper())
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.WARNING


def setup_logging(level: Optional[str] = None, console: Optional[Console] = None) -> None:
    """Configure the ``qraftbox`` logger hierarchy.

    Args:
        level: Level name override. If not provided, uses QRAFTBOX_LOG_LEVEL,
            then LOG_LEVEL, then WARNING.
        console: Console to log through; defaults to a stderr console.
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    root = logging.getLogger("qraftbox")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(resolve_level(level))
    root.propagate = False


@contextmanager
def log_timing(
    logger: logging.Logger, operation: str, level: int = logging.DEBUG
) -> Generator[None, None, None]:
    """Log how long the wrapped block took.

    Example:
        with log_timing(logger, "git diff"):
            result = execute(["diff"], repo_root)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        logger.log(level, "%s completed in %.1fms", operation, duration_ms)
