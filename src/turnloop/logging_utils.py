"""Runtime logging helpers."""

from __future__ import annotations

import os
import sys
from typing import Any, Literal

from loguru import logger
from rich import get_console
from rich.logging import RichHandler

LogProfile = Literal["default", "cli"]

NO_TURN = "-"
_TURN_PREFIX = "{extra[turn]} | {message}"
_CONFIGURED_PROFILE: LogProfile | None = None


def _sink_options(profile: LogProfile) -> dict[str, Any]:
    if profile == "cli":
        # Rich renders the level column itself.
        handler = RichHandler(console=get_console(), show_time=False, show_path=False, markup=False)
        return {"sink": handler, "format": _TURN_PREFIX}
    return {
        "sink": sys.stderr,
        "format": "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<6} | {name}:{line} | " + _TURN_PREFIX,
    }


def configure_logging(*, profile: LogProfile = "default", level: str | None = None) -> None:
    """Route loguru output once per profile, tagging records with the turn id."""
    global _CONFIGURED_PROFILE
    if profile == _CONFIGURED_PROFILE:
        return

    logger.remove()
    logger.configure(extra={"turn": NO_TURN})
    logger.add(
        level=(level or os.getenv("TURNLOOP_LOG_LEVEL", "INFO")).upper(),
        backtrace=False,
        diagnose=False,
        **_sink_options(profile),
    )
    _CONFIGURED_PROFILE = profile
