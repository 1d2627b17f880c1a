"""Console logging for the vouch CLI.

Library modules only create loggers with ``logging.getLogger(__name__)``;
handlers are installed here, once, by the command line entry point.
"""

from __future__ import annotations

import logging
from typing import Literal, TypeAlias

from rich.console import Console
from rich.logging import RichHandler

PROJECT_PREFIX = "vouch"

ColorSystem: TypeAlias = Literal["auto", "standard", "256", "truecolor", "windows"]


class ThirdPartyPrefixFilter(logging.Filter):
    """Prefix records from other libraries with their top-level package."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not record.name.startswith(PROJECT_PREFIX):
            record.prefix = f"[{record.name.split('.')[0]}] "
        else:
            record.prefix = ""
        return True


def parse_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level: {name}")
    return level


def config_console_handler(
    level: int = logging.WARNING, debug_mode: bool = False, color: bool = True
) -> RichHandler:
    """Build a stderr RichHandler.

    Debug mode forces DEBUG and shows the emitting file and line.
    """
    color_system: ColorSystem | None = "auto" if color else None
    console = Console(color_system=color_system, stderr=True)

    if debug_mode:
        level = logging.DEBUG

    handler = RichHandler(
        level=level,
        console=console,
        rich_tracebacks=True,
        show_time=False,
        show_path=debug_mode,
        enable_link_path=debug_mode,
    )
    fmt = "%(prefix)s%(message)s" if not debug_mode else "%(asctime)s %(name)s: %(message)s"
    handler.setFormatter(logging.Formatter(fmt=fmt))
    if not debug_mode:
        handler.addFilter(ThirdPartyPrefixFilter())
    return handler


def configure_logging(level: int = logging.WARNING, debug_mode: bool = False) -> RichHandler:
    """Replace the root handlers with a single console handler."""
    handler = config_console_handler(level=level, debug_mode=debug_mode)
    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, RichHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(handler.level)
    return handler
