"""
Logging setup for applications embedding scmkit.

The library itself only emits records through ``logging.getLogger``; it
never configures handlers on import.
"""

import logging
from enum import Enum

from rich.console import Console
from rich.logging import RichHandler

error_console = Console(stderr=True)

# Third-party loggers that log every HTTP exchange at INFO or DEBUG.
HTTP_LOGGERS = ("httpx", "httpcore")


class LogLevel(str, Enum):
    """Log level options."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def setup_logging(
    level: LogLevel | str = LogLevel.WARNING,
    verbose: bool = False,
    console: Console | None = None,
) -> None:
    """
    Route log records to a Rich handler on stderr.

    Args:
        level: Level for the root logger
        verbose: Log at DEBUG, including the HTTP client's own records
        console: Console to render to instead of stderr
    """
    log_level = logging.DEBUG if verbose else getattr(logging, LogLevel(level).value.upper())

    handler = RichHandler(
        console=console or error_console,
        show_time=False,
        show_path=False,
        markup=False,
    )
    logging.basicConfig(level=log_level, format="%(message)s", handlers=[handler], force=True)

    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)
