"""Logging configuration for the devcoord CLI."""

import logging
from enum import IntEnum
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler


class LogLevel(IntEnum):
    """Log level enumeration."""

    QUIET = logging.WARNING
    NORMAL = logging.INFO
    VERBOSE = logging.DEBUG


def configure_logging(
    verbosity: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    stream: TextIO | None = None,
) -> Console:
    """Configure logging based on CLI options.

    Outcome lines from coordination operations go to ``stream`` through a
    Rich handler, keeping stdout free for machine-readable results.

    Args:
        verbosity: Number of -v flags (1 adds wait-loop detail, 2 adds timestamps)
        quiet: Only warnings and errors, overriding verbosity
        no_color: Disable colored output
        stream: Output stream for logs, defaults to stderr

    Returns:
        Console for human-readable output on stdout
    """
    if quiet:
        level = LogLevel.QUIET
    elif verbosity >= 1:
        level = LogLevel.VERBOSE
    else:
        level = LogLevel.NORMAL

    log_console = Console(
        file=stream,
        stderr=stream is None,
        force_terminal=False if no_color else None,
        no_color=no_color,
    )

    handler = RichHandler(
        console=log_console,
        show_time=verbosity >= 2,
        show_path=verbosity >= 2,
        show_level=verbosity >= 1,
        markup=False,
    )

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )

    return Console(no_color=no_color, highlight=False)
