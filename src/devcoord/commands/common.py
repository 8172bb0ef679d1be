"""Shared helpers for devcoord CLI commands."""

import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer

from ..config import load_config
from ..core import Coordinator
from ..errors import LockTimeoutError, StoreError
from ..output import get_output_context

# Exit codes
EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ENVIRONMENT = 2

# Config file chosen by the main callback (None means env/defaults)
_config_path: Path | None = None


def set_config_path(path: Path | None) -> None:
    global _config_path
    _config_path = path


def get_coordinator() -> Coordinator:
    """Build a coordinator from the active configuration."""
    return Coordinator.from_config(load_config(_config_path))


def default_pid(pid: int | None) -> int:
    """PID that backs a registration made from the command line.

    The CLI process exits right away, so by default the registration is
    tied to the process that invoked it (the agent's shell).
    """
    return os.getppid() if pid is None else pid


def default_agent_id(agent_id: str | None, pid: int) -> str:
    return agent_id or f"agent-{pid}"


@contextmanager
def handle_errors() -> Iterator[None]:
    """Map coordination failures to CLI errors and exit codes."""
    ctx = get_output_context()
    try:
        yield
    except LockTimeoutError as e:
        ctx.error(str(e), {"kind": "contention"})
        raise typer.Exit(EXIT_FAILED) from None
    except StoreError as e:
        ctx.error(str(e), {"kind": "environment"})
        raise typer.Exit(EXIT_ENVIRONMENT) from None
    except OSError as e:
        # Unreadable config file and similar local failures
        ctx.error(str(e), {"kind": "environment"})
        raise typer.Exit(EXIT_ENVIRONMENT) from None
    except ValueError as e:
        ctx.error(str(e), {"kind": "invalid"})
        raise typer.Exit(EXIT_FAILED) from None
