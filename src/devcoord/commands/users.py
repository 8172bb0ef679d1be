"""User registration commands."""

import logging

import typer

from ..output import get_output_context
from .common import default_agent_id, default_pid, get_coordinator, handle_errors

logger = logging.getLogger(__name__)


def register(
    agent_id: str | None = typer.Argument(
        None, help="Agent identifier (defaults to agent-<pid>)"
    ),
    pid: int | None = typer.Option(
        None,
        "--pid",
        "-p",
        help="Process whose lifetime backs the registration (defaults to the caller)",
    ),
) -> None:
    """Register as a user of the shared development server."""
    ctx = get_output_context()
    pid = default_pid(pid)
    agent_id = default_agent_id(agent_id, pid)

    with handle_errors():
        count = get_coordinator().registry.register(agent_id, pid=pid)

    ctx.result({"agent_id": agent_id, "pid": pid, "count": count}, str(count))


def unregister(
    agent_id: str | None = typer.Argument(
        None, help="Agent identifier (defaults to agent-<pid>)"
    ),
    pid: int | None = typer.Option(
        None, "--pid", "-p", help="PID used to derive the default agent identifier"
    ),
) -> None:
    """Release this agent's use of the shared development server."""
    ctx = get_output_context()
    agent_id = default_agent_id(agent_id, default_pid(pid))

    with handle_errors():
        remaining = get_coordinator().registry.unregister(agent_id)

    if remaining == 0:
        logger.info("No users remaining - server can be safely stopped")
    ctx.result({"agent_id": agent_id, "remaining": remaining}, str(remaining))


def users() -> None:
    """List registered server users."""
    ctx = get_output_context()
    with handle_errors():
        entries = get_coordinator().registry.list_users()
    ctx.users(entries)
