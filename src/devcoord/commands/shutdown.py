"""Stop request, drain wait and cleanup commands."""

import typer

from ..core import RetryPolicy
from ..output import get_output_context
from .common import EXIT_FAILED, get_coordinator, handle_errors


def notify_stop(
    reason: str = typer.Argument("Server stop requested", help="Why the server should stop"),
) -> None:
    """Ask server users to wrap up."""
    ctx = get_output_context()
    with handle_errors():
        request = get_coordinator().shutdown.notify(reason)
    ctx.result(request.model_dump(mode="json"), request.reason)


def stop_requested() -> None:
    """Exit 0 if a stop was requested, 1 otherwise."""
    ctx = get_output_context()
    with handle_errors():
        request = get_coordinator().shutdown.stop_request()

    if request is None:
        ctx.result({"requested": False}, "no")
        raise typer.Exit(EXIT_FAILED)
    ctx.result({"requested": True, **request.model_dump(mode="json")}, f"yes: {request.reason}")


def clear_stop() -> None:
    """Clear a pending stop request."""
    ctx = get_output_context()
    with handle_errors():
        get_coordinator().shutdown.clear()
    ctx.result({"cleared": True}, "cleared")


def wait_drain(
    timeout: float | None = typer.Option(
        None, "--timeout", "-t", min=0, help="Seconds to wait (default from config)"
    ),
    interval: float | None = typer.Option(
        None, "--interval", "-i", min=0, help="Seconds between checks (default from config)"
    ),
    notify: str | None = typer.Option(
        None, "--notify", "-n", help="Publish a stop request with this reason first"
    ),
) -> None:
    """Wait until every registered user has released the server."""
    ctx = get_output_context()
    with handle_errors():
        coordinator = get_coordinator()
        shutdown = coordinator.shutdown
        policy = RetryPolicy(
            timeout=shutdown.policy.timeout if timeout is None else timeout,
            interval=shutdown.policy.interval if interval is None else interval,
        )
        if notify:
            shutdown.notify(notify)
        drained = shutdown.wait_for_drain(policy)

    ctx.result({"drained": drained}, "drained" if drained else "timeout")
    if not drained:
        raise typer.Exit(EXIT_FAILED)


def cleanup(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Remove every coordination record (lock, state, users, stop request)."""
    ctx = get_output_context()
    if not yes:
        typer.confirm("Remove all coordination records regardless of active users?", abort=True)
    with handle_errors():
        get_coordinator().cleanup_all()
    ctx.result({"cleaned": True}, "cleaned")
