"""Server lifecycle state commands."""

import typer

from ..output import get_output_context
from .common import EXIT_FAILED, default_pid, get_coordinator, handle_errors

state_app = typer.Typer(help="Server lifecycle state commands", no_args_is_help=True)


@state_app.command("show")
def state_show() -> None:
    """Show the persisted server state record."""
    ctx = get_output_context()
    with handle_errors():
        state = get_coordinator().state
        record = state.record()
        raw = state.raw()

    data = record.model_dump(mode="json") if record else {"status": "unknown"}
    ctx.result(data, raw)


@state_app.command("set")
def state_set(
    status: str = typer.Argument(
        ..., help="New status (unknown, starting, running, stopping, stopped or custom)"
    ),
    pid: int | None = typer.Option(
        None, "--pid", "-p", help="Server process ID (defaults to the caller)"
    ),
    require_drained: bool = typer.Option(
        False,
        "--require-drained",
        help="Refuse unless no live users remain",
    ),
) -> None:
    """Set the server state while holding the server lock."""
    ctx = get_output_context()
    with handle_errors():
        coordinator = get_coordinator()
        with coordinator.lock.held():
            if require_drained:
                check = coordinator.registry.can_drain()
                if not check:
                    ctx.error(
                        f"{check.remaining} user(s) still registered",
                        {"remaining": check.remaining},
                    )
                    raise typer.Exit(EXIT_FAILED)
            record = coordinator.state.set(status, pid=default_pid(pid))

    ctx.result(record.model_dump(mode="json"), record.to_record().strip())
