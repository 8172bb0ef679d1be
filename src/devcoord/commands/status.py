"""Status and drain-check commands."""

import typer

from ..output import get_output_context
from .common import EXIT_FAILED, get_coordinator, handle_errors


def status() -> None:
    """Show server state, lock holder and registered users."""
    ctx = get_output_context()
    with handle_errors():
        report = get_coordinator().status_report()
    ctx.report(report)


def can_drain() -> None:
    """Exit 0 if no live users remain, 1 otherwise."""
    ctx = get_output_context()
    with handle_errors():
        check = get_coordinator().registry.can_drain()

    ctx.result(check.model_dump(mode="json"), str(check.remaining))
    if not check:
        raise typer.Exit(EXIT_FAILED)
