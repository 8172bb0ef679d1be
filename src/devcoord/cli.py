"""devcoord CLI: coordinate agents sharing one development server."""

from pathlib import Path

import typer

from devcoord import __version__

from .commands import (
    can_drain,
    cleanup,
    clear_stop,
    init,
    notify_stop,
    register,
    state_app,
    status,
    stop_requested,
    unregister,
    users,
    wait_drain,
)
from .commands.common import set_config_path
from .logging import configure_logging
from .output import OutputContext, set_output_context


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"devcoord {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="devcoord",
    help="Coordinate processes sharing one local development server",
    no_args_is_help=True,
)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v, -vv)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only log warnings and errors",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format for automation",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file (defaults to $DEVCOORD_CONFIG)",
    ),
) -> None:
    """devcoord - share one development server between independent agents."""
    console = configure_logging(
        verbosity=verbose,
        quiet=quiet,
        no_color=no_color,
    )
    set_output_context(OutputContext(console=console, json_mode=json_output))
    set_config_path(config)


app.command()(init)
app.command()(register)
app.command()(unregister)
app.command()(users)
app.command()(status)
app.command("can-drain")(can_drain)
app.command("wait-drain")(wait_drain)
app.command("notify-stop")(notify_stop)
app.command("stop-requested")(stop_requested)
app.command("clear-stop")(clear_stop)
app.command()(cleanup)
app.add_typer(state_app, name="state")


if __name__ == "__main__":
    app()
