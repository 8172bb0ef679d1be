"""Init command: write a configuration template."""

from pathlib import Path

import typer

from ..config import write_config_template
from ..output import get_output_context


def init(
    path: Path = typer.Argument(Path("devcoord.toml"), help="Where to write the config file"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a devcoord configuration template."""
    ctx = get_output_context()
    if path.exists() and not force:
        ctx.error(f"Config already exists: {path}")
        raise typer.Exit(1)

    try:
        written = write_config_template(path)
    except OSError as e:
        ctx.error(f"Cannot write {path}: {e}")
        raise typer.Exit(2) from None

    ctx.result({"config": str(written)}, f"Created config template: {written}")
    ctx.print(f"Point devcoord at it with --config {written} or DEVCOORD_CONFIG", style="dim")
