"""Output formatting for the devcoord CLI.

Results go to stdout, either as plain text for people and shell scripts
or as JSON for automation. Log lines go to stderr (see ``logging``).
"""

import json
from dataclasses import dataclass
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .models import Registration, StatusReport


@dataclass
class OutputContext:
    """Context for output formatting."""

    console: Console
    json_mode: bool = False

    def print(self, message: str, style: str | None = None) -> None:
        """Print message unless in JSON mode."""
        if not self.json_mode:
            self.console.print(message, style=style)

    def print_json(self, data: dict[str, Any]) -> None:
        if self.json_mode:
            print(json.dumps(data, indent=2, default=str))

    def result(self, data: dict[str, Any], message: str = "") -> None:
        """Print a machine-checkable result in the active format."""
        if self.json_mode:
            self.print_json(data)
        elif message:
            self.console.print(message, markup=False)

    def error(self, message: str, data: dict[str, Any] | None = None) -> None:
        if self.json_mode:
            self.print_json({"error": message, **(data or {})})
        else:
            self.console.print(f"[red]Error: {escape(message)}[/red]")

    def users(self, users: list[Registration]) -> None:
        """Render registrations as a table."""
        if self.json_mode:
            self.print_json({"users": [u.model_dump(mode="json") for u in users]})
            return
        if not users:
            self.console.print("No registered users")
            return
        table = Table(title="Server users")
        table.add_column("Agent")
        table.add_column("PID", justify="right")
        table.add_column("User")
        table.add_column("Age", justify="right")
        for entry in users:
            age = "-" if entry.age_seconds is None else f"{entry.age_seconds:.0f}s"
            table.add_row(escape(entry.agent_id), str(entry.pid), escape(entry.user), age)
        self.console.print(table)

    def report(self, report: StatusReport) -> None:
        """Render the combined status report."""
        if self.json_mode:
            self.print_json(report.model_dump(mode="json"))
            return
        self.console.print("[bold]Development server status[/bold]")
        self.console.print(f"  State: {escape(report.server_status)}")
        self.console.print(f"  PID: {report.server_pid if report.server_pid else '-'}")
        self.console.print(f"  Users: {report.user_count}")
        if report.locked and report.lock_owner:
            self.console.print(f"  Lock: Held ({escape(report.lock_owner.describe())})")
        elif report.locked:
            self.console.print("  Lock: Held (owner unknown)")
        else:
            self.console.print("  Lock: Free")
        if report.stop_request:
            self.console.print(f"  Stop requested: {escape(report.stop_request.reason)}")
        self.console.print("")
        self.users(report.users)


# Global output context (set by cli.py main callback)
_ctx: OutputContext | None = None


def get_output_context() -> OutputContext:
    """Get the current output context.

    Returns a default OutputContext if not yet initialized by CLI.
    """
    if _ctx is None:
        return OutputContext(Console())
    return _ctx


def set_output_context(ctx: OutputContext) -> None:
    """Set the global output context. Called by CLI main callback."""
    global _ctx
    _ctx = ctx
