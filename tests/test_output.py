"""Tests for output formatting."""

import io
import json
import logging
from datetime import datetime

from rich.console import Console

from devcoord.logging import configure_logging
from devcoord.models import LockOwner, Registration, StatusReport, StopRequest
from devcoord.output import OutputContext


def make_ctx(json_mode: bool = False) -> tuple[OutputContext, io.StringIO]:
    output = io.StringIO()
    console = Console(file=output, force_terminal=False, width=200)
    return OutputContext(console=console, json_mode=json_mode), output


def sample_report() -> StatusReport:
    stamp = datetime.fromtimestamp(1_700_000_000)
    return StatusReport(
        server_status="running",
        server_pid=4242,
        server_updated_at=stamp,
        locked=True,
        lock_owner=LockOwner(pid=99, acquired_at=stamp, user="dev", host="box"),
        user_count=1,
        users=[
            Registration(
                agent_id="agent-a", pid=4243, registered_at=stamp, user="dev", age_seconds=12
            )
        ],
        stop_request=StopRequest(reason="deploy", requested_at=stamp),
    )


class TestOutputContextPrint:
    """Tests for OutputContext.print method."""

    def test_print_in_normal_mode(self) -> None:
        ctx, output = make_ctx()
        ctx.print("Hello world")
        assert "Hello world" in output.getvalue()

    def test_print_suppressed_in_json_mode(self) -> None:
        ctx, output = make_ctx(json_mode=True)
        ctx.print("Hello world")
        assert output.getvalue() == ""


class TestOutputContextResult:
    """Tests for OutputContext.result method."""

    def test_result_prints_message(self) -> None:
        ctx, output = make_ctx()
        ctx.result({"count": 3}, "3")
        assert output.getvalue() == "3\n"

    def test_result_keeps_brackets_literal(self) -> None:
        """Values are printed verbatim, not as Rich markup."""
        ctx, output = make_ctx()
        ctx.result({}, "[red]x[/red]")
        assert output.getvalue() == "[red]x[/red]\n"

    def test_result_json(self, capsys) -> None:
        ctx, output = make_ctx(json_mode=True)
        ctx.result({"count": 3}, "3")
        assert json.loads(capsys.readouterr().out) == {"count": 3}
        assert output.getvalue() == ""

    def test_error_json_merges_data(self, capsys) -> None:
        ctx, _ = make_ctx(json_mode=True)
        ctx.error("boom", {"kind": "environment"})
        assert json.loads(capsys.readouterr().out) == {"error": "boom", "kind": "environment"}


class TestOutputContextReport:
    """Tests for users tables and status reports."""

    def test_users_table(self) -> None:
        ctx, output = make_ctx()
        ctx.users(sample_report().users)
        text = output.getvalue()
        assert "agent-a" in text
        assert "4243" in text
        assert "12s" in text

    def test_users_empty(self) -> None:
        ctx, output = make_ctx()
        ctx.users([])
        assert "No registered users" in output.getvalue()

    def test_report_text(self) -> None:
        ctx, output = make_ctx()
        ctx.report(sample_report())
        text = output.getvalue()
        assert "State: running" in text
        assert "PID: 4242" in text
        assert "Lock: Held (PID: 99, User: dev, Host: box" in text
        assert "Stop requested: deploy" in text

    def test_report_keeps_brackets_literal(self) -> None:
        """Caller-chosen values are shown verbatim, not as Rich markup."""
        ctx, output = make_ctx()
        report = sample_report().model_copy(
            update={
                "server_status": "[bold]custom",
                "stop_request": StopRequest(
                    reason="[red]rebuild[/red]", requested_at=datetime.fromtimestamp(1_700_000_000)
                ),
            }
        )
        ctx.report(report)
        text = output.getvalue()
        assert "State: [bold]custom" in text
        assert "Stop requested: [red]rebuild[/red]" in text

    def test_users_table_keeps_brackets_literal(self) -> None:
        ctx, output = make_ctx()
        stamp = datetime.fromtimestamp(1_700_000_000)
        ctx.users([Registration(agent_id="[bold]a", pid=1, registered_at=stamp, user="[i]dev")])
        text = output.getvalue()
        assert "[bold]a" in text
        assert "[i]dev" in text

    def test_report_json(self, capsys) -> None:
        ctx, _ = make_ctx(json_mode=True)
        ctx.report(sample_report())
        data = json.loads(capsys.readouterr().out)
        assert data["lock_owner"]["pid"] == 99
        assert data["users"][0]["agent_id"] == "agent-a"
        assert data["stop_request"]["reason"] == "deploy"


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_default_level_is_info(self) -> None:
        configure_logging(stream=io.StringIO())
        assert logging.getLogger().level == logging.INFO

    def test_quiet_wins(self) -> None:
        configure_logging(verbosity=2, quiet=True, stream=io.StringIO())
        assert logging.getLogger().level == logging.WARNING

    def test_verbose_is_debug(self) -> None:
        configure_logging(verbosity=1, stream=io.StringIO())
        assert logging.getLogger().level == logging.DEBUG

    def test_logs_go_to_stream(self) -> None:
        stream = io.StringIO()
        configure_logging(stream=stream, no_color=True)
        logging.getLogger("devcoord.test").info("Server users: 2")
        assert "Server users: 2" in stream.getvalue()
