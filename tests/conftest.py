"""Shared test fixtures for devcoord tests."""

import subprocess
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

from devcoord.core import RetryPolicy
from devcoord.services import FileStore, MemoryStore


class FakeProcesses:
    """Liveness check over an explicit set of live PIDs."""

    def __init__(self, *alive: int) -> None:
        self.alive: set[int] = set(alive)

    def is_alive(self, pid: int) -> bool:
        return pid in self.alive

    def start(self, pid: int) -> int:
        self.alive.add(pid)
        return pid

    def kill(self, pid: int) -> None:
        self.alive.discard(pid)


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def coord_dir(tmp_path: Path) -> Path:
    """Coordination directory (not created until first write)."""
    return tmp_path / "coord"


@pytest.fixture
def file_store(coord_dir: Path) -> FileStore:
    return FileStore(coord_dir)


@pytest.fixture
def processes() -> FakeProcesses:
    """Fake process table; PIDs 100 and 200 start alive."""
    return FakeProcesses(100, 200)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def no_wait() -> RetryPolicy:
    """Policy that makes a single attempt without sleeping."""
    return RetryPolicy(timeout=0, interval=0)


@pytest.fixture
def dead_pid() -> int:
    """PID of a process that has already exited and been reaped."""
    result = subprocess.run(
        [sys.executable, "-c", "import os; print(os.getpid())"],
        capture_output=True,
        text=True,
        check=True,
    )
    return int(result.stdout.strip())


@pytest.fixture
def cli_env(coord_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the CLI at a temporary coordination directory."""
    monkeypatch.setenv("DEVCOORD_DIR", str(coord_dir))
    monkeypatch.delenv("DEVCOORD_CONFIG", raising=False)
    return coord_dir
