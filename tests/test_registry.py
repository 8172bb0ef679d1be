"""Tests for the user registry."""

import os

import pytest
from conftest import FakeClock, FakeProcesses

from devcoord.core import RetryPolicy, ServerLock, UserRegistry
from devcoord.errors import LockTimeoutError
from devcoord.services import FileStore, MemoryStore

COUNT = "server-users.count"
LIST = "server-users.list"


@pytest.fixture
def registry(
    memory_store: MemoryStore, processes: FakeProcesses, clock: FakeClock
) -> UserRegistry:
    """Registry whose lock acts as live process 100."""
    lock = ServerLock(
        memory_store, is_alive=processes.is_alive, clock=clock, sleep=lambda _: None, pid=100
    )
    return UserRegistry(memory_store, lock, is_alive=processes.is_alive, clock=clock)


def agents(registry: UserRegistry) -> list[str]:
    return [entry.agent_id for entry in registry.list_users()]


class TestRegister:
    """Tests for UserRegistry.register."""

    def test_register_counts_up(self, registry: UserRegistry, processes: FakeProcesses) -> None:
        processes.start(301)
        assert registry.register("a", pid=100) == 1
        assert registry.register("b", pid=200) == 2
        assert registry.register("c", pid=301) == 3
        assert registry.count() == 3
        assert agents(registry) == ["a", "b", "c"]

    def test_register_is_idempotent(self, registry: UserRegistry) -> None:
        """Registering the same agent twice is a no-op."""
        assert registry.register("a", pid=100) == 1
        assert registry.register("a", pid=100) == 1
        assert agents(registry) == ["a"]

    def test_register_writes_plain_records(
        self, registry: UserRegistry, memory_store: MemoryStore
    ) -> None:
        registry.register("a", pid=100)
        assert memory_store.read(COUNT) == "1\n"
        agent_id, pid, stamp, _user = memory_store.read(LIST).strip().split(":")
        assert (agent_id, pid, stamp) == ("a", "100", "1700000000")

    def test_register_releases_lock(
        self, registry: UserRegistry, memory_store: MemoryStore
    ) -> None:
        registry.register("a", pid=100)
        assert not memory_store.exists("dev-server.lock")

    def test_register_sweeps_dead_users_first(
        self, registry: UserRegistry, processes: FakeProcesses
    ) -> None:
        registry.register("a", pid=200)
        processes.kill(200)
        assert registry.register("b", pid=100) == 1
        assert agents(registry) == ["b"]

    def test_register_fails_under_contention(
        self,
        memory_store: MemoryStore,
        processes: FakeProcesses,
        clock: FakeClock,
        registry: UserRegistry,
    ) -> None:
        """A lock held by another live process surfaces as LockTimeoutError."""
        other = ServerLock(memory_store, is_alive=processes.is_alive, clock=clock, pid=200)
        assert other.acquire()
        registry.lock_policy = RetryPolicy(timeout=0, interval=0)

        with pytest.raises(LockTimeoutError):
            registry.register("a", pid=100)
        assert registry.count() == 0
        assert other.owner().pid == 200

    def test_invalid_agent_id_rejected(
        self, registry: UserRegistry, memory_store: MemoryStore
    ) -> None:
        with pytest.raises(ValueError):
            registry.register("bad:id", pid=100)
        assert not memory_store.exists("dev-server.lock")


class TestUnregister:
    """Tests for UserRegistry.unregister."""

    def test_unregister_counts_down(self, registry: UserRegistry) -> None:
        registry.register("a", pid=100)
        registry.register("b", pid=200)
        assert registry.unregister("a") == 1
        assert agents(registry) == ["b"]

    def test_last_unregister_deletes_records(
        self, registry: UserRegistry, memory_store: MemoryStore
    ) -> None:
        """Fully drained leaves no records rather than a persisted zero."""
        registry.register("a", pid=100)
        assert registry.unregister("a") == 0
        assert not memory_store.exists(COUNT)
        assert not memory_store.exists(LIST)

    def test_unregister_unknown_agent(self, registry: UserRegistry) -> None:
        registry.register("a", pid=100)
        assert registry.unregister("ghost") == 0
        assert agents(registry) == ["a"]
        assert registry.count() == 1


class TestSweepDead:
    """Tests for UserRegistry.sweep_dead."""

    def test_drops_dead_and_rewrites_count(
        self, registry: UserRegistry, processes: FakeProcesses, memory_store: MemoryStore
    ) -> None:
        registry.register("a", pid=100)
        registry.register("b", pid=200)
        processes.kill(100)

        assert registry.sweep_dead() == 1
        assert agents(registry) == ["b"]
        assert memory_store.read(COUNT) == "1\n"

    def test_all_dead_deletes_records(
        self, registry: UserRegistry, processes: FakeProcesses, memory_store: MemoryStore
    ) -> None:
        registry.register("a", pid=100)
        processes.kill(100)
        assert registry.sweep_dead() == 1
        assert not memory_store.exists(COUNT)
        assert not memory_store.exists(LIST)

    def test_nothing_to_sweep(self, registry: UserRegistry) -> None:
        registry.register("a", pid=100)
        assert registry.sweep_dead() == 0
        assert registry.count() == 1

    def test_malformed_lines_are_dropped(
        self, registry: UserRegistry, memory_store: MemoryStore
    ) -> None:
        memory_store.write(LIST, "a:100:1700000000:alice\nnot-a-registration\nb:2:x\n")
        memory_store.write(COUNT, "3\n")
        assert registry.sweep_dead() == 2
        assert agents(registry) == ["a"]
        assert registry.count() == 1

    def test_count_drift_is_healed(
        self, registry: UserRegistry, memory_store: MemoryStore
    ) -> None:
        """The count is re-derived from the list even when nothing was dropped."""
        memory_store.write(LIST, "a:100:1700000000:alice\n")
        memory_store.write(COUNT, "7\n")
        registry.sweep_dead()
        assert registry.count() == 1

    def test_orphan_count_removed(
        self, registry: UserRegistry, memory_store: MemoryStore
    ) -> None:
        memory_store.write(COUNT, "2\n")
        registry.sweep_dead()
        assert not memory_store.exists(COUNT)

    def test_busy_lock_defers_repair(
        self,
        registry: UserRegistry,
        memory_store: MemoryStore,
        processes: FakeProcesses,
        clock: FakeClock,
        no_wait: RetryPolicy,
    ) -> None:
        """Without the lock nothing is rewritten; the holder sweeps instead."""
        memory_store.write(LIST, "a:300:1700000000:alice\n")
        memory_store.write(COUNT, "1\n")
        holder = ServerLock(memory_store, is_alive=processes.is_alive, clock=clock, pid=200)
        assert holder.acquire(no_wait)

        assert registry.sweep_dead() == 0
        assert memory_store.read(LIST) == "a:300:1700000000:alice\n"
        assert holder.owns()

        holder.release()
        assert registry.sweep_dead() == 1
        assert not memory_store.exists(LIST)

    def test_sweep_inside_held_lock(
        self, registry: UserRegistry, memory_store: MemoryStore, no_wait: RetryPolicy
    ) -> None:
        """A caller already holding the lock sweeps without re-acquiring it."""
        memory_store.write(LIST, "a:300:1700000000:alice\n")
        memory_store.write(COUNT, "1\n")
        with registry.lock.held(no_wait):
            assert registry.can_drain()
            assert registry.lock.owns()
        assert not memory_store.exists(COUNT)

    def test_registration_landing_mid_sweep_survives(
        self, memory_store: MemoryStore, processes: FakeProcesses, clock: FakeClock
    ) -> None:
        """A sweep that read the list before a registration landed must not erase it."""

        def make(pid: int) -> UserRegistry:
            lock = ServerLock(
                memory_store,
                is_alive=processes.is_alive,
                clock=clock,
                sleep=lambda _: None,
                pid=pid,
            )
            return UserRegistry(memory_store, lock, is_alive=processes.is_alive, clock=clock)

        writer, sweeper = make(100), make(200)
        original_read = memory_store.read
        pending = [True]

        def read(name: str) -> str | None:
            if name == LIST and pending:
                pending.clear()
                # The sweeper sees the list as it was before writer registered
                writer.register("b", pid=100)
                return None
            return original_read(name)

        memory_store.read = read  # type: ignore[method-assign]

        assert not sweeper.can_drain()
        assert sweeper.is_registered("b")
        assert sweeper.count() == 1

    def test_out_of_range_pid_is_dropped(
        self, memory_store: MemoryStore, clock: FakeClock
    ) -> None:
        """A PID no process can have is dead, not an error."""
        lock = ServerLock(memory_store, clock=clock, sleep=lambda _: None)
        registry = UserRegistry(memory_store, lock, clock=clock)
        memory_store.write(
            LIST,
            f"a:{os.getpid()}:1700000000:alice\nbig:99999999999999999999:1700000000:bob\n",
        )
        memory_store.write(COUNT, "2\n")

        assert registry.register("c", pid=os.getpid()) == 2
        assert agents(registry) == ["a", "c"]
        assert registry.can_drain().remaining == 2

    def test_undecodable_bytes_are_dropped(
        self, file_store: FileStore, processes: FakeProcesses, clock: FakeClock
    ) -> None:
        lock = ServerLock(
            file_store, is_alive=processes.is_alive, clock=clock, sleep=lambda _: None, pid=100
        )
        registry = UserRegistry(file_store, lock, is_alive=processes.is_alive, clock=clock)
        file_store.write(COUNT, "2\n")
        file_store.path(LIST).write_bytes(b"ok:100:1700000000:alice\n\xff\xfe:2:3:x\n")

        assert registry.register("c", pid=100) == 2
        assert agents(registry) == ["ok", "c"]
        assert b"\xff" not in file_store.path(LIST).read_bytes()


class TestReads:
    """Tests for count and list_users."""

    def test_count_without_records(self, registry: UserRegistry) -> None:
        assert registry.count() == 0

    def test_corrupt_count_reads_zero(
        self, registry: UserRegistry, memory_store: MemoryStore
    ) -> None:
        memory_store.write(COUNT, "lots\n")
        assert registry.count() == 0

    def test_count_does_not_sweep(
        self, registry: UserRegistry, processes: FakeProcesses
    ) -> None:
        registry.register("a", pid=200)
        processes.kill(200)
        assert registry.count() == 1

    def test_list_annotates_age(self, registry: UserRegistry, clock: FakeClock) -> None:
        registry.register("a", pid=100)
        clock.advance(42)
        [entry] = registry.list_users()
        assert entry.age_seconds == 42

    def test_list_skips_malformed_without_deleting(
        self, registry: UserRegistry, memory_store: MemoryStore
    ) -> None:
        memory_store.write(LIST, "a:100:1700000000:alice\ngarbage\n")
        assert agents(registry) == ["a"]
        assert "garbage" in memory_store.read(LIST)

    def test_is_registered(self, registry: UserRegistry) -> None:
        registry.register("a", pid=100)
        assert registry.is_registered("a")
        assert not registry.is_registered("b")


class TestCanDrain:
    """Tests for UserRegistry.can_drain."""

    def test_empty_registry_can_drain(self, registry: UserRegistry) -> None:
        check = registry.can_drain()
        assert check
        assert check.remaining == 0

    def test_live_user_blocks_drain(self, registry: UserRegistry) -> None:
        registry.register("a", pid=200)
        check = registry.can_drain()
        assert not check
        assert check.remaining == 1
        assert [u.agent_id for u in check.users] == ["a"]

    def test_dead_users_do_not_block_drain(
        self, registry: UserRegistry, processes: FakeProcesses
    ) -> None:
        registry.register("a", pid=200)
        processes.kill(200)
        assert registry.can_drain()

    def test_new_registration_blocks_again(self, registry: UserRegistry) -> None:
        assert registry.can_drain()
        registry.register("b", pid=100)
        assert not registry.can_drain()


class TestIntegrity:
    """Reference-count integrity across mixed operations."""

    def test_count_matches_list_after_any_sequence(
        self, registry: UserRegistry, processes: FakeProcesses
    ) -> None:
        for pid in range(300, 310):
            processes.start(pid)
        operations = [
            ("register", "a", 300),
            ("register", "b", 301),
            ("register", "a", 300),
            ("register", "c", 302),
            ("unregister", "b", None),
            ("kill", None, 302),
            ("register", "d", 303),
            ("unregister", "zzz", None),
            ("register", "e", 304),
            ("kill", None, 300),
        ]
        for op, agent, pid in operations:
            if op == "register":
                registry.register(agent, pid=pid)
            elif op == "unregister":
                registry.unregister(agent)
            else:
                processes.kill(pid)
            registry.sweep_dead()
            assert registry.count() == len(registry.list_users())

        assert sorted(agents(registry)) == ["d", "e"]

    def test_corrupted_state_recovery(
        self, registry: UserRegistry, memory_store: MemoryStore
    ) -> None:
        """Non-numeric count plus one malformed line heal on the next register."""
        memory_store.write(COUNT, "banana\n")
        memory_store.write(LIST, "good:200:1700000000:alice\nbroken-line\n")

        assert registry.register("new", pid=100) == 2
        assert agents(registry) == ["good", "new"]
        assert memory_store.read(COUNT) == "2\n"
