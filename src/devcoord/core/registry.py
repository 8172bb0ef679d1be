"""Reference-counted registry of active server users.

Two records back the registry: a bare-integer count and a newline-delimited
list of registrations. Both are only ever rewritten under the server lock.
A sweep started without it takes the lock for a single attempt and
otherwise leaves the repair to whoever holds it.

The count is re-derived from the surviving list whenever a sweep changes the
list or finds the two out of step, so arithmetic drift and hand-edited
records heal on the next touch.
"""

import logging
import os
import time
from collections.abc import Callable
from datetime import datetime

from ..constants import USERS_COUNT_NAME, USERS_LIST_NAME
from ..models import DrainCheck, Registration
from ..models.registration import validate_token
from ..services import RecordStore, current_user, is_pid_alive
from .lock_manager import ServerLock
from .retry import SINGLE_ATTEMPT, RetryPolicy

logger = logging.getLogger(__name__)


class UserRegistry:
    """Set of processes that currently depend on the shared server.

    Args:
        store: Record store shared by all cooperating processes
        lock: Server lock guarding registry mutations
        count_name: Name of the count record
        list_name: Name of the users list record
        is_alive: Liveness check for registered PIDs
        clock: Wall-clock source in epoch seconds
        lock_policy: Retry policy for acquiring the lock, defaults to the lock's
    """

    def __init__(
        self,
        store: RecordStore,
        lock: ServerLock,
        *,
        count_name: str = USERS_COUNT_NAME,
        list_name: str = USERS_LIST_NAME,
        is_alive: Callable[[int], bool] = is_pid_alive,
        clock: Callable[[], float] = time.time,
        lock_policy: RetryPolicy | None = None,
    ) -> None:
        self.store = store
        self.lock = lock
        self.count_name = count_name
        self.list_name = list_name
        self._is_alive = is_alive
        self._clock = clock
        self.lock_policy = lock_policy

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------

    def _read_lines(self) -> list[str]:
        text = self.store.read(self.list_name)
        if text is None:
            return []
        return [line for line in text.splitlines() if line.strip()]

    def _load(self) -> tuple[list[Registration], int]:
        """Parse the users list.

        Returns:
            Tuple of (well-formed registrations, number of malformed lines)
        """
        entries: list[Registration] = []
        malformed = 0
        for line in self._read_lines():
            try:
                entries.append(Registration.from_line(line))
            except (ValueError, OverflowError, OSError):
                malformed += 1
        return entries, malformed

    def _read_count(self) -> int | None:
        """Persisted count, or None if absent or not a number."""
        text = self.store.read(self.count_name)
        if text is None:
            return None
        try:
            return int(text.strip())
        except ValueError:
            return None

    def _save(self, entries: list[Registration]) -> None:
        """Persist entries with an exact count; an empty list removes both records."""
        if not entries:
            self._delete_records()
            return
        self._write_list(entries)
        self.store.write(self.count_name, f"{len(entries)}\n")

    def _write_list(self, entries: list[Registration]) -> None:
        self.store.write(self.list_name, "".join(f"{entry.to_line()}\n" for entry in entries))

    def _delete_records(self) -> None:
        self.store.delete(self.list_name)
        self.store.delete(self.count_name)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def count(self) -> int:
        """Read the persisted user count without sweeping.

        Absent or corrupt counts read as 0.
        """
        value = self._read_count()
        return 0 if value is None else max(value, 0)

    def list_users(self) -> list[Registration]:
        """List registrations in file order, annotated with their age.

        Lock-free and non-mutating; malformed lines are skipped.
        """
        entries, _ = self._load()
        now = self._clock()
        return [entry.with_age(now) for entry in entries]

    def is_registered(self, agent_id: str) -> bool:
        """Check if an agent currently has a registration."""
        entries, _ = self._load()
        return any(entry.agent_id == agent_id for entry in entries)

    # ------------------------------------------------------------------
    # Sweeping
    # ------------------------------------------------------------------

    def _partition(self) -> tuple[list[Registration], list[Registration], int, bool]:
        """Split the list into survivors and dead entries without writing.

        Returns:
            Tuple of (survivors, dead entries, malformed line count, whether the
            records need rewriting)
        """
        entries, malformed = self._load()
        survivors: list[Registration] = []
        dead: list[Registration] = []
        for entry in entries:
            (survivors if self._is_alive(entry.pid) else dead).append(entry)
        dropped = len(dead) + malformed
        if survivors:
            count_drifted = self._read_count() != len(survivors)
        else:
            # Drained must mean no records at all, not a persisted zero
            count_drifted = self.store.exists(self.count_name) or self.store.exists(
                self.list_name
            )
        return survivors, dead, malformed, bool(dropped or count_drifted)

    def _sweep(self) -> int:
        """Sweep and rewrite the records. Caller must hold the server lock."""
        survivors, dead, malformed, rewrite = self._partition()
        for entry in dead:
            logger.info(
                f"Cleaning up dead user registration: {entry.agent_id} (PID: {entry.pid})"
            )
        if malformed:
            logger.info(f"Dropping {malformed} malformed user registration(s)")

        if rewrite:
            self._save(survivors)
            if survivors:
                logger.info(f"Updated user count after cleanup: {len(survivors)}")
            else:
                logger.info("No users remaining after cleanup")
        return len(dead) + malformed

    def sweep_dead(self) -> int:
        """Drop registrations whose process is gone or whose line is malformed.

        Rewrites the count to the exact survivor count when anything was
        dropped or the persisted count disagrees with the list.

        Records are only rewritten under the server lock. A caller that does
        not hold it makes one attempt to take it; if the lock is busy the
        repair is left to its holder and nothing is written.

        Returns:
            Number of entries dropped
        """
        if self.lock.owns():
            return self._sweep()

        *_, rewrite = self._partition()
        if not rewrite:
            return 0
        if not self.lock.acquire(SINGLE_ATTEMPT):
            logger.debug("Server lock busy, leaving user cleanup to its holder")
            return 0
        try:
            return self._sweep()
        finally:
            self.lock.release()

    def can_drain(self) -> DrainCheck:
        """Sweep, then report whether zero live users remain."""
        self.sweep_dead()
        remaining = self.count()
        users = self.list_users() if remaining else []
        return DrainCheck(drained=remaining == 0, remaining=remaining, users=users)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def register(self, agent_id: str, pid: int | None = None) -> int:
        """Register an agent as a server user.

        Idempotent: registering an agent that is already present changes
        nothing and returns the current count.

        Args:
            agent_id: Caller-chosen identifier
            pid: Process whose liveness backs the registration, defaults to self

        Returns:
            User count after registration

        Raises:
            LockTimeoutError: If the server lock cannot be acquired in time
            ValueError: If agent_id cannot be stored
        """
        validate_token(agent_id, "agent_id")
        pid = os.getpid() if pid is None else pid

        with self.lock.held(self.lock_policy):
            self._sweep()
            entries, _ = self._load()

            if any(entry.agent_id == agent_id for entry in entries):
                logger.info(f"Agent {agent_id} already registered")
                return self.count()

            entry = Registration(
                agent_id=agent_id,
                pid=pid,
                registered_at=datetime.fromtimestamp(self._clock()),
                user=current_user(),
            )
            new_count = self.count() + 1
            self._write_list([*entries, entry])
            self.store.write(self.count_name, f"{new_count}\n")

        logger.info(f"Server users: {new_count} (added: {agent_id})")
        return new_count

    def unregister(self, agent_id: str) -> int:
        """Remove an agent's registration.

        Args:
            agent_id: Identifier passed to ``register``

        Returns:
            Remaining user count; 0 if the agent was not registered

        Raises:
            LockTimeoutError: If the server lock cannot be acquired in time
        """
        with self.lock.held(self.lock_policy):
            self._sweep()
            entries, _ = self._load()

            remaining_entries = [entry for entry in entries if entry.agent_id != agent_id]
            removed = len(entries) - len(remaining_entries)
            if not removed:
                logger.info(f"Agent {agent_id} not registered")
                return 0

            new_count = self.count() - removed
            if new_count <= 0:
                self._delete_records()
                logger.info(f"Server users: 0 (removed: {agent_id}) - can safely stop")
                return 0

            self._write_list(remaining_entries)
            self.store.write(self.count_name, f"{new_count}\n")

        logger.info(f"Server users: {new_count} (removed: {agent_id}) - keep running")
        return new_count
