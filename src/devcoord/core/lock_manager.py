"""Lock manager for shared server operations.

Provides PID-based directory locking so that at most one process mutates
coordination state at a time. Includes stale lock detection for crash
recovery.

Uses atomic directory creation (fails if the target exists) as the only
synchronization primitive. The directory appears with its owner record
already inside, so a lock without one can only be left over from a crash
or a foreign tool.
"""

import logging
import os
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

from ..constants import LOCK_NAME, LOCK_OWNER_RECORD, MAX_LOCK_AGE
from ..errors import LockTimeoutError
from ..models import LockOwner
from ..services import RecordStore, current_host, current_user, is_pid_alive
from .retry import DEFAULT_LOCK_POLICY, RetryPolicy

logger = logging.getLogger(__name__)


class ServerLock:
    """Host-local advisory lock backed by a directory in a record store.

    The lock is not re-entrant: a process that already holds it and calls
    ``acquire`` again waits like any other contender.

    Args:
        store: Record store shared by all cooperating processes
        name: Name of the lock directory
        max_age: Seconds after which a held lock is stale even if its holder lives
        policy: Default retry policy for ``acquire`` and ``wait_for_release``
        is_alive: Liveness check for recorded holder PIDs
        clock: Wall-clock source in epoch seconds
        sleep: Sleep function used between attempts
        pid: Identity to lock as; defaults to the current process
    """

    def __init__(
        self,
        store: RecordStore,
        name: str = LOCK_NAME,
        *,
        max_age: float = MAX_LOCK_AGE,
        policy: RetryPolicy = DEFAULT_LOCK_POLICY,
        is_alive: Callable[[int], bool] = is_pid_alive,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        pid: int | None = None,
    ) -> None:
        self.store = store
        self.name = name
        self.max_age = max_age
        self.policy = policy
        self._is_alive = is_alive
        self._clock = clock
        self._sleep = sleep
        self._pid = pid

    @property
    def pid(self) -> int:
        """PID this lock acquires and releases as."""
        return self._pid if self._pid is not None else os.getpid()

    @property
    def owner_name(self) -> str:
        return f"{self.name}/{LOCK_OWNER_RECORD}"

    def _try_create(self) -> bool:
        """Attempt atomic lock creation and record ownership.

        Returns:
            True if this call created the lock, False if it already exists
        """
        owner = LockOwner(
            pid=self.pid,
            acquired_at=datetime.fromtimestamp(self._clock()),
            user=current_user(),
            host=current_host(),
        )
        # The directory only becomes visible with its owner record inside
        return self.store.create_dir(self.name, {LOCK_OWNER_RECORD: owner.to_record()})

    def acquire(self, policy: RetryPolicy | None = None) -> bool:
        """Acquire the lock, waiting up to the policy timeout.

        Every failed creation attempt runs the stale sweep; a reclaimed lock
        is retried immediately without sleeping.

        Args:
            policy: Retry policy, defaults to the lock's policy

        Returns:
            True if the lock was acquired, False on timeout
        """
        policy = policy or self.policy
        deadline = policy.deadline()
        started = time.monotonic()

        while True:
            if self._try_create():
                logger.info(f"Lock acquired (PID: {self.pid})")
                return True

            if self.sweep_stale():
                continue

            if policy.expired(deadline):
                if policy.timeout:
                    logger.warning(f"Timeout waiting for server lock after {policy.timeout:g}s")
                return False

            logger.debug(f"Waiting for server lock... ({time.monotonic() - started:.0f}s)")
            self._sleep(policy.interval)

    def release(self) -> bool:
        """Release the lock if owned by this process.

        Returns:
            True if released (or nothing to release), False if another
            process owns the lock or ownership cannot be verified
        """
        if not self.store.exists(self.name):
            logger.info("No lock to release")
            return True

        owner = self.owner()
        if owner is None or owner.pid != self.pid:
            holder = "unknown" if owner is None else str(owner.pid)
            logger.warning(f"Lock owned by different process (PID: {holder})")
            return False

        self.store.delete(self.name)
        logger.info(f"Lock released (PID: {self.pid})")
        return True

    def owner(self) -> LockOwner | None:
        """Get the current lock owner, or None if absent or unreadable."""
        text = self.store.read(self.owner_name)
        if text is None:
            return None
        try:
            return LockOwner.from_record(text)
        except (ValueError, OverflowError, OSError):
            return None

    def owns(self) -> bool:
        """Check if this process currently holds the lock."""
        owner = self.owner()
        return owner is not None and owner.pid == self.pid

    def stale_reason(self) -> str | None:
        """Explain why the current lock is stale, or None if it is valid or absent."""
        text = self.store.read(self.owner_name)
        if text is None:
            if not self.store.exists(self.name):
                return None
            # Released and re-created between the two reads
            text = self.store.read(self.owner_name)
        if text is None:
            return "missing owner record"
        try:
            owner = LockOwner.from_record(text)
        except (ValueError, OverflowError, OSError):
            return "malformed owner record"

        if not self._is_alive(owner.pid):
            return f"dead process (PID: {owner.pid})"

        age = owner.age_seconds(self._clock())
        if age > self.max_age:
            return f"age {age:.0f}s exceeds max {self.max_age:g}s (PID: {owner.pid})"
        return None

    def sweep_stale(self) -> bool:
        """Remove the lock if it is stale.

        Safe without holding the lock: it only ever deletes contested state.

        Returns:
            True if a stale lock was removed
        """
        reason = self.stale_reason()
        if reason is None:
            return False
        logger.info(f"Cleaning up stale lock: {reason}")
        self.store.delete(self.name)
        return True

    def is_locked(self) -> bool:
        """Check if a valid lock is held. Stale locks are cleaned up first."""
        if not self.store.exists(self.name):
            return False
        return not self.sweep_stale()

    def wait_for_release(self, policy: RetryPolicy | None = None) -> bool:
        """Block until no valid lock is held.

        Returns:
            True once the lock is free, False on timeout
        """
        policy = policy or self.policy
        deadline = policy.deadline()

        while self.is_locked():
            if policy.expired(deadline):
                logger.warning(f"Timeout waiting for lock release after {policy.timeout:g}s")
                return False
            self._sleep(policy.interval)
        return True

    @contextmanager
    def held(self, policy: RetryPolicy | None = None) -> Iterator["ServerLock"]:
        """Hold the lock for the duration of a block.

        Raises:
            LockTimeoutError: If the lock cannot be acquired in time
        """
        if not self.acquire(policy):
            owner = self.owner()
            detail = f" (held by {owner.describe()})" if owner else ""
            raise LockTimeoutError(f"Could not acquire server lock{detail}")
        try:
            yield self
        finally:
            self.release()
