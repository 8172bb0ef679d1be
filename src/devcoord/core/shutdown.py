"""Shutdown coordination: stop requests and waiting for users to drain.

Stop requests are advisory. They do not block new registrations; cooperating
users poll ``is_stop_requested`` and release the server when they are done.
"""

import logging
import time
from collections.abc import Callable
from datetime import datetime

from ..constants import STOP_REQUEST_NAME
from ..models import Registration, StopRequest
from ..services import RecordStore
from .registry import UserRegistry
from .retry import DEFAULT_DRAIN_POLICY, RetryPolicy

logger = logging.getLogger(__name__)


def format_user(entry: Registration) -> str:
    """One-line description of a registration for logs and listings."""
    age = "" if entry.age_seconds is None else f", Age: {entry.age_seconds:.0f}s"
    return f"{entry.agent_id} (PID: {entry.pid}, User: {entry.user}{age})"


class ShutdownCoordinator:
    """Publishes stop intent and waits for the registry to drain."""

    def __init__(
        self,
        store: RecordStore,
        registry: UserRegistry,
        name: str = STOP_REQUEST_NAME,
        *,
        policy: RetryPolicy = DEFAULT_DRAIN_POLICY,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.registry = registry
        self.name = name
        self.policy = policy
        self._clock = clock
        self._sleep = sleep

    def notify(self, reason: str = "Server stop requested") -> StopRequest:
        """Persist a stop request for cooperating users to notice."""
        request = StopRequest(
            reason=" ".join(reason.split()),
            requested_at=datetime.fromtimestamp(self._clock()),
        )
        self.store.write(self.name, request.to_record())
        logger.info(f"Notified users of server stop request: {request.reason}")
        return request

    def stop_request(self) -> StopRequest | None:
        text = self.store.read(self.name)
        if text is None:
            return None
        return StopRequest.from_record(text)

    def is_stop_requested(self) -> bool:
        return self.store.exists(self.name)

    def clear(self) -> None:
        """Remove the stop request."""
        self.store.delete(self.name)
        logger.info("Server stop request cleared")

    def _log_users(self) -> None:
        users = self.registry.list_users()
        if not users:
            logger.info("No registered users")
            return
        logger.info("Current server users:")
        for entry in users:
            logger.info(f"  - {format_user(entry)}")

    def wait_for_drain(self, policy: RetryPolicy | None = None) -> bool:
        """Block until no live users remain or the timeout elapses.

        Each unsuccessful check logs the remaining users.

        Args:
            policy: Retry policy, defaults to the coordinator's drain policy

        Returns:
            True once drained, False on timeout
        """
        policy = policy or self.policy
        deadline = policy.deadline()
        started = time.monotonic()
        logger.info("Waiting for other agents to finish...")

        while True:
            check = self.registry.can_drain()
            if check:
                logger.info("All users finished")
                return True

            if policy.expired(deadline):
                logger.warning(f"Timeout waiting for users to finish after {policy.timeout:g}s")
                self._log_users()
                return False

            waited = time.monotonic() - started
            logger.info(f"Waiting for {check.remaining} users to finish... ({waited:.0f}s)")
            self._log_users()
            self._sleep(policy.interval)
