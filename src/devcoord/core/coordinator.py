"""Coordinator facade wiring lock, registry, state and shutdown together."""

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from ..models import StatusReport
from ..services import FileStore, RecordStore, is_pid_alive
from .lock_manager import ServerLock
from .registry import UserRegistry
from .shutdown import ShutdownCoordinator
from .state_manager import ServerStateManager

if TYPE_CHECKING:
    from ..config import CoordinationConfig

logger = logging.getLogger(__name__)


class Coordinator:
    """All coordination collaborators over one shared record store."""

    def __init__(
        self,
        store: RecordStore,
        lock: ServerLock,
        registry: UserRegistry,
        state: ServerStateManager,
        shutdown: ShutdownCoordinator,
    ) -> None:
        self.store = store
        self.lock = lock
        self.registry = registry
        self.state = state
        self.shutdown = shutdown

    @classmethod
    def from_config(
        cls,
        config: "CoordinationConfig",
        store: RecordStore | None = None,
        *,
        is_alive: Callable[[int], bool] = is_pid_alive,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        pid: int | None = None,
    ) -> "Coordinator":
        """Build a coordinator from configuration.

        Args:
            config: Loaded configuration
            store: Record store, defaults to a FileStore on the configured directory
            is_alive: Liveness check shared by lock and registry
            clock: Wall-clock source in epoch seconds
            sleep: Sleep function for wait loops
            pid: Identity to lock as, defaults to the current process
        """
        paths = config.paths
        store = store if store is not None else FileStore(paths.directory)
        lock = ServerLock(
            store,
            paths.lock,
            max_age=config.lock.max_age,
            policy=config.lock.policy(),
            is_alive=is_alive,
            clock=clock,
            sleep=sleep,
            pid=pid,
        )
        registry = UserRegistry(
            store,
            lock,
            count_name=paths.users_count,
            list_name=paths.users_list,
            is_alive=is_alive,
            clock=clock,
        )
        state = ServerStateManager(store, paths.state, clock=clock)
        shutdown = ShutdownCoordinator(
            store,
            registry,
            paths.stop_request,
            policy=config.drain.policy(),
            clock=clock,
            sleep=sleep,
        )
        return cls(store, lock, registry, state, shutdown)

    def status_report(self) -> StatusReport:
        """Snapshot server state, lock holder, users and stop request.

        Checking the lock may clean up a stale one.
        """
        record = self.state.record()
        locked = self.lock.is_locked()
        return StatusReport(
            server_status=self.state.status(),
            server_pid=record.pid if record else None,
            server_updated_at=record.updated_at if record else None,
            locked=locked,
            lock_owner=self.lock.owner() if locked else None,
            user_count=self.registry.count(),
            users=self.registry.list_users(),
            stop_request=self.shutdown.stop_request(),
        )

    def cleanup_all(self) -> None:
        """Unconditionally remove every coordination record.

        An operator escape hatch; ignores lock ownership and live users.
        """
        logger.info("Cleaning up coordination files...")
        for name in (
            self.state.name,
            self.registry.count_name,
            self.registry.list_name,
            self.shutdown.name,
            self.lock.name,
        ):
            self.store.delete(name)
        logger.info("Coordination cleanup complete")
