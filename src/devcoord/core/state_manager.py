"""Server lifecycle state record.

A single ``status:pid:epoch`` record. Each ``set`` overwrites the whole
record atomically. No locking happens here: callers that read, decide and
write must hold the server lock around the sequence themselves.
"""

import logging
import os
import time
from collections.abc import Callable
from datetime import datetime

from ..constants import STATE_NAME, UNKNOWN
from ..models import ServerStateRecord, ServerStatus
from ..services import RecordStore

logger = logging.getLogger(__name__)


class ServerStateManager:
    """Read and write the persisted server lifecycle state."""

    def __init__(
        self,
        store: RecordStore,
        name: str = STATE_NAME,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.name = name
        self._clock = clock

    def set(self, status: ServerStatus | str, pid: int | None = None) -> ServerStateRecord:
        """Overwrite the state record with a fresh timestamp.

        Args:
            status: New lifecycle status
            pid: Server process ID, defaults to the calling process

        Returns:
            The record that was written

        Raises:
            ValueError: If status is empty or contains ':'
        """
        value = status.value if isinstance(status, ServerStatus) else status
        record = ServerStateRecord(
            status=value,
            pid=os.getpid() if pid is None else pid,
            updated_at=datetime.fromtimestamp(self._clock()),
        )
        self.store.write(self.name, record.to_record())
        logger.info(f"Server state set to {record.status} (PID: {record.pid})")
        return record

    def record(self) -> ServerStateRecord | None:
        """Get the parsed record, or None if absent or unreadable."""
        text = self.store.read(self.name)
        if text is None:
            return None
        try:
            return ServerStateRecord.from_record(text)
        except (ValueError, OverflowError, OSError):
            return None

    def raw(self) -> str:
        """Get the literal record text, or ``unknown`` if absent."""
        text = self.store.read(self.name)
        return UNKNOWN if text is None else text.strip()

    def status(self) -> str:
        record = self.record()
        return UNKNOWN if record is None else record.status

    def owner_pid(self) -> int | None:
        record = self.record()
        return None if record is None else record.pid

    def clear(self) -> None:
        self.store.delete(self.name)
        logger.info("Server state cleared")
