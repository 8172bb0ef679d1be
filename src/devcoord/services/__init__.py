"""Operating-system facing services for devcoord.

This package provides the capabilities the core logic is built on:
- store: named-record storage (filesystem and in-memory)
- liveness: process liveness check and owner identity
"""

from .liveness import current_host, current_user, is_pid_alive
from .store import FileStore, MemoryStore, RecordStore

__all__ = [
    "FileStore",
    "MemoryStore",
    "RecordStore",
    "current_host",
    "current_user",
    "is_pid_alive",
]
