"""Coordination errors."""


class CoordinationError(Exception):
    """Base exception for devcoord errors."""


class LockTimeoutError(CoordinationError):
    """Raised when the server lock cannot be acquired within the timeout."""


class StoreError(CoordinationError):
    """Raised when the coordination directory cannot be read or written."""


class RecordMissingError(StoreError):
    """Raised when a record's container disappeared before it was written."""
