"""Derived views: drain precondition and the combined status report."""

from datetime import datetime

from pydantic import BaseModel, Field

from ..constants import UNKNOWN
from .lock import LockOwner
from .registration import Registration
from .server_state import StopRequest


class DrainCheck(BaseModel):
    """Result of a drain check, taken after sweeping dead users.

    Truthy exactly when no live registrations remain. Callers are expected
    to check it before moving the server into the ``stopping`` state.

    Attributes:
        drained: True if zero live users remain.
        remaining: Persisted user count after the sweep.
        users: Surviving registrations (empty when drained).
    """

    drained: bool = Field(description="True if no live users remain")
    remaining: int = Field(default=0, description="User count after sweep")
    users: list[Registration] = Field(default_factory=list)

    def __bool__(self) -> bool:
        return self.drained


class StatusReport(BaseModel):
    """Snapshot of every coordination record, for ``status`` output."""

    server_status: str = Field(default=UNKNOWN)
    server_pid: int | None = None
    server_updated_at: datetime | None = None
    locked: bool = False
    lock_owner: LockOwner | None = None
    user_count: int = 0
    users: list[Registration] = Field(default_factory=list)
    stop_request: StopRequest | None = None
