"""Server lifecycle state and stop request models.

Both are tiny colon-delimited records. The server state is
``status:pid:epoch``; a stop request is ``epoch:reason``.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from .registration import validate_token


class ServerStatus(str, Enum):
    """Well-known lifecycle states. Callers may persist others."""

    UNKNOWN = "unknown"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class ServerStateRecord(BaseModel):
    """Persisted server lifecycle record.

    Attributes:
        status: Lifecycle status, meaning defined by the caller.
        pid: Process ID that owns the server, if any.
        updated_at: When the record was last written.
    """

    status: str = Field(description="Lifecycle status")
    pid: int | None = Field(default=None, description="Server process ID")
    updated_at: datetime | None = Field(default=None, description="Last transition time")

    @field_validator("status")
    @classmethod
    def _check_status(cls, value: str) -> str:
        return validate_token(value, "status")

    def to_record(self) -> str:
        pid = "" if self.pid is None else str(self.pid)
        stamp = "" if self.updated_at is None else str(int(self.updated_at.timestamp()))
        return f"{self.status}:{pid}:{stamp}\n"

    @classmethod
    def from_record(cls, text: str) -> "ServerStateRecord":
        """Parse a state record; missing pid/timestamp fields read as None.

        Raises:
            ValueError: If the status is empty or a present field is not numeric
        """
        fields = text.strip().split(":")
        pid = int(fields[1]) if len(fields) > 1 and fields[1] else None
        updated_at = (
            datetime.fromtimestamp(int(fields[2])) if len(fields) > 2 and fields[2] else None
        )
        return cls(status=fields[0], pid=pid, updated_at=updated_at)


class StopRequest(BaseModel):
    """Advisory request asking server users to wrap up."""

    reason: str = Field(description="Why the stop was requested")
    requested_at: datetime | None = Field(default_factory=datetime.now)

    def to_record(self) -> str:
        stamp = "" if self.requested_at is None else str(int(self.requested_at.timestamp()))
        return f"{stamp}:{self.reason}\n"

    @classmethod
    def from_record(cls, text: str) -> "StopRequest":
        """Parse a stop request, keeping hand-written files readable."""
        text = text.strip()
        stamp, sep, reason = text.partition(":")
        if sep and stamp.isdigit():
            return cls(reason=reason, requested_at=datetime.fromtimestamp(int(stamp)))
        return cls(reason=text, requested_at=None)
