"""Lock owner model for server lock ownership.

The owner record lives inside the lock directory as a single
colon-delimited line: ``pid:acquired_epoch:user:host``.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from ..constants import UNKNOWN


class LockOwner(BaseModel):
    """Owner record written to ``<lock>/owner``.

    Attributes:
        pid: Process ID of the lock holder.
        acquired_at: When the lock was acquired.
        user: Login name of the holder.
        host: Hostname of the holder.
    """

    pid: int = Field(description="Process ID holding the lock")
    acquired_at: datetime = Field(default_factory=datetime.now)
    user: str = Field(default=UNKNOWN, description="User that acquired the lock")
    host: str = Field(default=UNKNOWN, description="Host the lock was acquired on")

    def to_record(self) -> str:
        """Serialize to the on-disk owner line."""
        return f"{self.pid}:{int(self.acquired_at.timestamp())}:{self.user}:{self.host}\n"

    @classmethod
    def from_record(cls, text: str) -> "LockOwner":
        """Parse an owner line.

        Raises:
            ValueError: If the pid or timestamp field is missing or not numeric
        """
        fields = text.strip().split(":")
        if len(fields) < 2:
            raise ValueError(f"Malformed lock owner record: {text!r}")
        user = fields[2] if len(fields) > 2 and fields[2] else UNKNOWN
        host = fields[3] if len(fields) > 3 and fields[3] else UNKNOWN
        return cls(
            pid=int(fields[0]),
            acquired_at=datetime.fromtimestamp(int(fields[1])),
            user=user,
            host=host,
        )

    def age_seconds(self, now: float) -> float:
        """Seconds elapsed between acquisition and ``now`` (epoch seconds)."""
        return now - self.acquired_at.timestamp()

    def describe(self) -> str:
        """Human-readable owner summary."""
        return (
            f"PID: {self.pid}, User: {self.user}, Host: {self.host}, "
            f"Time: {self.acquired_at.strftime('%Y-%m-%d %H:%M:%S')}"
        )
