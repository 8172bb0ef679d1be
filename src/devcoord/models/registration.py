"""Registration model for active server users."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from ..constants import UNKNOWN

FIELD_COUNT = 4


def validate_token(value: str, what: str) -> str:
    """Reject values that would break the colon-delimited line format."""
    if not value:
        raise ValueError(f"{what} must not be empty")
    if ":" in value or "\n" in value or "\r" in value:
        raise ValueError(f"{what} must not contain ':' or newlines: {value!r}")
    return value


class Registration(BaseModel):
    """One line of the users list: ``agent_id:pid:registered_epoch:user``.

    Attributes:
        agent_id: Caller-chosen identifier, unique among live users.
        pid: Process whose liveness keeps the registration valid.
        registered_at: When the registration was created.
        user: Login name of the registering user.
        age_seconds: Derived age, populated only by diagnostic listings.
    """

    agent_id: str = Field(description="Caller-chosen agent identifier")
    pid: int = Field(description="Process ID backing the registration")
    registered_at: datetime = Field(default_factory=datetime.now)
    user: str = Field(default=UNKNOWN, description="User that registered")
    age_seconds: float | None = Field(default=None, description="Age at listing time")

    @field_validator("agent_id")
    @classmethod
    def _check_agent_id(cls, value: str) -> str:
        return validate_token(value, "agent_id")

    @field_validator("user")
    @classmethod
    def _check_user(cls, value: str) -> str:
        return validate_token(value, "user")

    def to_line(self) -> str:
        """Serialize to a users-list line (without trailing newline)."""
        return f"{self.agent_id}:{self.pid}:{int(self.registered_at.timestamp())}:{self.user}"

    @classmethod
    def from_line(cls, line: str) -> "Registration":
        """Parse a users-list line.

        Raises:
            ValueError: On wrong field count or unparsable fields
        """
        fields = line.strip().split(":")
        if len(fields) != FIELD_COUNT:
            raise ValueError(f"Expected {FIELD_COUNT} fields, got {len(fields)}: {line!r}")
        agent_id, pid, timestamp, user = fields
        return cls(
            agent_id=agent_id,
            pid=int(pid),
            registered_at=datetime.fromtimestamp(int(timestamp)),
            user=user,
        )

    def with_age(self, now: float) -> "Registration":
        """Return a copy annotated with its age relative to ``now``."""
        return self.model_copy(update={"age_seconds": now - self.registered_at.timestamp()})
