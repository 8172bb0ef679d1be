"""Pydantic data models for devcoord coordination records.

This package defines the data structures persisted in the coordination
directory and the views derived from them:
- Lock ownership (LockOwner)
- Active server users (Registration)
- Server lifecycle state and stop requests (ServerStateRecord, StopRequest)
- Drain precondition and status report (DrainCheck, StatusReport)

Every persisted model serializes to a single human-readable,
colon-delimited line so records stay safe to inspect and delete by hand.

Example:
    >>> from devcoord.models import Registration
    >>> Registration.from_line("agent-1:4242:1700000000:alice").agent_id
    'agent-1'
"""

from .lock import LockOwner
from .registration import Registration
from .server_state import ServerStateRecord, ServerStatus, StopRequest
from .status import DrainCheck, StatusReport

__all__ = [
    "DrainCheck",
    "LockOwner",
    "Registration",
    "ServerStateRecord",
    "ServerStatus",
    "StatusReport",
    "StopRequest",
]
