"""Core coordination logic for devcoord.

This package contains the coordination primitive, layered bottom-up:
- retry: explicit retry policies for blocking operations
- lock_manager: directory lock with staleness detection
- registry: reference-counted set of active server users
- state_manager: persisted server lifecycle record
- shutdown: stop requests and waiting for users to drain
- coordinator: facade wiring the above from configuration
"""

from .coordinator import Coordinator
from .lock_manager import ServerLock
from .registry import UserRegistry
from .retry import DEFAULT_DRAIN_POLICY, DEFAULT_LOCK_POLICY, RetryPolicy
from .shutdown import ShutdownCoordinator, format_user
from .state_manager import ServerStateManager

__all__ = [
    "DEFAULT_DRAIN_POLICY",
    "DEFAULT_LOCK_POLICY",
    "Coordinator",
    "RetryPolicy",
    "ServerLock",
    "ServerStateManager",
    "ShutdownCoordinator",
    "UserRegistry",
    "format_user",
]
