"""CLI command implementations for devcoord.

This package contains the implementation of each CLI command,
separated from the CLI framework setup in cli.py.
"""

from .init import init
from .shutdown import cleanup, clear_stop, notify_stop, stop_requested, wait_drain
from .state import state_app
from .status import can_drain, status
from .users import register, unregister, users

__all__ = [
    "can_drain",
    "cleanup",
    "clear_stop",
    "init",
    "notify_stop",
    "register",
    "state_app",
    "status",
    "stop_requested",
    "unregister",
    "users",
    "wait_drain",
]
