"""Process liveness and identity helpers."""

import getpass
import os
import socket
import sys

import psutil

from ..constants import UNKNOWN


def is_pid_alive(pid: int) -> bool:
    """Check if a process with given PID is running.

    Sends signal 0 where signals are available and falls back to
    the OS process table otherwise.
    """
    if pid <= 0:
        return False
    try:
        return _check(pid)
    except OverflowError:
        # Beyond the platform pid_t range, so no such process can exist
        return False


def _check(pid: int) -> bool:
    if sys.platform == "win32":
        # os.kill on Windows terminates the target instead of checking it
        return psutil.pid_exists(pid)
    try:
        os.kill(pid, 0)  # Signal 0 doesn't kill, just checks
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, but belongs to another user
        return True
    except OSError:
        return psutil.pid_exists(pid)
    return True


def current_user() -> str:
    """Login name of the current process, or ``unknown``."""
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        return UNKNOWN
    return _clean(user)


def current_host() -> str:
    """Hostname of this machine, or ``unknown``."""
    return _clean(socket.gethostname())


def _clean(value: str) -> str:
    value = value.replace(":", "_").replace("\n", "").strip()
    return value or UNKNOWN
