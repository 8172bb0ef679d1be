"""Configuration management for devcoord."""

import os
import tempfile
import tomllib
from pathlib import Path

import tomli_w
from pydantic import BaseModel, Field

from .constants import (
    DRAIN_POLL_INTERVAL,
    DRAIN_TIMEOUT,
    LOCK_NAME,
    LOCK_RETRY_INTERVAL,
    LOCK_TIMEOUT,
    MAX_LOCK_AGE,
    STATE_NAME,
    STOP_REQUEST_NAME,
    USERS_COUNT_NAME,
    USERS_LIST_NAME,
)
from .core.retry import RetryPolicy

CONFIG_ENV = "DEVCOORD_CONFIG"
DIRECTORY_ENV = "DEVCOORD_DIR"


def default_directory() -> Path:
    """Shared coordination directory used when none is configured."""
    return Path(tempfile.gettempdir()) / "devcoord"


class PathsConfig(BaseModel):
    """Where coordination records live.

    Record names are resolved relative to ``directory``; absolute names
    are used as-is.
    """

    directory: Path = Field(default_factory=default_directory)
    lock: str = LOCK_NAME
    state: str = STATE_NAME
    users_count: str = USERS_COUNT_NAME
    users_list: str = USERS_LIST_NAME
    stop_request: str = STOP_REQUEST_NAME


class LockConfig(BaseModel):
    """Server lock timing."""

    timeout: float = Field(default=LOCK_TIMEOUT, ge=0, description="Acquire budget (seconds)")
    retry_interval: float = Field(default=LOCK_RETRY_INTERVAL, ge=0)
    max_age: float = Field(
        default=MAX_LOCK_AGE, gt=0, description="Age after which a held lock is stale"
    )

    def policy(self) -> RetryPolicy:
        return RetryPolicy(timeout=self.timeout, interval=self.retry_interval)


class DrainConfig(BaseModel):
    """Timing for waiting on users to finish."""

    timeout: float = Field(default=DRAIN_TIMEOUT, ge=0)
    poll_interval: float = Field(default=DRAIN_POLL_INTERVAL, ge=0)

    def policy(self) -> RetryPolicy:
        return RetryPolicy(timeout=self.timeout, interval=self.poll_interval)


class CoordinationConfig(BaseModel):
    """Root configuration for devcoord."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    lock: LockConfig = Field(default_factory=LockConfig)
    drain: DrainConfig = Field(default_factory=DrainConfig)


def load_config(config_path: Path | None = None) -> CoordinationConfig:
    """Load configuration.

    Args:
        config_path: TOML file to read; falls back to ``$DEVCOORD_CONFIG``

    Returns:
        Loaded configuration, or defaults if no config file exists.
        ``$DEVCOORD_DIR`` overrides the coordination directory either way.
    """
    if config_path is None and os.environ.get(CONFIG_ENV):
        config_path = Path(os.environ[CONFIG_ENV])

    if config_path is not None and config_path.exists():
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        config = CoordinationConfig.model_validate(data)
    else:
        config = CoordinationConfig()

    directory = os.environ.get(DIRECTORY_ENV)
    if directory:
        config.paths.directory = Path(directory)
    return config


def write_config_template(config_path: Path) -> Path:
    """Write default config template.

    Args:
        config_path: Destination TOML file

    Returns:
        Path to the written config file
    """
    template = {
        "paths": {
            "directory": str(default_directory()),
            "lock": LOCK_NAME,
            "state": STATE_NAME,
            "users_count": USERS_COUNT_NAME,
            "users_list": USERS_LIST_NAME,
            "stop_request": STOP_REQUEST_NAME,
        },
        "lock": {
            "timeout": LOCK_TIMEOUT,
            "retry_interval": LOCK_RETRY_INTERVAL,
            "max_age": MAX_LOCK_AGE,
        },
        "drain": {"timeout": DRAIN_TIMEOUT, "poll_interval": DRAIN_POLL_INTERVAL},
    }
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "wb") as f:
        tomli_w.dump(template, f)
    return config_path
