"""Centralized application configuration."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
import os
import sys


def get_default_data_dir(
    app_name: str,
    *,
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Return an OS-specific user data directory for ``app_name``."""

    platform_id = (platform or sys.platform).lower()
    environ = dict(env or os.environ)
    home_dir = Path(home or Path.home())
    sanitized = app_name.strip() or "app"
    sanitized = sanitized.replace("/", "-").replace("\\", "-")

    if platform_id.startswith("win"):
        base = Path(environ.get("APPDATA") or home_dir / "AppData" / "Roaming")
    elif platform_id == "darwin":
        base = Path(environ.get("APPDATA") or home_dir / "Library" / "Application Support")
    else:
        base = Path(environ.get("XDG_DATA_HOME") or home_dir / ".local" / "share")

    return (base.expanduser() / sanitized)


APP_NAME = "Pinmark"
DATA_DIR_ENV = "PINMARK_DATA_DIR"


def resolve_data_dir(env: Optional[Mapping[str, str]] = None) -> Path:
    environ = env if env is not None else os.environ
    override = (environ.get(DATA_DIR_ENV) or "").strip()
    if override:
        return Path(override).expanduser()
    return get_default_data_dir(APP_NAME, env=environ)


DATA_DIR = resolve_data_dir()
SECRETS_DIR = DATA_DIR / "secrets"
LOG_DIR = DATA_DIR / "logs"

for _dir in (DATA_DIR, SECRETS_DIR, LOG_DIR):
    _dir.mkdir(parents=True, exist_ok=True)


DB_PATH = DATA_DIR / "pinmark.db"
CONFIG_PATH = DATA_DIR / "config.json"
CREDENTIAL_PATH = SECRETS_DIR / "pinboard_credential.json"
LOG_PATH = LOG_DIR / "pinmark.log"


@dataclass(frozen=True)
class PinboardSettings:
    base_url: str = "https://api.pinboard.in/v1"
    min_request_interval_sec: float = 3.0
    default_rate_limit_retry_sec: int = 30
    error_message_limit: int = 220
    request_timeout_sec: float = 30.0
    user_agent: str = f"{APP_NAME}/0.1"


PINBOARD = PinboardSettings()


@dataclass(frozen=True)
class QueueSettings:
    min_delay_sec: int = 3
    max_attempts: int = 12
    default_retry_delay_sec: int = 15
    list_limit: int = 50


QUEUE = QueueSettings()


@dataclass(frozen=True)
class WorkerSettings:
    tick_interval_sec: float = 4.0
    batch_size: int = 5
    manual_batch_size: int = 25
    min_batch_size: int = 1
    max_batch_size: int = 25


WORKER = WorkerSettings()


@dataclass(frozen=True)
class LoggingSettings:
    path: Path = LOG_PATH
    level: str = "INFO"
    max_bytes: int = 1_000_000
    backup_count: int = 3


LOGGING = LoggingSettings()


__all__ = [
    "APP_NAME",
    "DATA_DIR",
    "DATA_DIR_ENV",
    "SECRETS_DIR",
    "LOG_DIR",
    "DB_PATH",
    "CONFIG_PATH",
    "CREDENTIAL_PATH",
    "LOG_PATH",
    "PINBOARD",
    "QUEUE",
    "WORKER",
    "LOGGING",
    "get_default_data_dir",
    "resolve_data_dir",
]
