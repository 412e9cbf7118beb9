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
    """Return an OS-specific user data directory for ``app_name``.

    ``TASKLINE_DATA_DIR`` in the environment wins over the platform default.
    """

    platform_id = (platform or sys.platform).lower()
    environ = dict(os.environ if env is None else env)
    override = environ.get("TASKLINE_DATA_DIR")
    if override:
        return Path(override).expanduser()

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


APP_NAME = "Taskline"


DATA_DIR = get_default_data_dir(APP_NAME)
LOG_DIR = DATA_DIR / "logs"

DB_PATH = DATA_DIR / "tasks.db"
DB_URL = os.environ.get("TASKLINE_DB_URL") or f"sqlite:///{DB_PATH.as_posix()}"


@dataclass(frozen=True)
class PositionSettings:
    # Spacing between neighbours when appending or prepending.
    gap: int = 1000
    # Below this distance a midpoint insert falls back to top/bottom.
    min_gap: int = 10


POSITIONS = PositionSettings()


@dataclass(frozen=True)
class ViewSettings:
    default_timezone: str = "UTC"
    default_page_size: int = 20
    max_page_size: int = 100


VIEWS = ViewSettings()


@dataclass(frozen=True)
class TaskLimits:
    title_max_length: int = 255
    description_max_length: int = 2000


LIMITS = TaskLimits()


@dataclass(frozen=True)
class LoggingSettings:
    path: Path = LOG_DIR / "taskline.log"
    max_bytes: int = 1_000_000
    backup_count: int = 3
    level: str = os.environ.get("TASKLINE_LOG_LEVEL", "INFO")


LOGGING = LoggingSettings()


__all__ = [
    "APP_NAME",
    "DATA_DIR",
    "LOG_DIR",
    "DB_PATH",
    "DB_URL",
    "POSITIONS",
    "VIEWS",
    "LIMITS",
    "LOGGING",
    "PositionSettings",
    "ViewSettings",
    "TaskLimits",
    "LoggingSettings",
    "get_default_data_dir",
]
