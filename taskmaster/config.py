from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

def _resolve_project_root() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]


PROJECT_ROOT = _resolve_project_root()


def load_env() -> None:
    env_name = os.getenv("APP_ENV", "development")
    candidates = [Path.cwd(), PROJECT_ROOT]
    for base in candidates:
        env_path = base / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            break

    for base in candidates:
        env_specific = base / f".env.{env_name}"
        if env_specific.exists():
            load_dotenv(env_specific, override=True)
            break


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str = "INFO"
    log_dir: str = "logs"
    default_reminder_minutes: int = 15
    upcoming_days: int = 7
    reminder_poll_seconds: int = 30


load_env()

DATABASE_URL = os.getenv("DATABASE_URL", "").strip() or f"sqlite:///{PROJECT_ROOT / 'taskmaster.db'}"

SETTINGS = Settings(
    database_url=DATABASE_URL,
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_dir=os.getenv("LOG_DIR", "logs"),
    default_reminder_minutes=_int_env("DEFAULT_REMINDER_MINUTES", 15),
    upcoming_days=_int_env("UPCOMING_DAYS", 7),
    reminder_poll_seconds=_int_env("REMINDER_POLL_SECONDS", 30),
)
