"""Runtime configuration loaded from the environment and an optional .env file."""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DATA_DIR = Path.home() / ".brainbuddy"
DEFAULT_DB_PATH = str(DATA_DIR / "brainbuddy.db")
DEFAULT_LOG_DIR = str(DATA_DIR / "logs")
DEFAULT_API_BASE = "http://localhost:5000/api"

SYNC_INTERVAL_SECONDS = 300
STATS_INTERVAL_SECONDS = 30
RECORD_TTL_DAYS = 30
HTTP_TIMEOUT_SECONDS = 10.0


@dataclass
class Settings:
    api_base: str = DEFAULT_API_BASE
    token: Optional[str] = None
    user_id: str = "local"
    db_path: str = DEFAULT_DB_PATH
    log_dir: str = DEFAULT_LOG_DIR
    sync_interval: int = SYNC_INTERVAL_SECONDS
    stats_interval: int = STATS_INTERVAL_SECONDS
    record_ttl_days: int = RECORD_TTL_DAYS
    http_timeout: float = HTTP_TIMEOUT_SECONDS


def _env_number(name: str, default, cast=int):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"Ignoring malformed {name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {name}={raw!r}, using {default}")
        return default
    return value


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build Settings from BRAINBUDDY_* environment variables.

    A .env file is read first (without overriding variables that are already
    set), so a developer can keep the token and API base out of the shell.
    """
    load_dotenv(dotenv_path=env_file)
    return Settings(
        api_base=os.getenv("BRAINBUDDY_API_BASE", DEFAULT_API_BASE).rstrip("/"),
        token=os.getenv("BRAINBUDDY_TOKEN") or None,
        user_id=os.getenv("BRAINBUDDY_USER", "local"),
        db_path=os.getenv("BRAINBUDDY_DB_PATH", DEFAULT_DB_PATH),
        log_dir=os.getenv("BRAINBUDDY_LOG_DIR", DEFAULT_LOG_DIR),
        sync_interval=_env_number("BRAINBUDDY_SYNC_INTERVAL", SYNC_INTERVAL_SECONDS),
        stats_interval=_env_number("BRAINBUDDY_STATS_INTERVAL", STATS_INTERVAL_SECONDS),
        record_ttl_days=_env_number("BRAINBUDDY_RECORD_TTL_DAYS", RECORD_TTL_DAYS),
        http_timeout=_env_number("BRAINBUDDY_HTTP_TIMEOUT", HTTP_TIMEOUT_SECONDS, cast=float),
    )
