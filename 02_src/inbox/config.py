"""Project-level configuration and path helpers."""

import os
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "inbox.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DEFAULT_PAGE_SIZE = int(os.getenv("SIDEBAR_PAGE_SIZE", "25"))
MAX_PAGE_SIZE = 50

FEED_POLL_INTERVAL = float(os.getenv("FEED_POLL_INTERVAL", "2.0"))
FEED_RETRY_DELAY = float(os.getenv("FEED_RETRY_DELAY", "1.0"))


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def resolve_profile_cache_size(env_value: str | None = None) -> int | None:
    """Resolve PROFILE_CACHE_SIZE; None means the cache lives for the session."""
    raw = env_value if env_value is not None else os.getenv("PROFILE_CACHE_SIZE")
    if not raw:
        return None

    size = int(raw)
    return size if size > 0 else None


def clamp_limit(limit: int | None) -> int:
    """Clamp a requested page size into [1, MAX_PAGE_SIZE]; a missing or zero limit means the default."""
    if not limit:
        return DEFAULT_PAGE_SIZE

    return max(1, min(limit, MAX_PAGE_SIZE))
