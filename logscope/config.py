"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"
LOGS_DIR = PROJECT_ROOT / "logs"
DEFAULT_DB_PATH = DATA_DIR / "logs.sqlite"
DEFAULT_LOG_PATH = LOGS_DIR / "logscope.log"

# Defaults shared by the query engine and the view-state holders
DEFAULT_PAGE_SIZE = 50
DEFAULT_MAX_BUCKETS = 80
RANGE_DEBOUNCE_SECONDS = 0.2
HISTOGRAM_REFRESH_SECONDS = 0.5
STATUS_POLL_INTERVAL_SECONDS = 5.0

# Vite dev server ports
DEFAULT_CORS_ORIGINS = ("http://localhost:5173", "http://localhost:5174")


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


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _env_list(name: str, default: tuple[str, ...]) -> list[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Runtime settings, read from the environment."""

    database_url: str | None = None
    log_level: str = "INFO"
    api_host: str = "localhost"
    api_port: int = 8000
    page_size: int = DEFAULT_PAGE_SIZE
    max_buckets: int = DEFAULT_MAX_BUCKETS
    range_debounce_seconds: float = RANGE_DEBOUNCE_SECONDS
    histogram_refresh_seconds: float = HISTOGRAM_REFRESH_SECONDS
    status_poll_interval_seconds: float = STATUS_POLL_INTERVAL_SECONDS
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (after .env is loaded)."""
        return cls(
            database_url=os.getenv("DATABASE_URL") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            api_host=os.getenv("API_HOST", "localhost"),
            api_port=_env_int("API_PORT", 8000),
            page_size=_env_int("LOGS_PAGE_SIZE", DEFAULT_PAGE_SIZE),
            max_buckets=_env_int("HISTOGRAM_MAX_BUCKETS", DEFAULT_MAX_BUCKETS),
            range_debounce_seconds=_env_int(
                "RANGE_DEBOUNCE_MS", int(RANGE_DEBOUNCE_SECONDS * 1000)
            )
            / 1000,
            histogram_refresh_seconds=_env_int(
                "HISTOGRAM_REFRESH_MS", int(HISTOGRAM_REFRESH_SECONDS * 1000)
            )
            / 1000,
            status_poll_interval_seconds=_env_int(
                "STATUS_POLL_INTERVAL_MS", int(STATUS_POLL_INTERVAL_SECONDS * 1000)
            )
            / 1000,
            cors_origins=_env_list("CORS_ORIGINS", DEFAULT_CORS_ORIGINS),
        )
