"""Runtime settings, read from the environment with an optional ``.env`` file."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class Settings(BaseModel):
    backend_url: str = "http://127.0.0.1:4534"
    api_prefix: str = "/api/v1"
    poll_fast_seconds: float = 5.0
    poll_slow_seconds: float = 30.0
    clock_seconds: float = 1.0
    request_timeout: float = 10.0
    history_limit: int = 50
    search_history_limit: int = 8
    cache_dir: Path = Path(".cache")
    enable_logging: bool = True
    log_level: str = "info"

    @field_validator("poll_fast_seconds", "poll_slow_seconds", "clock_seconds", "request_timeout")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("interval must be > 0")
        return value

    @field_validator("history_limit", "search_history_limit")
    @classmethod
    def _positive_limit(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("limit must be > 0")
        return value


def _env(key: str, default: str) -> str:
    value = os.getenv(key)
    return value if value else default


def load_settings() -> Settings:
    # .env is optional; real environment variables win over it
    load_dotenv()
    return Settings(
        backend_url=_env("YGG_BACKEND_URL", "http://127.0.0.1:4534"),
        api_prefix=_env("YGG_API_PREFIX", "/api/v1"),
        poll_fast_seconds=_env("YGG_POLL_FAST_SECONDS", "5"),
        poll_slow_seconds=_env("YGG_POLL_SLOW_SECONDS", "30"),
        clock_seconds=_env("YGG_CLOCK_SECONDS", "1"),
        request_timeout=_env("YGG_REQUEST_TIMEOUT", "10"),
        history_limit=_env("YGG_HISTORY_LIMIT", "50"),
        search_history_limit=_env("YGG_SEARCH_HISTORY_LIMIT", "8"),
        cache_dir=_env("YGG_CACHE_DIR", ".cache"),
        enable_logging=_env("ENABLE_LOGGING", "true").lower() == "true",
        log_level=_env("LOG_LEVEL", "info"),
    )


def setup_logging(settings: Settings) -> logging.Logger:
    log = logging.getLogger("ygg")
    if not log.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(h)
    if settings.enable_logging:
        log.setLevel(settings.log_level.upper())
    else:
        log.setLevel(logging.CRITICAL + 1)
    return log
