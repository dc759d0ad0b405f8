"""
Settings read from the environment (and a local .env if present).

DATABASE_URL            SQLAlchemy URL for the durable room store
APP_ENV                 "local" creates tables at startup; "test" does not
WORDDUEL_POLL_INTERVAL  seconds between completion polls
WORDDUEL_WORDLIST_URL   optional remote word list (one word per line)
WORDDUEL_HARD_MODE      default hard-mode preference
LOG_LEVEL               root log level
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

# dev convenience; in prod the platform injects env vars
load_dotenv()

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///./wordduel.db"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    app_env: str = "local"
    poll_interval: float = 1.0
    word_list_url: Optional[str] = None
    hard_mode: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        poll_interval = float(os.getenv("WORDDUEL_POLL_INTERVAL", "1.0"))
        if poll_interval <= 0:
            raise ValueError("WORDDUEL_POLL_INTERVAL must be positive.")
        return cls(
            database_url=os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
            app_env=os.getenv("APP_ENV", "local"),
            poll_interval=poll_interval,
            word_list_url=os.getenv("WORDDUEL_WORDLIST_URL") or None,
            hard_mode=_as_bool(os.getenv("WORDDUEL_HARD_MODE", "false")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(level: str = "INFO") -> None:
    """basicConfig does nothing if the host already set up handlers; the level still applies."""
    logging.basicConfig(format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    logging.getLogger().setLevel(level)
