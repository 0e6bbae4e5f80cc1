"""Application settings and logging setup resolved from environment variables."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
DEFAULT_PUBLIC_BASE_URL = "localhost:8000"
DEFAULT_CALENDAR_NAME = "My Courses"


def _default_database_url() -> str:
    """
    SQLite file in the user's home directory.

    Using a function instead of a constant keeps the home lookup out of import time.
    """
    base = Path.home() / ".duetrack"
    return f"sqlite:///{base / 'duetrack.db'}"


@dataclass
class Settings:
    """
    Runtime configuration.

    Fields left as None are resolved from environment variables, then from the
    built-in defaults. Values passed to the constructor always win.
    """

    site_url: Optional[str] = None
    public_base_url: Optional[str] = None
    database_url: Optional[str] = None
    calendar_name: Optional[str] = None
    log_level: Optional[str] = None

    def __post_init__(self) -> None:
        if self.site_url is None:
            self.site_url = (os.getenv("SITE_URL") or "").strip()
        if self.public_base_url is None:
            self.public_base_url = (os.getenv("PUBLIC_BASE_URL") or "").strip() or DEFAULT_PUBLIC_BASE_URL
        self.public_base_url = self.public_base_url.rstrip("/")
        if self.database_url is None:
            self.database_url = os.getenv("DATABASE_URL") or _default_database_url()
        if self.calendar_name is None:
            self.calendar_name = os.getenv("CALENDAR_NAME") or DEFAULT_CALENDAR_NAME
        if self.log_level is None:
            self.log_level = os.getenv("LOG_LEVEL") or "INFO"
        self.log_level = self.log_level.upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()


def setup_logging(level: str = "INFO") -> None:
    """Install a stdout handler on the root logger unless one already exists."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.debug("Logging initialized at %s", level)
