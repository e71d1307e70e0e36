"""Configuration utilities for environment-based settings."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

DEFAULT_PORT = 8000


def load_env(dotenv_path: Optional[str] = None) -> None:
    """Load environment variables from a .env file without overriding existing values."""
    path = Path(dotenv_path or ".env")
    load_dotenv(dotenv_path=str(path), override=False)


@dataclass(frozen=True)
class Settings:
    """Structured configuration values for the menu API."""

    database_url: str = ""
    database_name: str = ""
    port: int = DEFAULT_PORT
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @property
    def has_database(self) -> bool:
        return bool(self.database_url and self.database_name)


def _parse_log_level(value: str) -> str:
    level = value.strip().upper()
    return level if isinstance(logging.getLevelName(level), int) else "INFO"


def _parse_port(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        return DEFAULT_PORT
    return parsed if parsed > 0 else DEFAULT_PORT


@lru_cache(maxsize=1)
def get_settings(dotenv_path: Optional[str] = None) -> Settings:
    """Return cached settings, ensuring environment variables are loaded once."""
    load_env(dotenv_path)
    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    return Settings(
        database_url=os.getenv("DATABASE_URL", ""),
        database_name=os.getenv("DATABASE_NAME", ""),
        port=_parse_port(os.getenv("PORT", str(DEFAULT_PORT))),
        log_level=_parse_log_level(os.getenv("LOG_LEVEL", "INFO")),
        cors_origins=origins or ["*"],
    )
