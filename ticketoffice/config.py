from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PKG_DIR = Path(__file__).resolve().parent
ENV_PATH = PKG_DIR.parent / ".env"

_STRAY_CHARS = re.compile(r"""['"`]""")


def sanitize_base(url: str | None) -> str:
    """Trim a base URL and drop stray ``<>`` wrappers and quotes."""
    s = (url or "").strip()
    if not s:
        return ""
    s = re.sub(r"^<|>$", "", s)
    return _STRAY_CHARS.sub("", s).rstrip("/")


class Settings(BaseSettings):
    # App
    app_env: str = "dev"
    app_url: str = "http://localhost:3000"
    log_level: str = "INFO"

    # Remote API
    api_base_url: str = "http://localhost:8080"

    # HTTP client
    http_timeout_seconds: float = 30.0
    http_retry_delay_ms: float = Field(300, ge=0)

    # Local state (favorites, region, session)
    storage_path: Path = Path.home() / ".ticketoffice" / "storage.db"

    # Search
    search_page_size: int = Field(9, ge=1)
    search_debounce_ms: float = Field(300, ge=0)

    # Region cache
    region_cache_hours: float = 24

    model_config = SettingsConfigDict(
        env_prefix="TICKETOFFICE_",
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("api_base_url", "app_url")
    @classmethod
    def _clean_url(cls, value: str) -> str:
        return sanitize_base(value)

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() in ("prod", "production")


@lru_cache
def get_settings() -> Settings:
    return Settings()
