"""
Runtime configuration helpers for the feed client core.

Loads FEEDSYNC_* variables from the environment and from the .env file
located in the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding variables already present in the environment
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    api_base_url: str = Field(default="http://localhost:5000", alias="FEEDSYNC_API_BASE_URL")
    request_timeout: float = Field(default=15.0, alias="FEEDSYNC_REQUEST_TIMEOUT")

    # Local key/value store; None keeps everything in memory
    session_store_path: str | None = Field(default=None, alias="FEEDSYNC_SESSION_STORE")

    # Pagination
    posts_page_size: int = Field(default=10, alias="FEEDSYNC_POSTS_PAGE_SIZE")
    videos_page_size: int = Field(default=18, alias="FEEDSYNC_VIDEOS_PAGE_SIZE")
    scroll_proximity_px: int = Field(default=50, alias="FEEDSYNC_SCROLL_PROXIMITY")

    # Discard responses older than the latest dispatch for the same (operation, target) pair
    toggle_sequence_guard: bool = Field(default=False, alias="FEEDSYNC_TOGGLE_SEQUENCE_GUARD")

    log_level: str = Field(default="INFO", alias="FEEDSYNC_LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
