"""
Client configuration

Defaults can be overridden with ``HACKMUD_CHAT_*`` environment variables,
e.g. ``HACKMUD_CHAT_POLL_INTERVAL=5``.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.transport import DEFAULT_BASE_URL


class ChatSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="HACKMUD_CHAT_")

    base_url: str = DEFAULT_BASE_URL
    # Seconds
    poll_interval: float = Field(2.0, gt=0)
    account_sync_interval: float = Field(30 * 60.0, gt=0)
    # Per-request timeout in seconds, None waits forever
    timeout: Optional[float] = None
    # Sort each poll batch by timestamp instead of grouping per user
    sort_polled: bool = False

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")
