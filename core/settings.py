from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CSV_URL = (
    "https://docs.google.com/spreadsheets/d/1geYxUhfSFmX4LhpZOJ7SGfWgaNpWVyVvhqWjT6RAj-I"
    "/export?format=csv&gid=0"
)
DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 1000
DEFAULT_ADMIN_EMAIL = "admin@iku.com"
ENV_PREFIX = "IKU_"


class DashboardSettings(BaseSettings):
    """Dashboard configuration, read from ``IKU_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    csv_url: str = DEFAULT_CSV_URL
    page_size: int = DEFAULT_PAGE_SIZE
    admin_email: str = DEFAULT_ADMIN_EMAIL
    firebase_api_key: str = ""

    @field_validator("page_size", mode="before")
    @classmethod
    def clamp_page_size(cls, v: object) -> int:
        try:
            size = int(v)
        except (TypeError, ValueError):
            return DEFAULT_PAGE_SIZE
        return max(1, min(size, MAX_PAGE_SIZE))

    @field_validator("csv_url", "admin_email", "firebase_api_key", mode="before")
    @classmethod
    def strip_text(cls, v: object, info) -> str:
        text = "" if v is None else str(v).strip()
        if text:
            return text
        # Blank values keep the field's default.
        return cls.model_fields[info.field_name].default


@lru_cache
def load_settings() -> DashboardSettings:
    return DashboardSettings()
