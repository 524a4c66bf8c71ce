from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Replaces the deprecated ``datetime.utcnow()`` while keeping datetimes
    naive so they stay compatible with SQLite (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "Review SRS"
    database_url: str = f"sqlite+aiosqlite:///{Path(__file__).resolve().parent.parent / 'data' / 'review_srs.db'}"
    due_items_limit: int = 20
    preview_locale: Literal["en", "zh"] = "en"
    fsrs_weights: list[float] | None = None  # 13 floats, overrides the defaults
    debug: bool = False

    model_config = {"env_prefix": "REVIEW_SRS_", "env_file": ".env"}


settings = Settings()
