"""Application configuration."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from collab_history.core.history.chunking import DEFAULT_THRESHOLD_MS


class Settings(BaseSettings):
    """Settings loaded from `COLLAB_HISTORY_*` environment variables or a `.env` file."""

    model_config = SettingsConfigDict(
        env_prefix="COLLAB_HISTORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "collab-history"
    log_level: str = "INFO"

    # Gap between consecutive operations that closes a chunk. Larger values give a
    # handful of large diffs, smaller ones many tiny diffs.
    chunk_threshold_ms: int = Field(default=DEFAULT_THRESHOLD_MS, ge=0)

    # None sizes the replay pool to os.cpu_count()
    replay_workers: Optional[int] = Field(default=None, ge=1)


settings = Settings()
