"""Runtime configuration.

Values come from ``IMS_*`` environment variables or a ``.env`` file in the
working directory, e.g.::

    IMS_DATA_DIR=/var/lib/ims
    IMS_AUTO_APPROVAL_DELAY_SECONDS=3600
    IMS_SWEEP_INTERVAL_SECONDS=5
    IMS_LOW_STOCK_CHECK_INTERVAL_SECONDS=3600
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ims.domain.model.catalog import DEFAULT_MINIMUM_STOCK_THRESHOLD


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="IMS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # None = the repository's own data/ directory
    data_dir: Path | None = None

    auto_approval_delay_seconds: float = Field(default=60.0, ge=0)
    sweep_interval_seconds: float = Field(default=5.0, gt=0)
    auto_receive_after_approval: bool = False
    low_stock_check_interval_seconds: float = Field(default=3600.0, gt=0)

    # how long to wait for another process holding a data-file or stock-key lock
    lock_timeout_seconds: float = Field(default=30.0, gt=0)

    default_minimum_stock_threshold: int = Field(default=DEFAULT_MINIMUM_STOCK_THRESHOLD, ge=0)

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def auto_approval_delay(self) -> timedelta:
        return timedelta(seconds=self.auto_approval_delay_seconds)

    @property
    def low_stock_check_interval(self) -> timedelta:
        return timedelta(seconds=self.low_stock_check_interval_seconds)


def get_settings() -> Settings:
    return Settings()
