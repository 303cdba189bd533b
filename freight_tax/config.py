"""Runtime settings for the freight tax ledger."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Settings read from ``FREIGHT_TAX_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="FREIGHT_TAX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_jurisdiction: str = Field(
        default="Ontario", description="Jurisdiction used when none is given"
    )
    export_dir: str = Field(
        default="exports", description="Directory for CSV ledger exports"
    )
    export_sort_key: str = Field(
        default="load_number", description="Load field used to order exports"
    )
    export_descending: bool = Field(
        default=True, description="Sort exported loads in descending order"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )


@lru_cache
def get_settings() -> LedgerSettings:
    """Get cached settings instance."""
    return LedgerSettings()
