# onboarding/core/settings.py
from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- Storage ---
    ONBOARDING_DB_PATH: str = "onboarding.db"

    # --- Pricing ---
    CURRENCY: str = "EUR"
    # card-scheme fee the provider passes through, in percentage points
    INTERCHANGE_OFFSET_PCT: Decimal = Decimal("0.2")

    # --- Template editor ---
    DEFAULT_TABLE_ROWS: int = 3
    DEFAULT_TABLE_COLS: int = 3
    DEFAULT_SECTIONS_PATH: Optional[str] = None  # None = bundled YAML

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()  # reads .env
