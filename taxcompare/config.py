"""
config.py — taxcompare settings.

Usage:
    from taxcompare.config import settings
    print(settings.tax_fiscal_year)

Settings are a module-level singleton; the engine reads them only when the
caller does not pass a fiscal year or registry explicitly.
"""
import logging
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s — %(message)s"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore any extra env vars
    )

    # --- Tax rules ---
    # Fiscal year used when compare_regimes() is called without one
    tax_fiscal_year: str = "FY2024-25"
    # Optional JSON file of extra rule sets: {fiscal_year: {regime_id: {...}}}
    tax_rules_file: Optional[Path] = None

    # --- Application ---
    debug: bool = False


def configure_logging(config: Optional[Settings] = None) -> None:
    """Root logging setup for applications embedding the engine."""
    config = config or settings
    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format=LOG_FORMAT,
    )


# Module-level singleton: import this throughout the codebase
settings = Settings()
