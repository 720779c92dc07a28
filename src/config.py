from __future__ import annotations

from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"
DB_FILE = ARTIFACTS_DIR / "fuel_pricing.db"


class AppSettings(BaseSettings):
    database_url: str = f"sqlite:///{DB_FILE}"
    yahoo_finance_base_url: str = "https://query1.finance.yahoo.com"
    exchange_rate_base_url: str = "https://api.exchangerate-api.com"
    http_timeout_seconds: float = 10.0
    market_data_refresh_seconds: int = 300
    auth_header: str = "X-User-Id"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()
