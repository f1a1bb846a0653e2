"""
ThetaFlowz - Configuration Management

Pydantic Settings: loads from .env, validates all configuration at startup.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Core ──
    app_env: str = "development"
    app_debug: bool = True

    # ── Accounts & Entitlements ──
    trial_days: int = 7
    admin_emails: str = "ordonezjosue@gmail.com"

    @property
    def admin_email_list(self) -> list[str]:
        """Parse comma-separated admin emails into a lowercase list."""
        return [e.strip().lower() for e in self.admin_emails.split(",") if e.strip()]

    # ── Client-local persistence ──
    storage_path: str = ".thetaflowz/storage.json"

    # ── Alpha Vantage (provider A) ──
    alphavantage_api_key: str = ""
    alphavantage_base_url: str = "https://www.alphavantage.co"

    # ── Finnhub (provider B) ──
    finnhub_api_key: str = ""
    finnhub_base_url: str = "https://finnhub.io/api/v1"

    # ── Polygon.io (provider C) ──
    polygon_api_key: str = ""
    polygon_base_url: str = "https://api.polygon.io"

    # ── Aggregation ──
    provider_timeout_seconds: float = 8.0
    circuit_failure_threshold: int = 5
    circuit_recovery_seconds: float = 30.0
    search_result_limit: int = 5
    history_max_bars: int = 30

    # ── Screener ──
    screener_batch_size: int = 10

    # ── CORS ──
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance, created once and reused everywhere."""
    return Settings()
