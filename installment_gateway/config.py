"""Configuration management using Pydantic Settings"""

from typing import Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./installments.db"

    # Payment gateway
    gateway_api_base: str = "http://localhost:8001"
    gateway_api_key: str = "dev-key"
    gateway_timeout_seconds: float = 5.0

    # Service
    service_name: str = "installment-gateway"
    log_level: str = "INFO"

    # Plans
    allowed_installment_counts: Tuple[int, ...] = (3, 6, 12)

    # Scheduler
    scheduler_enabled: bool = True
    # Cron expressions, evaluated in UTC
    reconciliation_cron: str = "0 9 * * *"  # daily 09:00
    housekeeping_cron: str = "0 2 * * 0"  # Sunday 02:00
    housekeeping_retention_days: int = 30


settings = Settings()
