"""
Configuration management for the Order Ledger backend.

Loads settings from .env via pydantic-settings.

Notes:
    - Transaction budgets (max wait / timeout) bound every order transaction
    - validate_production_settings() refuses the stub payment authorizer in production
"""
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Database ────────────────────────────────────────────────────
    database_url: str = "sqlite:///./data/order_ledger.db"

    # ── Transactions ────────────────────────────────────────────────
    transaction_max_wait_seconds: float = 5.0    # wait for a transaction slot
    transaction_timeout_seconds: float = 10.0    # total budget for the unit of work
    transaction_isolation_level: str = "READ COMMITTED"  # ignored on SQLite

    # ── Payments ────────────────────────────────────────────────────
    payment_provider: str = "stub"               # "stub" | "gateway"
    payment_stub_delay_seconds: float = 0.1
    payment_stub_approve: bool = True
    payment_gateway_url: str = ""
    payment_gateway_api_key: str = ""
    payment_gateway_timeout_seconds: float = 5.0

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"
    log_level: str = "INFO"
    api_port: int = 8080

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup.
        """
        if self.environment == "production":
            if "*" in self.cors_origins:
                raise ValueError(
                    "CORS_ORIGINS must not contain '*' in production. "
                    "Set explicit allowed origins."
                )
            if self.payment_provider == "stub":
                raise ValueError(
                    "PAYMENT_PROVIDER must not be 'stub' in production. "
                    "The stub authorizer approves every payment."
                )
            if self.payment_provider == "gateway" and not self.payment_gateway_url:
                raise ValueError(
                    "PAYMENT_GATEWAY_URL must be set when PAYMENT_PROVIDER=gateway."
                )
            logger.info("Production settings validated")
        else:
            warnings = []
            if self.payment_provider == "stub":
                warnings.append("PAYMENT_PROVIDER=stub (payments are simulated)")
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            for w in warnings:
                logger.warning(w)


# Global settings instance
settings = Settings()
