from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Legal Marketplace"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-Id"

    # ─────────── DATABASE ───────────
    database_url: str

    # ─────────── JWT / AUTH ───────────
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_minutes: int = 10080  # 7 days

    # ─────────── PAYMENTS ───────────
    payment_provider: str = "mock"  # mock | stripe
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_currency: str = "usd"
    public_base_url: str = "http://localhost:3000"
    dev_payment_secret: Optional[str] = None

    @property
    def mock_payments_enabled(self) -> bool:
        return self.environment == "dev" and self.payment_provider == "mock"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
