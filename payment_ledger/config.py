from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Payment Ledger Service"
    APP_ENV: str = "development"
    API_V1_PREFIX: str = "/api/v1"

    DATABASE_URL: str = "sqlite:///./payment_ledger.db"
    TEST_DATABASE_URL: str = "sqlite://"
    SECRET_KEY: str = "change-me"

    # Webhook signature secrets; verification is skipped when empty
    RAZORPAY_WEBHOOK_SECRET: str = ""
    CASHFREE_WEBHOOK_SECRET: str = ""

    SUBSCRIPTION_PERIOD_DAYS: int = 30
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()


settings = get_settings()
