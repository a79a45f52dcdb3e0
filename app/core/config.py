from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "SafariPlus API"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # one JSON object per line instead of key=value console output
    # Comma-separated origins for CORS (e.g. https://safariplus.com,https://admin.safariplus.com). If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""

    DATABASE_URL: str = "sqlite:///./safariplus.db"

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render and others give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v
    REDIS_URL: str = "redis://localhost:6379/0"

    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 25
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "bookings@safariplus.local"

    SENDGRID_API_KEY: str = ""
    SENDGRID_FROM_EMAIL: str = ""

    CLIENT_BASE_URL: str = ""  # e.g. https://safariplus.com

    # Pesapal API v3
    PESAPAL_CONSUMER_KEY: str = ""
    PESAPAL_CONSUMER_SECRET: str = ""
    PESAPAL_API_URL: str = "https://cybqa.pesapal.com/pesapalv3"
    PESAPAL_IPN_URL: str = ""  # e.g. https://api.safariplus.com/api/v1/webhooks/pesapal
    PESAPAL_IPN_ID: str = ""

    # Flutterwave v3
    FLW_SECRET_KEY: str = ""
    FLW_SECRET_HASH: str = ""  # "Secret hash" from the dashboard; echoed back in the verif-hash header
    FLW_API_URL: str = "https://api.flutterwave.com"

    PAYMENT_PROVIDER_TIMEOUT_SECONDS: int = 20
    WEBHOOK_DEDUP_WINDOW_SECONDS: float = 5.0
    PLATFORM_COMMISSION_PERCENT: float = 12.0
    PAYMENTS_SANDBOX: bool = False  # If True, skip provider verification calls (local dev only; signatures are still checked)


settings = Settings()
