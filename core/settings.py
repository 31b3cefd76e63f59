import os
from dataclasses import dataclass
from typing import Literal

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file automatically
load_dotenv()


@dataclass(frozen=True)
class Credentials:
    """Operator-supplied Zoho credentials. Immutable at runtime."""

    client_id: str
    client_secret: str
    refresh_token: str
    account_id: str
    api_key: str

    def missing_fields(self) -> list[str]:
        return [name for name, value in vars(self).items() if not value]

    def is_complete(self) -> bool:
        return not self.missing_fields()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20
    DATABASE_POOL_TIMEOUT: int = 30
    DATABASE_POOL_RECYCLE: int = 3600

    # Zoho Payments gateway
    ZOHO_GATEWAY_ENABLED: bool = True
    ZOHO_GATEWAY_TITLE: str = "Zoho Pay"
    ZOHO_CLIENT_ID: str = ""
    ZOHO_CLIENT_SECRET: str = ""
    ZOHO_REFRESH_TOKEN: str = ""
    ZOHO_ACCOUNT_ID: str = ""
    ZOHO_API_KEY: str = ""
    ZOHO_BUSINESS_NAME: str = ""
    ZOHO_DOMAIN: str = "IN"
    ZOHO_ACCOUNTS_BASE: str = "https://accounts.zoho.in"
    ZOHO_PAYMENTS_BASE: str = "https://payments.zoho.in"
    ZOHO_WIDGET_SCRIPT_URL: str = (
        "https://static.zohocdn.com/zpay/zpay-js/v1/zpayments.js"
    )

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: float = 10.0
    HTTP_RETRY_ATTEMPTS: int = 3
    HTTP_RETRY_WAIT_SECONDS: float = 0.5

    # Token lifecycle
    TOKEN_REFRESH_THRESHOLD_MINUTES: int = 59
    TOKEN_REFRESH_INTERVAL_MINUTES: int = 55
    TOKEN_SCHEDULER_ENABLED: bool = True

    # Confirmation integrity tokens
    INTEGRITY_SECRET: str = "change-me"
    INTEGRITY_TOKEN_TTL_MINUTES: int = 1440
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # App settings
    APP_NAME: str = "Zoho Payments Gateway"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "test", "production"] = "development"

    # Observability (Optional)
    OTEL_EXPORTER_OTLP_ENDPOINT: str = "http://localhost:4317"
    OTEL_SERVICE_NAME: str = "zoho-payments-gateway"

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore", frozen=True
    )

    def __init__(self, **kwargs):
        # Check for DATABASE_URL before calling parent constructor
        if not os.getenv("DATABASE_URL") and "DATABASE_URL" not in kwargs:
            raise RuntimeError(
                "DATABASE_URL not set; create .env or export the variable"
            )
        super().__init__(**kwargs)

    @property
    def credentials(self) -> Credentials:
        return Credentials(
            client_id=self.ZOHO_CLIENT_ID,
            client_secret=self.ZOHO_CLIENT_SECRET,
            refresh_token=self.ZOHO_REFRESH_TOKEN,
            account_id=self.ZOHO_ACCOUNT_ID,
            api_key=self.ZOHO_API_KEY,
        )
