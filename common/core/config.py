from typing import Optional, List
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.core.constants import EmailProvider, Environment


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Environment Profile
    environment: Environment = Environment.LOCAL

    # API Settings
    app_name: str = "subscription-reconciler"
    api_version: str = "1.0.0"
    debug: bool = False

    # Database Components
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "billing"
    db_use_nullpool: bool = False
    db_pool_size: int = 10
    db_pool_overflow: int = 5
    database_url_override: Optional[str] = None  # Full URL, e.g. for sqlite

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        if self.database_url_override:
            return self.database_url_override
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # OpenTelemetry
    otel_service_name: str = "subscription-reconciler"
    otel_service_version: str = "1.0.0"

    # Axiom (exporters are only attached when a token is configured)
    axiom_token: Optional[str] = None
    axiom_dataset: Optional[str] = None

    # Rate limiting
    rate_limit_storage_uri: str = "memory://"

    # Billing - Stripe (payments)
    stripe_secret_key: str = ""
    stripe_publishable_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_webhook_tolerance_seconds: int = 300
    stripe_api_version: str = "2024-04-10"
    stripe_timeout_seconds: float = 30.0
    stripe_max_network_retries: int = 2
    stripe_checkout_success_url: str = "http://localhost:3000/success"
    stripe_checkout_cancel_url: str = "http://localhost:3000/cancel"
    # Attaches the tok_visa card to new customers (test mode only)
    stripe_attach_test_payment_method: bool = False

    # Invoice PDF download
    invoice_fetch_timeout_seconds: float = 30.0

    # SMTP (notifications are only logged when no host is configured)
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from: Optional[str] = None
    smtp_use_tls: bool = True
    smtp_use_ssl: bool = False
    smtp_timeout_seconds: float = 30.0

    # Environment-aware properties
    @property
    def email_provider(self) -> EmailProvider:
        """Auto-select notification backend based on SMTP configuration."""
        return EmailProvider.SMTP if self.smtp_host else EmailProvider.LOG

    @property
    def email_from_address(self) -> str:
        """Sender address, falling back to the SMTP login."""
        return self.smtp_from or self.smtp_username or "no-reply@localhost"

    @property
    def cors_allowed_origins(self) -> List[str]:
        """Auto-select CORS origins based on environment."""
        if self.environment == Environment.LOCAL:
            return [
                "http://localhost:3000",
                "http://localhost:3001",
            ]
        return [
            "https://billing.example.com",
        ]


settings = Settings()
