"""Application settings.

All values are read from the environment (or a local ``.env`` file) through
pydantic-settings. Import the singleton from ``aify.core.config``.
"""

from enum import Enum
from typing import Optional

from pydantic import PostgresDsn, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment. Local and test log plain text, the rest JSON."""

    LOCAL = "local"
    TEST = "test"
    DEV = "dev"
    PRD = "prd"


class Settings(BaseSettings):
    """Backend configuration.

    Attributes:
    ----------
        PROJECT_NAME: Name shown in the OpenAPI document.
        ENVIRONMENT: Deployment environment, drives log format and error detail.
        LOG_LEVEL: Root log level for the ``aify`` logger.
        DEBUG: Include stack traces in 500 responses.
        AUTH_ENABLED: Verify bearer tokens against Auth0. When disabled, every
            request runs as the local principal below.
        FREE_TIER_GRANT: Credits granted on provisioning and on every free-tier rollover.
        FREE_TIER_PERIOD_DAYS: Length of a free-tier credit period.
        GENERATION_COST: Credits consumed by one design generation.
        DB_CREATE_SCHEMA: Create missing tables at startup.
        BILLING_REJECT_STALE_EVENTS: Skip billing events older than the newest
            event already applied to the account.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "Aify Interiors"
    ENVIRONMENT: Environment = Environment.LOCAL
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
    TESTING: bool = False

    # Authentication
    AUTH_ENABLED: bool = False
    AUTH0_DOMAIN: Optional[str] = None
    AUTH0_AUDIENCE: Optional[str] = None
    LOCAL_PRINCIPAL_ID: str = "local|system"
    LOCAL_PRINCIPAL_EMAIL: str = "admin@aify.local"

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "aify"
    POSTGRES_PASSWORD: str = "aify"
    POSTGRES_DB: str = "aify"
    POSTGRES_SSLMODE: str = "prefer"
    DB_POOL_SIZE: int = 20
    DB_POOL_MAX_OVERFLOW: int = 40
    ACCOUNT_LOCK_TIMEOUT_MS: int = 5000
    DB_CREATE_SCHEMA: bool = True

    # Credits
    FREE_TIER_GRANT: int = 3
    FREE_TIER_PERIOD_DAYS: int = 30
    GENERATION_COST: int = 1
    UPGRADE_URL: str = "/pricing"

    # Stripe
    STRIPE_ENABLED: bool = False
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_BASIC_PRICE_ID: Optional[str] = None
    STRIPE_INDIA_PRICE_ID: Optional[str] = None
    STRIPE_PROFESSIONAL_PRICE_ID: Optional[str] = None
    STRIPE_TOPUP_UNIT_AMOUNT_CENTS: int = 200
    STRIPE_TOPUP_CURRENCY: str = "usd"
    BILLING_PORTAL_RETURN_URL: str = "https://aifyinteriors.com/account"
    BILLING_REJECT_STALE_EVENTS: bool = True

    # Image generation
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_IMAGE_MODEL: str = "dall-e-3"
    OPENAI_IMAGE_SIZE: str = "1024x1024"
    OPENAI_IMAGE_QUALITY: str = "hd"
    OPENAI_TIMEOUT_SECONDS: float = 120.0

    # CORS
    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:3000", "https://aifyinteriors.com"]

    # Metrics
    METRICS_ENABLED: bool = False
    METRICS_PORT: int = 9090

    @field_validator("FREE_TIER_GRANT", "FREE_TIER_PERIOD_DAYS", "GENERATION_COST")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @computed_field  # type: ignore[misc]
    @property
    def SQLALCHEMY_ASYNC_DATABASE_URI(self) -> PostgresDsn:  # noqa: N802
        """Async SQLAlchemy connection URI built from the POSTGRES_* parts."""
        return PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_HOST,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    @property
    def is_local(self) -> bool:
        """Whether logs should be human readable rather than JSON."""
        return self.ENVIRONMENT in (Environment.LOCAL, Environment.TEST)
