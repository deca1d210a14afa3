"""Application configuration loaded from environment variables.

Settings for the storage engine, token lifetimes, paging, authentication
cookies, activation email, and rate limiting. Uses pydantic-settings for
validation and .env file support.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Lifetimes in milliseconds
_THIRTY_MINUTES_MS = 30 * 60 * 1000
_FIVE_MINUTES_MS = 5 * 60 * 1000
_SIXTY_MINUTES_MS = 60 * 60 * 1000


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Storage
    # "sql": SQLAlchemy async engine (PostgreSQL in production, SQLite locally)
    # "mongo": MongoDB through motor
    storage_backend: Literal["sql", "mongo"] = "sql"
    database_url: str = "sqlite+aiosqlite:///./dsu.db"
    database_echo: bool = False
    mongo_url: str = "mongodb://localhost:27017"
    mongo_database: str = "dsu"

    # Registry seeding: JSON file of schema documents loaded at startup.
    # Empty means the schemas bundled with the package.
    seed_registry: bool = True
    registry_seed_file: str = ""

    # API
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Token and code lifetimes (milliseconds)
    authentication_token_lifetime_ms: int = _THIRTY_MINUTES_MS
    authorization_code_lifetime_ms: int = _FIVE_MINUTES_MS
    authorization_token_lifetime_ms: int = _SIXTY_MINUTES_MS

    # Paging: requests above the cap are rejected, never truncated
    max_page_size: int = 100

    # Authentication cookie
    auth_cookie_name: str = "omh_auth_token"
    auth_cookie_secure: bool = True
    auth_cookie_samesite: Literal["lax", "strict", "none"] = "lax"

    # Registration / activation
    activation_required: bool = False
    email_from: str = "noreply@dsu.example.org"
    resend_api_key: SecretStr = SecretStr("")
    backend_url: str = "http://localhost:8000"

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_auth: str = "10/minute"  # login, registration
    rate_limit_enabled: bool = True  # Disable for testing

    @model_validator(mode="after")
    def check_settings(self) -> "Settings":
        """Validate configuration invariants.

        Checks:
        - Lifetimes and the page-size cap must be positive
        - SameSite=None requires the Secure flag (browser requirement)
        - CORS must not use wildcard origin (incompatible with credentials)
        - Production must not run on an in-memory database
        - Production with activation enabled needs an email API key
        """
        for name in (
            "authentication_token_lifetime_ms",
            "authorization_code_lifetime_ms",
            "authorization_token_lifetime_ms",
            "max_page_size",
        ):
            if getattr(self, name) <= 0:
                msg = f"{name.upper()} must be positive. Got: {getattr(self, name)}"
                raise ValueError(msg)

        if self.auth_cookie_samesite == "none" and not self.auth_cookie_secure:
            msg = (
                "AUTH_COOKIE_SECURE must be true when AUTH_COOKIE_SAMESITE=none. "
                "Browsers reject SameSite=None cookies without the Secure flag."
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials (cookies) which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.storage_backend == "sql" and ":memory:" in self.database_url:
                msg = "Cannot use an in-memory database in production."
                raise ValueError(msg)
            if (
                self.activation_required
                and not self.resend_api_key.get_secret_value()
            ):
                msg = (
                    "RESEND_API_KEY must be set when ACTIVATION_REQUIRED=true "
                    "in production."
                )
                raise ValueError(msg)

        return self


settings = Settings()
