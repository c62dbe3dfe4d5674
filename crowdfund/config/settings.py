"""Application settings using Pydantic for environment-based configuration."""
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIDTRANS_SNAP_URLS = {
    "sandbox": "https://app.sandbox.midtrans.com",
    "production": "https://app.midtrans.com",
}

MIDTRANS_API_URLS = {
    "sandbox": "https://api.sandbox.midtrans.com",
    "production": "https://api.midtrans.com",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: str = Field(..., description="PostgreSQL connection URL (asyncpg driver)")
    database_pool_size: int = Field(default=10, description="Database connection pool size")
    database_max_overflow: int = Field(default=20, description="Max database connection overflow")
    database_echo: bool = Field(default=False, description="Echo SQL queries (debug)")

    # JWT Configuration
    jwt_signing_key: str = Field(..., description="HMAC key used to sign access tokens")
    jwt_issuer: str = Field(default="crowdfund", description="Token issuer name")
    jwt_expiry_minutes: int = Field(default=60, gt=0, description="Access token lifetime")

    # Midtrans Configuration
    midtrans_server_key: str = Field(..., description="Midtrans server key (secret)")
    midtrans_client_key: str = Field(..., description="Midtrans client key")
    midtrans_environment: str = Field(
        default="sandbox", description="Midtrans environment (sandbox/production)"
    )
    midtrans_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for Midtrans HTTP calls (seconds)"
    )

    # Uploads
    upload_dir: str = Field(default="images", description="Directory for uploaded images")
    max_upload_bytes: int = Field(
        default=5 * 1024 * 1024, gt=0, description="Largest accepted image upload"
    )

    # Application Configuration
    app_name: str = Field(default="crowdfund-api", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/production)")
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Debug mode")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=2000, description="API port")
    api_workers: int = Field(default=4, description="Number of API workers")
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:2000",
        description="CORS allowed origins (comma-separated)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    @field_validator("midtrans_environment")
    @classmethod
    def validate_midtrans_environment(cls, v: str) -> str:
        """Validate Midtrans environment name."""
        if v.lower() not in MIDTRANS_API_URLS:
            raise ValueError(
                f"Invalid Midtrans environment. Must be one of: {list(MIDTRANS_API_URLS)}"
            )
        return v.lower()

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"

    @property
    def is_sandbox(self) -> bool:
        """Check if using the Midtrans sandbox."""
        return self.midtrans_environment == "sandbox"

    @property
    def midtrans_snap_base_url(self) -> str:
        return MIDTRANS_SNAP_URLS[self.midtrans_environment]

    @property
    def midtrans_api_base_url(self) -> str:
        return MIDTRANS_API_URLS[self.midtrans_environment]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
