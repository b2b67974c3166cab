"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "OTP Auth"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "production"] = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_path: str = "./data/auth.db"

    # Session tokens
    jwt_secret_key: SecretStr | None = None  # Required, startup fails without it
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 1

    # Auth flow
    response_mode: Literal["json", "redirect"] = "json"
    require_verified_signin: bool = False  # Reject sign-in until email is verified

    # One-time passwords
    otp_length: int = 6
    otp_ttl_minutes: int = 10
    otp_max_attempts: int = 5  # Wrong guesses before the challenge is dropped
    otp_sweep_interval_seconds: float = 60.0

    # Mail (SMTP). Without a host, codes are written to the log instead.
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: SecretStr | None = None
    smtp_sender: str = "no-reply@localhost"
    smtp_use_tls: bool = True
    smtp_timeout_seconds: float = 10.0

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 10
    rate_limit_window: str = "minute"

    # Observability
    log_json: bool = False
    tracing_enabled: bool = False
    otlp_endpoint: str | None = None
    tracing_console_export: bool = False
    tracing_sample_rate: float = 1.0

    @property
    def secure_cookies(self) -> bool:
        """Whether session cookies carry the Secure attribute."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
