"""Configuration management for LabTasker."""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///./labtasker.db"

    # Branding used in email templates
    app_name: str = "LabTasker"

    # Deadline notifications
    timezone: str = "UTC"
    deadline_check_time: str = "09:00"
    deadline_offsets_file: str = "config/deadline_offsets.yaml"
    fallback_recipient_id: str = ""
    identity_pattern: str = r"^[A-Za-z0-9_-]{1,64}$"
    scheduler_enabled: bool = True

    # Timeouts (seconds)
    io_timeout_seconds: float = 30.0
    cycle_timeout_seconds: float = 1800.0

    # Admin surface
    admin_api_token: str = ""

    # Email
    email_provider: str = "none"  # "smtp" | "sendgrid" | "resend" | "none"
    email_from: str = ""
    email_from_name: str = "LabTasker"
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    sendgrid_api_key: str = ""
    resend_api_key: str = ""

    # App
    log_level: str = "INFO"
    env: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
