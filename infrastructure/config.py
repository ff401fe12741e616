"""Application settings"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Service settings
    app_name: str = "Vacation Rental Booking API"
    app_version: str = "1.0.0"
    log_level: str = "INFO"

    # Auth settings
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Booking core settings
    activity_timeout_seconds: float = 5.0
    dashboard_recent_limit: int = 5
    completion_sweep_interval_seconds: float = 3600.0

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
