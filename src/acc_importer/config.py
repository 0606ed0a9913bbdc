"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    acc_client_id: str
    acc_client_secret: str
    acc_callback_url: str
    aps_base_url: str = "https://developer.api.autodesk.com"
    supabase_url: str
    supabase_service_key: str
    storage_bucket: str = "images"
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    worker_poll_seconds: float = 5.0
    worker_batch_size: int = 10
    worker_lease_seconds: int = 300
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def secure_cookies(self) -> bool:
        """Cookies carry the secure flag only in production."""
        return self.environment == "production"
