"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

# .env lives at the project root (one level above backend/)
_ENV_FILE = Path(__file__).resolve().parents[3] / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "Support Chat Backend"
    debug: bool = False
    cors_origins: str = "http://localhost:5173,http://localhost:8080"

    # Supabase (server side only)
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # Widget transport
    api_base_url: str = "http://localhost:8000/api"
    request_timeout_seconds: float = 10.0

    # Polling cadences
    foreground_poll_seconds: float = 5.0
    background_poll_seconds: float = 10.0

    # Resolution countdown
    resolution_countdown_start: int = 15
    countdown_tick_seconds: float = 1.0

    # Local identity storage
    identity_store_path: Path = Path.home() / ".support_chat" / "local_storage.json"
    identity_store_key: str = "support_chat_visitor"

    company_name: str = "Corte & Arte"

    # Operator e-mail alert on new visitor messages (Resend); empty key disables it
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com/emails"
    notification_sender: str = "Corte & Arte <onboarding@resend.dev>"
    support_notification_email: str = ""

    class Config:
        env_file = str(_ENV_FILE)
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
