"""
Ticketflow - Configuration Management
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from pathlib import Path

DEFAULT_SEED_USERS_FILE = Path(__file__).parent / "data" / "seed_users.json"


class Settings(BaseSettings):
    """Application settings"""

    # FastAPI
    fastapi_env: str = "development"
    fastapi_host: str = "0.0.0.0"
    fastapi_port: int = 8000

    # Gemini (ticket analysis)
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    analysis_timeout_seconds: float = 30.0

    # Storage
    store_backend: str = "memory"  # memory | supabase
    seed_users_file: str = str(DEFAULT_SEED_USERS_FILE)  # memory store only; "" to skip

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: str = ""

    # Email (SMTP)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    email_from: str = "noreply@aisupport.com"
    frontend_url: str = "http://localhost:3000"

    # Pipeline runner
    pipeline_max_attempts: int = 3
    pipeline_retry_base_seconds: float = 1.0

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def use_supabase(self) -> bool:
        """Whether repositories should talk to Supabase"""
        return self.store_backend.lower() == "supabase"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
