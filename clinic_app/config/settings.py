import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AnyUrl, Field
from typing import List

env = os.getenv("APP_ENV", "development")
env_file = f".env.{env}"

class Settings(BaseSettings):
    database_url: AnyUrl
    # CORS origins can be overridden via CORS_ORIGINS env var (JSON list or comma-separated)
    cors_origins: List[str] = Field(default=["http://localhost:3000"])
    # JWT configuration (tokens are issued by the external identity provider)
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Scheduling
    clinic_timezone: str = "UTC"  # defines "now" for past-slot checks
    default_consultation_fee: float = 100.0
    default_slot_duration_minutes: int = 30

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=env_file,
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()
