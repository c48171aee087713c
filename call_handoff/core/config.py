"""Application configuration."""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Call-control REST API of the telephony platform
    call_control_api_url: str
    call_control_account_sid: str
    call_control_api_key: str
    call_control_timeout: float = 5.0

    # Public URL the platform uses to reach our webhooks
    base_url: Optional[str] = None

    # Ring-back media played to the caller while the transfer leg rings
    dial_music_url: str = "https://jambonz.app/us_ringback.mp3"

    # Per-call variable schema (defaults merged under each call's env_vars)
    app_schema_path: str = str(Path(__file__).resolve().parent.parent / "app_schema.yaml")

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
