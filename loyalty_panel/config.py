from functools import lru_cache

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "Loyalty Panel"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./loyalty_panel.db"

    # Security settings
    secret_key: str = "change-me"
    access_token_expire_minutes: int = 60 * 24

    # CORS settings
    allowed_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Logging settings ("text" or "json")
    log_level: str | None = None
    log_format: str = "text"

    # Push notification provider (OneSignal)
    onesignal_app_id: str = ""
    onesignal_rest_api_key: str = ""
    onesignal_api_url: str = "https://onesignal.com/api/v1"
    onesignal_timeout_seconds: float = 15.0

    # Segment preview schedules a notification this far ahead, then cancels it
    preview_schedule_days: int = 7
    provider_max_schedule_days: int = 30

    # Session store keeps the resolved user for this long
    session_user_cache_seconds: int = 30

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def effective_log_level(self) -> str:
        """LOG_LEVEL if set, otherwise DEBUG in development and INFO elsewhere."""
        if self.log_level:
            return self.log_level.upper()
        return "DEBUG" if self.environment == "development" else "INFO"

    @property
    def push_provider_configured(self) -> bool:
        return bool(self.onesignal_app_id and self.onesignal_rest_api_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
