from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str
    storage_timeout_seconds: float = 5.0

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    change_bus: str = "memory"  # memory | redis

    # API
    api_port: int = 8000
    log_level: str = "INFO"

    # Security
    internal_api_secret: str  # HMAC secret for client->API request signing
    auth_max_skew_seconds: int = 300  # Signed timestamps older or newer than this are rejected

    # Discovery
    discovery_default_batch: int = 20
    discovery_max_batch: int = 100

    # Messaging
    message_max_length: int = 2000
    recent_match_window_hours: int = 24

    # Push notifications
    expo_push_url: str = "https://exp.host/--/api/v2/push/send"
    push_timeout_seconds: float = 10.0
    push_preview_length: int = 100

    # Environment
    environment: str = "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


settings = Settings()
