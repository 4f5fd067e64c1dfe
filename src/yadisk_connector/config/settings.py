"""Application configuration settings."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class YandexDiskSettings(BaseSettings):
    """Yandex Disk REST API configuration."""

    oauth_token: str = Field(default="", description="Pre-obtained OAuth token")
    base_url: str = Field(default="https://cloud-api.yandex.net/v1/disk")

    model_config = SettingsConfigDict(env_prefix="YANDEX_DISK_")


class DatabaseSettings(BaseSettings):
    """Checkpoint database configuration."""

    url: str = Field(default="sqlite:///./data/yadisk_connector.db")

    model_config = SettingsConfigDict(env_prefix="DB_")


class SchedulingSettings(BaseSettings):
    """Scheduling configuration."""

    poll_interval_minutes: int = Field(default=1)
    misfire_grace_seconds: int = Field(default=60)

    model_config = SettingsConfigDict(env_prefix="SCHEDULE_")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")
    format: str = Field(default="json")
    file_path: Optional[str] = Field(default="./logs/yadisk_connector.log")

    model_config = SettingsConfigDict(env_prefix="LOG_")


class WebSettings(BaseSettings):
    """Health/status web server configuration."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)

    model_config = SettingsConfigDict(env_prefix="WEB_")


class AppSettings(BaseSettings):
    """Main application settings."""

    name: str = Field(default="Yandex Disk Connector")
    version: str = Field(default="1.0.0")
    environment: str = Field(default="development")

    # Sub-settings
    yandex_disk: YandexDiskSettings = YandexDiskSettings()
    database: DatabaseSettings = DatabaseSettings()
    scheduling: SchedulingSettings = SchedulingSettings()
    logging: LoggingSettings = LoggingSettings()
    web: WebSettings = WebSettings()

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
    )


# Global settings instance
settings = AppSettings()


def get_settings() -> AppSettings:
    """Get application settings."""
    return settings
