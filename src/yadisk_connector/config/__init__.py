"""Configuration package for the Yandex Disk connector.

Only the environment settings are re-exported here; the trigger schema and
the file loader live in ``config.schema`` and ``config.loader`` because they
depend on the API client and logging packages, which import the settings.
"""

from .settings import (
    YandexDiskSettings,
    DatabaseSettings,
    SchedulingSettings,
    LoggingSettings,
    WebSettings,
    AppSettings,
    get_settings
)

__all__ = [
    "YandexDiskSettings",
    "DatabaseSettings",
    "SchedulingSettings",
    "LoggingSettings",
    "WebSettings",
    "AppSettings",
    "get_settings"
]
