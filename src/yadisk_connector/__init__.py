"""Yandex Disk connector: change-polling trigger and file/folder operations."""

__version__ = "1.0.0"
