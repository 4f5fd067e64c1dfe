"""Database package for persisted trigger state."""

from .database import (
    DatabaseManager,
    get_db_manager,
    init_database,
    close_database
)

from .models import Base, StaticDataModel

__all__ = [
    "DatabaseManager",
    "get_db_manager",
    "init_database",
    "close_database",
    "Base",
    "StaticDataModel"
]
