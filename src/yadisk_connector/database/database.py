"""Engine and session management for the checkpoint database."""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .models import Base
from ..config.settings import get_settings
from ..utils.logging import get_logger


logger = get_logger("database")

SQLITE_PREFIX = "sqlite:///"


def _make_engine(database_url: str):
    if database_url.startswith("sqlite"):
        # one shared connection so in-memory databases survive across sessions
        return create_engine(
            database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False, "timeout": 20}
        )
    return create_engine(database_url, pool_pre_ping=True, pool_recycle=300)


class DatabaseManager:
    """Owns the engine and hands out transactional sessions to checkpoint stores."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or get_settings().database.url
        self.engine = _make_engine(self.database_url)
        self.SessionLocal = sessionmaker(autoflush=False, bind=self.engine)

        logger.info("Checkpoint database configured", database_url=self.database_url)

    def create_tables(self):
        """Create the ``static_data`` table, and the SQLite file's directory if needed."""
        if self.database_url.startswith(SQLITE_PREFIX) and ":memory:" not in self.database_url:
            Path(self.database_url[len(SQLITE_PREFIX):]).parent.mkdir(parents=True, exist_ok=True)

        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error("Checkpoint transaction rolled back", error=str(e))
            raise
        finally:
            session.close()

    def test_connection(self) -> bool:
        try:
            with self.session_scope() as session:
                session.execute(text("SELECT 1"))
        except Exception as e:
            logger.error("Checkpoint database unreachable", error=str(e))
            return False
        return True

    def dispose(self):
        self.engine.dispose()


_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Return the process-wide manager, creating one from settings on first use."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def init_database(database_url: Optional[str] = None, create_tables: bool = True) -> DatabaseManager:
    """Replace the process-wide manager and verify it can connect."""
    global _db_manager
    _db_manager = DatabaseManager(database_url)

    if create_tables:
        _db_manager.create_tables()

    if not _db_manager.test_connection():
        raise RuntimeError(f"Failed to connect to checkpoint database at {database_url}")

    return _db_manager


def close_database():
    global _db_manager
    if _db_manager:
        _db_manager.dispose()
        _db_manager = None
