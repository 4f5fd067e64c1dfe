"""Checkpoint store adapters used by the change poller."""

from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from sqlalchemy import select

from ..database.database import DatabaseManager, get_db_manager
from ..database.models import StaticDataModel
from ..utils.logging import get_logger


CHECKPOINT_KEY = "lastTimeChecked"
CHECKPOINT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class CheckpointStore(Protocol):
    """Single mutable cell of key/value state scoped to one trigger instance."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


def format_checkpoint(moment: datetime) -> str:
    """Serialize a checkpoint as an ISO-8601 UTC string with second precision."""
    return moment.astimezone(timezone.utc).strftime(CHECKPOINT_FORMAT)


def parse_checkpoint(value: str) -> datetime:
    """Parse a stored checkpoint; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class InMemoryCheckpointStore:
    """Dict-backed store, used for tests and one-off manual runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class SQLCheckpointStore:
    """Store backed by the ``static_data`` table, one namespace per trigger."""

    def __init__(self, namespace: str, db_manager: Optional[DatabaseManager] = None):
        self.namespace = namespace
        self.db_manager = db_manager or get_db_manager()
        self.logger = get_logger(self.__class__.__name__)

    def get(self, key: str) -> Optional[str]:
        with self.db_manager.session_scope() as session:
            row = session.execute(
                select(StaticDataModel).where(
                    StaticDataModel.namespace == self.namespace,
                    StaticDataModel.key == key
                )
            ).scalar_one_or_none()
            return row.value if row else None

    def set(self, key: str, value: str) -> None:
        with self.db_manager.session_scope() as session:
            row = session.execute(
                select(StaticDataModel).where(
                    StaticDataModel.namespace == self.namespace,
                    StaticDataModel.key == key
                )
            ).scalar_one_or_none()

            if row is None:
                session.add(StaticDataModel(namespace=self.namespace, key=key, value=value))
            else:
                row.value = value

        self.logger.debug("Static data written", namespace=self.namespace, key=key, value=value)
