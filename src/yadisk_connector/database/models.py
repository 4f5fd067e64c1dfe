"""Database models for persisted trigger state."""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base


Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StaticDataModel(Base):
    """Node-scoped static data, one row per (namespace, key).

    The namespace identifies a trigger instance (workflow + node); the poller
    keeps its checkpoint under the ``lastTimeChecked`` key.
    """

    __tablename__ = "static_data"
    __table_args__ = (
        UniqueConstraint("namespace", "key", name="uq_static_data_namespace_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    namespace = Column(String(255), nullable=False, index=True)
    key = Column(String(100), nullable=False)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<StaticDataModel(namespace='{self.namespace}', key='{self.key}', value='{self.value}')>"
