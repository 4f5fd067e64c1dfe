"""Shared fixtures and builders for the connector tests."""

from datetime import datetime, timedelta, timezone

import pytest

from yadisk_connector.api_clients.base import ItemKind, RemoteItem
from yadisk_connector.database import DatabaseManager


BASE_TIME = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def make_item(
    name="report.pdf",
    path=None,
    created=None,
    modified=None,
    mime_type="application/pdf",
    kind=ItemKind.FILE,
    size=1024
):
    """Build a RemoteItem; timestamps default to BASE_TIME."""
    created = created or BASE_TIME
    return RemoteItem(
        name=name,
        path=path or f"disk:/{name}",
        kind=kind,
        created_at=created,
        modified_at=modified or created,
        mime_type=mime_type,
        size=size
    )


def api_resource(
    name="report.pdf",
    path=None,
    created="2024-01-15T12:00:00+00:00",
    modified="2024-01-15T12:00:00+00:00",
    mime_type="application/pdf",
    **extra
):
    """Build a resource object the way the REST API returns it."""
    resource = {
        "name": name,
        "path": path or f"disk:/{name}",
        "type": "file",
        "created": created,
        "modified": modified,
        "mime_type": mime_type,
        "size": 1024,
    }
    resource.update(extra)
    return resource


def seconds(n: float) -> timedelta:
    return timedelta(seconds=n)


@pytest.fixture
def db_manager():
    """In-memory SQLite database with tables created."""
    manager = DatabaseManager("sqlite:///:memory:")
    manager.create_tables()
    yield manager
    manager.dispose()
