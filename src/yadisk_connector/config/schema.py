"""Configuration schema definitions for triggers and poll options."""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from ..api_clients.yandex_disk import RECENT_MAX_LIMIT


class EventType(str, Enum):
    """Change events a trigger can watch for."""
    CREATED = "created"
    UPDATED = "updated"


class LocationMode(str, Enum):
    """Which part of the disk a trigger watches."""
    ROOT = "root"
    SPECIFIC_PATH = "specificPath"


class FileType(str, Enum):
    """Media-type categories recognized by the file type filter."""
    ALL = "all"
    DOCUMENT = "document"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    ARCHIVE = "archive"


# Server-side media_type hints for the recent-items endpoint
FILE_TYPE_TO_MEDIA_TYPE = {
    FileType.ALL.value: None,
    FileType.DOCUMENT.value: "document",
    FileType.IMAGE.value: "image",
    FileType.VIDEO.value: "video",
    FileType.AUDIO.value: "audio",
    FileType.ARCHIVE.value: "compressed",
}

DEFAULT_LIMIT = 50


class PollOptions(BaseModel):
    """Options captured at the start of each poll cycle.

    ``event`` and ``file_type`` stay plain strings: unrecognized values are
    accepted and make the corresponding filter stage pass everything through.
    """

    event: str = Field(default=EventType.UPDATED.value, description="Event to watch for")
    location: LocationMode = Field(default=LocationMode.ROOT, description="Watch scope")
    path: str = Field(default="/", description="Path to watch when location is specificPath")
    file_type: str = Field(default=FileType.ALL.value, description="Media-type category filter")
    limit: int = Field(default=DEFAULT_LIMIT, ge=1, description="Max items emitted per poll")

    model_config = {"frozen": True, "use_enum_values": False}

    @property
    def api_limit(self) -> int:
        """Limit sent upstream, clamped to the API maximum."""
        return min(self.limit, RECENT_MAX_LIMIT)

    @property
    def media_type_hint(self) -> Optional[str]:
        return FILE_TYPE_TO_MEDIA_TYPE.get(self.file_type)

    @property
    def scoped_path(self) -> Optional[str]:
        """Path to filter on, or None when watching the whole disk."""
        if self.location == LocationMode.SPECIFIC_PATH:
            return self.path
        return None


class TriggerConfig(BaseModel):
    """Configuration for a single polling trigger."""

    name: str = Field(..., description="Human-readable trigger name")
    workflow_id: str = Field(..., description="Owning workflow identifier")
    node_id: str = Field(..., description="Trigger node identifier within the workflow")
    description: Optional[str] = Field(None, description="Optional description")
    options: PollOptions = Field(default_factory=PollOptions)
    interval_minutes: Optional[int] = Field(None, description="Poll interval override")
    is_active: bool = Field(default=True)

    @field_validator('interval_minutes')
    @classmethod
    def validate_interval(cls, v):
        if v is not None and v < 1:
            raise ValueError("Interval must be at least 1 minute")
        return v

    @property
    def state_namespace(self) -> str:
        """Static-data namespace for this trigger's checkpoint."""
        return static_data_namespace(self.workflow_id, self.node_id)


def static_data_namespace(workflow_id: str, node_id: str) -> str:
    return f"{workflow_id}:{node_id}"


class ConnectorConfig(BaseModel):
    """Root configuration for the connector."""

    version: str = Field(default="1.0.0", description="Configuration version")
    created_at: datetime = Field(default_factory=datetime.now)
    environment: str = Field(default="development")

    triggers: List[TriggerConfig] = Field(default_factory=list)

    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="Logging format (json, console)")
    database_url: Optional[str] = Field(None, description="Database URL override")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        valid_envs = ['development', 'staging', 'production']
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of: {valid_envs}")
        return v.lower()

    @field_validator('triggers')
    @classmethod
    def validate_unique_names(cls, v):
        names = [t.name for t in v]
        if len(names) != len(set(names)):
            raise ValueError("Trigger names must be unique")
        return v

    def get_active_triggers(self) -> List[TriggerConfig]:
        return [t for t in self.triggers if t.is_active]

    def get_trigger(self, name: str) -> Optional[TriggerConfig]:
        for trigger in self.triggers:
            if trigger.name == name:
                return trigger
        return None


EXAMPLE_TRIGGER = TriggerConfig(
    name="New documents",
    workflow_id="workflow_1",
    node_id="yandex_disk_trigger",
    description="Fires when a document is created under /Documents",
    options=PollOptions(
        event=EventType.CREATED.value,
        location=LocationMode.SPECIFIC_PATH,
        path="/Documents",
        file_type=FileType.DOCUMENT.value,
        limit=50
    ),
    interval_minutes=5
)
