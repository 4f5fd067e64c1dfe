"""Base API client interface, remote item model and client exceptions."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Dict, Any, Optional

from ..utils.logging import get_logger


class ItemKind(str, Enum):
    """Kind of a remote resource, using the API's wire values."""
    FILE = "file"
    DIRECTORY = "dir"


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp with offset into an aware datetime.

    Raises:
        ValueError: If the value is not a string or has no UTC offset
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"Expected ISO-8601 timestamp, got {value!r}")

    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        raise ValueError(f"Timestamp has no UTC offset: {value}")
    return parsed


@dataclass(frozen=True)
class RemoteItem:
    """Immutable snapshot of one file or folder returned by the remote API."""

    name: str
    path: str
    kind: ItemKind
    created_at: datetime
    modified_at: datetime
    mime_type: Optional[str] = None
    media_type: Optional[str] = None
    size: Optional[int] = None
    md5: Optional[str] = None
    sha256: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, data: Any) -> "RemoteItem":
        """Decode one resource object from the API.

        Raises:
            ResponseDecodeError: If a required field is missing or malformed
        """
        if not isinstance(data, dict):
            raise ResponseDecodeError(f"Resource must be an object, got {type(data).__name__}")

        for required in ("name", "path", "type", "created", "modified"):
            if required not in data:
                raise ResponseDecodeError(
                    f"Resource is missing required field '{required}'",
                    payload=data
                )

        if not isinstance(data["name"], str) or not isinstance(data["path"], str):
            raise ResponseDecodeError("Resource name and path must be strings", payload=data)

        try:
            kind = ItemKind(data["type"])
            created_at = parse_timestamp(data["created"])
            modified_at = parse_timestamp(data["modified"])
        except ValueError as e:
            raise ResponseDecodeError(f"Invalid resource field: {e}", payload=data)

        size = data.get("size")
        if size is not None and (isinstance(size, bool) or not isinstance(size, int)):
            raise ResponseDecodeError(f"Resource size must be an integer, got {size!r}", payload=data)

        return cls(
            name=data["name"],
            path=data["path"],
            kind=kind,
            created_at=created_at,
            modified_at=modified_at,
            mime_type=data.get("mime_type"),
            media_type=data.get("media_type"),
            size=size,
            md5=data.get("md5"),
            sha256=data.get("sha256"),
            raw=dict(data)
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON record handed to the workflow host."""
        if self.raw:
            return dict(self.raw)

        record: Dict[str, Any] = {
            "name": self.name,
            "path": self.path,
            "type": self.kind.value,
            "created": self.created_at.isoformat(),
            "modified": self.modified_at.isoformat(),
        }
        optional = {
            "mime_type": self.mime_type,
            "media_type": self.media_type,
            "size": self.size,
            "md5": self.md5,
            "sha256": self.sha256,
        }
        record.update({k: v for k, v in optional.items() if v is not None})
        return record


class BaseAPIClient(ABC):
    """Abstract base class for remote storage API clients."""

    def __init__(self, **kwargs):
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    async def recent(self, limit: int, media_type: Optional[str] = None) -> List[RemoteItem]:
        """List the most recently changed items, newest first.

        Args:
            limit: Maximum number of items to request
            media_type: Optional coarse media type hint understood by the API

        Returns:
            Ordered list of RemoteItem objects
        """

    @abstractmethod
    async def list_folder(
        self,
        path: str,
        limit: int = 100,
        offset: int = 0,
        sort: str = "name"
    ) -> List[RemoteItem]:
        """List the direct children of a folder."""

    @abstractmethod
    async def get_info(self, path: str) -> RemoteItem:
        """Get metadata for a single file or folder.

        Raises:
            NotFoundError: If nothing exists at ``path``
        """

    async def health_check(self) -> bool:
        """Check if the API service is accessible.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            await self.recent(limit=1)
            self.logger.info("API health check passed", client=self.__class__.__name__)
            return True

        except APIError as e:
            self.logger.error(
                "API health check failed",
                client=self.__class__.__name__,
                error=str(e)
            )
            return False


class APIError(Exception):
    """Base class for errors raised by API clients."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RateLimitError(APIError):
    """Raised when API rate limit is exceeded."""

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message, status=429)
        self.retry_after = retry_after


class AuthenticationError(APIError):
    """Raised when API authentication fails."""
    pass


class NotFoundError(APIError):
    """Raised when the requested resource does not exist."""
    pass


class ResourceConflictError(APIError):
    """Raised when the target resource already exists."""
    pass


class APIConnectionError(APIError):
    """Raised when API connection fails or returns an unexpected status."""
    pass


class ResponseDecodeError(APIError):
    """Raised when an API response does not match the expected shape."""

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.payload = payload


class OperationFailedError(APIError):
    """Raised when an asynchronous remote operation reports failure."""
    pass


class OperationTimeoutError(APIError):
    """Raised when an asynchronous remote operation does not finish in time."""
    pass
