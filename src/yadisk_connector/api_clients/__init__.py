"""API clients package for the remote storage service."""

from .base import (
    BaseAPIClient,
    RemoteItem,
    ItemKind,
    parse_timestamp,
    APIError,
    RateLimitError,
    AuthenticationError,
    NotFoundError,
    ResourceConflictError,
    APIConnectionError,
    ResponseDecodeError,
    OperationFailedError,
    OperationTimeoutError
)

from .yandex_disk import YandexDiskClient, Link, RECENT_MAX_LIMIT

__all__ = [
    # Base classes and models
    "BaseAPIClient",
    "RemoteItem",
    "ItemKind",
    "parse_timestamp",

    # Exceptions
    "APIError",
    "RateLimitError",
    "AuthenticationError",
    "NotFoundError",
    "ResourceConflictError",
    "APIConnectionError",
    "ResponseDecodeError",
    "OperationFailedError",
    "OperationTimeoutError",

    # Client implementation
    "YandexDiskClient",
    "Link",
    "RECENT_MAX_LIMIT"
]
