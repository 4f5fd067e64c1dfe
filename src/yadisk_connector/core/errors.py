"""Structured errors surfaced to the workflow host."""

from enum import Enum
from typing import Optional

from ..api_clients.base import (
    AuthenticationError,
    NotFoundError,
    ResourceConflictError,
)


class ErrorKind(str, Enum):
    """Classification of a failure reported to the host."""
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    NO_DATA = "no_data"
    CONFLICT = "conflict"
    INVALID_OPERATION = "invalid_operation"
    UNEXPECTED = "unexpected"


AUTHENTICATION_DESCRIPTION = "Check your OAuth credentials and try again"


class ConnectorError(Exception):
    """Single structured error type carrying a human-actionable description."""

    def __init__(
        self,
        message: str,
        description: Optional[str] = None,
        kind: ErrorKind = ErrorKind.UNEXPECTED,
        cause: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.message = message
        self.description = description
        self.kind = kind
        self.cause = cause

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "description": self.description,
            "kind": self.kind.value,
            "cause": str(self.cause) if self.cause else None
        }

    def __str__(self) -> str:
        if self.description:
            return f"{self.message} ({self.description})"
        return self.message


def classify_error(error: BaseException) -> ErrorKind:
    """Map a client exception onto an ErrorKind."""
    if isinstance(error, ConnectorError):
        return error.kind
    if isinstance(error, AuthenticationError):
        return ErrorKind.AUTHENTICATION
    if isinstance(error, NotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(error, ResourceConflictError):
        return ErrorKind.CONFLICT
    return ErrorKind.UNEXPECTED


def wrap_error(
    error: BaseException,
    message: str,
    description: Optional[str] = None
) -> ConnectorError:
    """Wrap any exception into a ConnectorError; existing ones pass through unchanged."""
    if isinstance(error, ConnectorError):
        return error

    kind = classify_error(error)
    if kind == ErrorKind.AUTHENTICATION:
        description = f"{AUTHENTICATION_DESCRIPTION}: {error}"

    return ConnectorError(message, description=description, kind=kind, cause=error)
