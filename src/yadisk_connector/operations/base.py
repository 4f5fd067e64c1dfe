"""Shared helpers for file and folder operations."""

from typing import Any, Dict, Optional

from ..api_clients.base import NotFoundError, ResourceConflictError
from ..api_clients.yandex_disk import Link, YandexDiskClient
from ..core.errors import ConnectorError, ErrorKind, wrap_error


OPERATION_TIMEOUT = 30.0
OPERATION_INTERVAL = 1.0

PATH_DESCRIPTION = "Check your OAuth credentials and path"


def require(params: Dict[str, Any], name: str) -> Any:
    """Fetch a required operation parameter."""
    value = params.get(name)
    if value is None or value == "":
        raise ConnectorError(
            f"Missing required parameter: {name}",
            kind=ErrorKind.INVALID_OPERATION
        )
    return value


async def finish_async_operation(
    client: YandexDiskClient,
    link: Optional[Link],
    wait_for_completion: bool,
    result: Dict[str, Any],
    href_key: Optional[str] = None
) -> Dict[str, Any]:
    """Complete the result of a mutating call that may run asynchronously.

    When the API answers with an operation link the call is either awaited to
    completion or reported as pending with its operation id.
    """
    if link is not None and link.is_operation:
        if not wait_for_completion:
            return {
                "success": True,
                "status": "pending",
                "operationId": link.operation_id,
                **result,
                "message": "Operation started, check status using operation ID",
            }

        await client.wait_for_operation(
            link.operation_id,
            timeout=OPERATION_TIMEOUT,
            interval=OPERATION_INTERVAL
        )

    response = {"success": True, "status": "completed", **result}
    if href_key and link is not None and not link.is_operation:
        response[href_key] = link.href
    return response


def operation_error(
    error: Exception,
    message: str,
    not_found: Optional[str] = None,
    conflict: Optional[str] = None
) -> ConnectorError:
    """Translate a client exception raised by a CRUD call."""
    if not_found and isinstance(error, NotFoundError):
        return ConnectorError(not_found, kind=ErrorKind.NOT_FOUND, cause=error)
    if conflict and isinstance(error, ResourceConflictError):
        return ConnectorError(conflict, kind=ErrorKind.CONFLICT, cause=error)
    return wrap_error(error, message, PATH_DESCRIPTION)
