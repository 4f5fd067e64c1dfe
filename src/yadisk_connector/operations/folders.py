"""Folder operations exposed to workflow nodes."""

from enum import Enum
from typing import Any, Dict

from ..api_clients.yandex_disk import YandexDiskClient
from ..core.errors import ConnectorError, ErrorKind
from ..utils.logging import get_logger
from .base import finish_async_operation, operation_error, require


logger = get_logger("folder_operations")

DEFAULT_LIST_LIMIT = 100
DEFAULT_LIST_SORT = "name"


class FolderOperation(str, Enum):
    CREATE = "create"
    LIST = "list"
    DELETE = "delete"
    GET_INFO = "getInfo"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"


async def execute_folder_operation(
    client: YandexDiskClient,
    operation: str,
    params: Dict[str, Any]
) -> Dict[str, Any]:
    """Run one folder operation and return its JSON result.

    Raises:
        ConnectorError: On unknown operations and on any API failure
    """
    try:
        handler = _HANDLERS[FolderOperation(operation)]
    except ValueError:
        raise ConnectorError(f"Unknown folder operation: {operation}", kind=ErrorKind.INVALID_OPERATION)

    logger.info("Executing folder operation", operation=operation)
    return await handler(client, params)


async def create_folder(client: YandexDiskClient, params: Dict[str, Any]) -> Dict[str, Any]:
    path = require(params, "path")

    try:
        link = await client.create_folder(path)
    except Exception as e:
        raise operation_error(
            e,
            f"Failed to create folder at {path}",
            conflict=f"Folder already exists at path: {path}"
        )

    return {"success": True, "path": path, "href": link.href if link else None}


async def list_folder(client: YandexDiskClient, params: Dict[str, Any]) -> Dict[str, Any]:
    """List one page of folder contents (``limit``, ``offset``, ``sort``)."""
    path = require(params, "path")
    limit = int(params.get("limit") or DEFAULT_LIST_LIMIT)
    offset = int(params.get("offset") or 0)
    sort = params.get("sort") or DEFAULT_LIST_SORT

    try:
        items = await client.list_folder(path, limit=limit, offset=offset, sort=sort)
    except Exception as e:
        raise operation_error(
            e,
            f"Failed to list folder contents at {path}",
            not_found=f"Folder not found at path: {path}"
        )

    return {
        "success": True,
        "path": path,
        "total": len(items),
        "items": [item.to_dict() for item in items],
    }


async def delete_folder(client: YandexDiskClient, params: Dict[str, Any]) -> Dict[str, Any]:
    path = require(params, "path")
    permanently = params.get("permanently", False)

    try:
        link = await client.delete(path, permanently=permanently)
        return await finish_async_operation(
            client,
            link,
            params.get("wait_for_completion", True),
            {"path": path, "permanently": permanently}
        )
    except Exception as e:
        raise operation_error(
            e,
            f"Failed to delete folder at {path}",
            not_found=f"Folder not found at path: {path}"
        )


async def get_folder_info(client: YandexDiskClient, params: Dict[str, Any]) -> Dict[str, Any]:
    path = require(params, "path")

    try:
        item = await client.get_info(path)
    except Exception as e:
        raise operation_error(
            e,
            f"Failed to get folder info for {path}",
            not_found=f"Folder not found at path: {path}"
        )

    return item.to_dict()


async def publish_folder(client: YandexDiskClient, params: Dict[str, Any]) -> Dict[str, Any]:
    path = require(params, "path")

    try:
        link = await client.publish(path)
    except Exception as e:
        raise operation_error(
            e,
            f"Failed to publish folder at {path}",
            not_found=f"Folder not found at path: {path}"
        )

    return {
        "success": True,
        "path": path,
        "public_url": link.href if link else None,
        "method": link.method if link else None,
    }


async def unpublish_folder(client: YandexDiskClient, params: Dict[str, Any]) -> Dict[str, Any]:
    path = require(params, "path")

    try:
        link = await client.unpublish(path)
    except Exception as e:
        raise operation_error(
            e,
            f"Failed to unpublish folder at {path}",
            not_found=f"Folder not found at path: {path}"
        )

    return {"success": True, "path": path, "href": link.href if link else None}


_HANDLERS = {
    FolderOperation.CREATE: create_folder,
    FolderOperation.LIST: list_folder,
    FolderOperation.DELETE: delete_folder,
    FolderOperation.GET_INFO: get_folder_info,
    FolderOperation.PUBLISH: publish_folder,
    FolderOperation.UNPUBLISH: unpublish_folder,
}
