"""File operations exposed to workflow nodes."""

import base64
from enum import Enum
from typing import Any, Dict

from ..api_clients.yandex_disk import YandexDiskClient
from ..core.errors import ConnectorError, ErrorKind
from ..utils.logging import get_logger
from .base import finish_async_operation, operation_error, require


logger = get_logger("file_operations")


class FileOperation(str, Enum):
    UPLOAD = "upload"
    DOWNLOAD = "download"
    DELETE = "delete"
    COPY = "copy"
    MOVE = "move"
    GET_INFO = "getInfo"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"


async def execute_file_operation(
    client: YandexDiskClient,
    operation: str,
    params: Dict[str, Any]
) -> Dict[str, Any]:
    """Run one file operation and return its JSON result.

    Raises:
        ConnectorError: On unknown operations and on any API failure
    """
    try:
        handler = _HANDLERS[FileOperation(operation)]
    except ValueError:
        raise ConnectorError(f"Unknown file operation: {operation}", kind=ErrorKind.INVALID_OPERATION)

    logger.info("Executing file operation", operation=operation)
    return await handler(client, params)


async def upload_file(client: YandexDiskClient, params: Dict[str, Any]) -> Dict[str, Any]:
    """Upload ``data`` (bytes) to ``destination_path``."""
    destination = require(params, "destination_path")
    data = require(params, "data")
    overwrite = params.get("overwrite", True)

    try:
        item = await client.upload(destination, data, overwrite=overwrite)
    except Exception as e:
        raise operation_error(
            e,
            f"Failed to upload file to {destination}",
            conflict=(
                f"File already exists at path: {destination}. "
                "Set overwrite to true or use a different path."
            )
        )

    return {"success": True, **item.to_dict()}


async def download_file(client: YandexDiskClient, params: Dict[str, Any]) -> Dict[str, Any]:
    """Download ``path``; content is returned base64 encoded under ``data``."""
    path = require(params, "path")

    try:
        content = await client.download(path)
        item = await client.get_info(path)
    except Exception as e:
        raise operation_error(
            e,
            f"Failed to download file from {path}",
            not_found=f"File not found at path: {path}"
        )

    return {
        "success": True,
        "name": item.name or path.rsplit("/", 1)[-1] or "file",
        "path": item.path,
        "size": item.size,
        "mime_type": item.mime_type,
        "data": base64.b64encode(content).decode("ascii"),
    }


async def delete_file(client: YandexDiskClient, params: Dict[str, Any]) -> Dict[str, Any]:
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
            f"Failed to delete file at {path}",
            not_found=f"File not found at path: {path}"
        )


async def copy_file(client: YandexDiskClient, params: Dict[str, Any]) -> Dict[str, Any]:
    return await _transfer(client, params, move=False)


async def move_file(client: YandexDiskClient, params: Dict[str, Any]) -> Dict[str, Any]:
    return await _transfer(client, params, move=True)


async def _transfer(client: YandexDiskClient, params: Dict[str, Any], move: bool) -> Dict[str, Any]:
    source = require(params, "source_path")
    destination = require(params, "destination_path")
    overwrite = params.get("overwrite", False)
    verb = "move" if move else "copy"

    try:
        call = client.move if move else client.copy
        link = await call(source, destination, overwrite=overwrite)
        return await finish_async_operation(
            client,
            link,
            params.get("wait_for_completion", True),
            {"from": source, "to": destination},
            href_key="href"
        )
    except Exception as e:
        raise operation_error(
            e,
            f"Failed to {verb} file from {source} to {destination}",
            not_found=f"File not found at path: {source}",
            conflict=f"File already exists at destination: {destination}. Set overwrite to true."
        )


async def get_file_info(client: YandexDiskClient, params: Dict[str, Any]) -> Dict[str, Any]:
    path = require(params, "path")

    try:
        item = await client.get_info(path)
    except Exception as e:
        raise operation_error(
            e,
            f"Failed to get file info for {path}",
            not_found=f"File not found at path: {path}"
        )

    return item.to_dict()


async def publish_file(client: YandexDiskClient, params: Dict[str, Any]) -> Dict[str, Any]:
    path = require(params, "path")

    try:
        link = await client.publish(path)
    except Exception as e:
        raise operation_error(
            e,
            f"Failed to publish file at {path}",
            not_found=f"File not found at path: {path}"
        )

    return {
        "success": True,
        "path": path,
        "public_url": link.href if link else None,
        "method": link.method if link else None,
    }


async def unpublish_file(client: YandexDiskClient, params: Dict[str, Any]) -> Dict[str, Any]:
    path = require(params, "path")

    try:
        link = await client.unpublish(path)
    except Exception as e:
        raise operation_error(
            e,
            f"Failed to unpublish file at {path}",
            not_found=f"File not found at path: {path}"
        )

    return {"success": True, "path": path, "href": link.href if link else None}


_HANDLERS = {
    FileOperation.UPLOAD: upload_file,
    FileOperation.DOWNLOAD: download_file,
    FileOperation.DELETE: delete_file,
    FileOperation.COPY: copy_file,
    FileOperation.MOVE: move_file,
    FileOperation.GET_INFO: get_file_info,
    FileOperation.PUBLISH: publish_file,
    FileOperation.UNPUBLISH: unpublish_file,
}
