"""Yandex Disk REST API client implementation."""

import asyncio
import re
import time
from dataclasses import dataclass
from typing import List, Dict, Any, Optional

import aiohttp

from .base import (
    BaseAPIClient,
    RemoteItem,
    APIConnectionError,
    AuthenticationError,
    NotFoundError,
    OperationFailedError,
    OperationTimeoutError,
    RateLimitError,
    ResourceConflictError,
    ResponseDecodeError,
)
from ..utils.logging import log_async_execution_time


DEFAULT_BASE_URL = "https://cloud-api.yandex.net/v1/disk"

# Hard maximum the last-uploaded endpoint accepts for ``limit``
RECENT_MAX_LIMIT = 1000

OPERATION_ID_PATTERN = re.compile(r"/operations/([^?]+)")


@dataclass(frozen=True)
class Link:
    """Link object returned by mutating and transfer endpoints."""

    href: str
    method: str = "GET"
    templated: bool = False

    @classmethod
    def from_api(cls, data: Any) -> "Link":
        if not isinstance(data, dict) or not isinstance(data.get("href"), str):
            raise ResponseDecodeError("Expected a link object with 'href'", payload=data)
        return cls(
            href=data["href"],
            method=data.get("method", "GET"),
            templated=bool(data.get("templated", False))
        )

    @property
    def is_operation(self) -> bool:
        """Whether the link points at an asynchronous operation status."""
        return "/operations/" in self.href

    @property
    def operation_id(self) -> str:
        match = OPERATION_ID_PATTERN.search(self.href)
        return match.group(1) if match else ""


class YandexDiskClient(BaseAPIClient):
    """Async client for the Yandex Disk REST API."""

    def __init__(
        self,
        oauth_token: str,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[aiohttp.ClientSession] = None,
        **kwargs
    ):
        """Initialize Yandex Disk client.

        Args:
            oauth_token: Pre-obtained OAuth token; never refreshed here
            base_url: Base API URL
            session: Optional externally managed aiohttp session
            **kwargs: Additional configuration parameters
        """
        super().__init__(**kwargs)

        if not oauth_token:
            raise AuthenticationError("OAuth token not found in credentials")

        self.oauth_token = oauth_token
        self.base_url = base_url.rstrip('/')
        self.session = session
        self._owns_session = session is None

        self.logger.debug("Yandex Disk client initialized", base_url=self.base_url)

    async def __aenter__(self):
        """Async context manager entry."""
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self):
        """Close the underlying session if this client created it."""
        if self.session and self._owns_session and not self.session.closed:
            await self.session.close()
        if self._owns_session:
            self.session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
            self._owns_session = True
        return self.session

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"OAuth {self.oauth_token}",
            "Accept": "application/json"
        }

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """Make an authenticated API request and return the decoded JSON body.

        Returns None for empty responses (204 No Content).
        """
        session = self._ensure_session()
        url = f"{self.base_url}{endpoint}"
        query = {k: self._format_param(v) for k, v in (params or {}).items() if v is not None}

        try:
            async with session.request(method, url, params=query, headers=self.headers) as response:
                if response.status >= 400:
                    await self._raise_for_status(response)

                if response.status == 204:
                    return None

                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise ResponseDecodeError(f"Response is not valid JSON: {e}")

        except aiohttp.ClientError as e:
            raise APIConnectionError(f"Network error: {e}")

    async def _raise_for_status(self, response: aiohttp.ClientResponse):
        """Translate an error response into the client exception hierarchy."""
        detail = await self._error_detail(response)
        status = response.status

        if status in (401, 403):
            raise AuthenticationError(f"Invalid or expired OAuth token: {detail}", status=status)
        if status == 404:
            raise NotFoundError(f"Resource not found: {detail}", status=status)
        if status == 409:
            raise ResourceConflictError(f"Resource already exists: {detail}", status=status)
        if status == 429:
            retry_after = int(response.headers.get("Retry-After", 60))
            raise RateLimitError(f"Rate limit exceeded: {detail}", retry_after)

        raise APIConnectionError(f"API request failed: {status} - {detail}", status=status)

    @staticmethod
    async def _error_detail(response: aiohttp.ClientResponse) -> str:
        text = await response.text()
        try:
            body = await response.json(content_type=None)
        except ValueError:
            return text
        if isinstance(body, dict):
            return body.get("description") or body.get("message") or text
        return text

    @staticmethod
    def _format_param(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    @staticmethod
    def _decode_items(items: Any) -> List[RemoteItem]:
        if not isinstance(items, list):
            raise ResponseDecodeError("Expected 'items' to be a list", payload=items)
        return [RemoteItem.from_api(item) for item in items]

    @staticmethod
    def _decode_optional_link(body: Optional[Dict[str, Any]]) -> Optional[Link]:
        if not body:
            return None
        return Link.from_api(body)

    @log_async_execution_time
    async def recent(self, limit: int, media_type: Optional[str] = None) -> List[RemoteItem]:
        """List the most recently uploaded or changed files.

        Args:
            limit: Number of items to request, clamped to the API maximum
            media_type: Optional media type filter understood by the API

        Returns:
            Ordered list of RemoteItem objects
        """
        params = {"limit": max(1, min(limit, RECENT_MAX_LIMIT)), "media_type": media_type}
        body = await self._request("GET", "/resources/last-uploaded", params)

        if not isinstance(body, dict) or "items" not in body:
            raise ResponseDecodeError("Recent items response has no 'items'", payload=body)

        items = self._decode_items(body["items"])
        self.logger.debug(
            "Retrieved recent items",
            requested=params["limit"],
            media_type=media_type,
            returned=len(items)
        )
        return items

    @log_async_execution_time
    async def list_folder(
        self,
        path: str,
        limit: int = 100,
        offset: int = 0,
        sort: str = "name"
    ) -> List[RemoteItem]:
        """List the direct children of a folder."""
        body = await self._request(
            "GET",
            "/resources",
            {"path": path, "limit": limit, "offset": offset, "sort": sort}
        )

        if not isinstance(body, dict):
            raise ResponseDecodeError("Folder response must be an object", payload=body)

        embedded = body.get("_embedded") or {}
        return self._decode_items(embedded.get("items", []))

    @log_async_execution_time
    async def get_info(self, path: str) -> RemoteItem:
        """Get metadata for a single file or folder."""
        body = await self._request("GET", "/resources", {"path": path})
        return RemoteItem.from_api(body)

    async def get_upload_link(self, path: str, overwrite: bool = True) -> Link:
        """Request a transfer URL for uploading to ``path``."""
        body = await self._request("GET", "/resources/upload", {"path": path, "overwrite": overwrite})
        return Link.from_api(body)

    async def get_download_link(self, path: str) -> Link:
        """Request a transfer URL for downloading ``path``."""
        body = await self._request("GET", "/resources/download", {"path": path})
        return Link.from_api(body)

    @log_async_execution_time
    async def upload(self, path: str, data: bytes, overwrite: bool = True) -> RemoteItem:
        """Upload bytes: obtain a transfer link, PUT the data, then read back metadata."""
        link = await self.get_upload_link(path, overwrite)
        session = self._ensure_session()

        try:
            async with session.put(link.href, data=data) as response:
                if response.status >= 400:
                    await self._raise_for_status(response)
        except aiohttp.ClientError as e:
            raise APIConnectionError(f"Upload transfer failed: {e}")

        self.logger.info("File uploaded", path=path, size=len(data))
        return await self.get_info(path)

    @log_async_execution_time
    async def download(self, path: str) -> bytes:
        """Download bytes: obtain a transfer link, then GET the data."""
        link = await self.get_download_link(path)
        session = self._ensure_session()

        try:
            async with session.get(link.href) as response:
                if response.status >= 400:
                    await self._raise_for_status(response)
                content = await response.read()
        except aiohttp.ClientError as e:
            raise APIConnectionError(f"Download transfer failed: {e}")

        self.logger.info("File downloaded", path=path, size=len(content))
        return content

    async def delete(self, path: str, permanently: bool = False) -> Optional[Link]:
        """Delete a resource. Returns an operation link when the API works asynchronously."""
        body = await self._request("DELETE", "/resources", {"path": path, "permanently": permanently})
        return self._decode_optional_link(body)

    async def copy(self, source: str, destination: str, overwrite: bool = False) -> Optional[Link]:
        body = await self._request(
            "POST",
            "/resources/copy",
            {"from": source, "path": destination, "overwrite": overwrite}
        )
        return self._decode_optional_link(body)

    async def move(self, source: str, destination: str, overwrite: bool = False) -> Optional[Link]:
        body = await self._request(
            "POST",
            "/resources/move",
            {"from": source, "path": destination, "overwrite": overwrite}
        )
        return self._decode_optional_link(body)

    async def create_folder(self, path: str) -> Optional[Link]:
        body = await self._request("PUT", "/resources", {"path": path})
        return self._decode_optional_link(body)

    async def publish(self, path: str) -> Optional[Link]:
        body = await self._request("PUT", "/resources/publish", {"path": path})
        return self._decode_optional_link(body)

    async def unpublish(self, path: str) -> Optional[Link]:
        body = await self._request("PUT", "/resources/unpublish", {"path": path})
        return self._decode_optional_link(body)

    async def get_operation_status(self, operation_id: str) -> str:
        """Return the status of an asynchronous operation (success, failed, in-progress)."""
        body = await self._request("GET", f"/operations/{operation_id}")
        if not isinstance(body, dict) or "status" not in body:
            raise ResponseDecodeError("Operation response has no 'status'", payload=body)
        return body["status"]

    async def wait_for_operation(
        self,
        operation_id: str,
        timeout: float = 30.0,
        interval: float = 1.0
    ) -> str:
        """Poll an asynchronous operation until it finishes.

        Raises:
            OperationFailedError: If the operation reports failure
            OperationTimeoutError: If it is still running after ``timeout`` seconds
        """
        started = time.monotonic()

        while time.monotonic() - started < timeout:
            status = await self.get_operation_status(operation_id)

            if status == "success":
                self.logger.debug("Operation completed", operation_id=operation_id)
                return status

            if status == "failed":
                raise OperationFailedError(f"Operation failed: {operation_id}")

            await asyncio.sleep(interval)

        raise OperationTimeoutError(f"Operation timeout after {timeout}s: {operation_id}")
