"""Tests for the Yandex Disk API client against an in-process fake server."""

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from yadisk_connector.api_clients import (
    APIConnectionError,
    AuthenticationError,
    ItemKind,
    Link,
    NotFoundError,
    OperationFailedError,
    OperationTimeoutError,
    RateLimitError,
    RemoteItem,
    ResourceConflictError,
    ResponseDecodeError,
    YandexDiskClient,
)

from conftest import api_resource
from fake_yandex_disk import TOKEN, FakeYandexDisk


@pytest_asyncio.fixture
async def fake_disk():
    disk = FakeYandexDisk()
    await disk.start()
    yield disk
    await disk.close()


@pytest_asyncio.fixture
async def client(fake_disk):
    async with YandexDiskClient(oauth_token=TOKEN, base_url=fake_disk.base_url) as client:
        yield client


class TestRemoteItemDecoding:

    def test_decodes_resource(self):
        item = RemoteItem.from_api(api_resource(
            name="a.txt",
            path="disk:/n8n/a.txt",
            created="2024-01-15T12:00:00+00:00",
            modified="2024-01-15T12:00:05Z",
            mime_type="text/plain",
            media_type="document"
        ))

        assert item.kind == ItemKind.FILE
        assert item.path == "disk:/n8n/a.txt"
        assert item.modified_at == datetime(2024, 1, 15, 12, 0, 5, tzinfo=timezone.utc)
        assert item.media_type == "document"
        assert item.size == 1024

    @pytest.mark.parametrize("missing", ["name", "path", "type", "created", "modified"])
    def test_missing_required_field(self, missing):
        data = api_resource()
        del data[missing]

        with pytest.raises(ResponseDecodeError):
            RemoteItem.from_api(data)

    @pytest.mark.parametrize("field,value", [
        ("type", "symlink"),
        ("created", "yesterday"),
        ("modified", "2024-01-15T12:00:00"),
        ("size", "1024"),
    ])
    def test_malformed_field(self, field, value):
        with pytest.raises(ResponseDecodeError):
            RemoteItem.from_api(api_resource(**{field: value}))

    def test_to_dict_returns_api_record(self):
        data = api_resource(public_url="https://yadi.sk/d/x")
        assert RemoteItem.from_api(data).to_dict() == data


class TestLink:

    def test_operation_link(self):
        link = Link.from_api({"href": "https://cloud-api.yandex.net/v1/disk/operations/abc123?x=1", "method": "GET"})

        assert link.is_operation
        assert link.operation_id == "abc123"

    def test_plain_link(self):
        link = Link.from_api({"href": "https://cloud-api.yandex.net/v1/disk/resources?path=disk%3A%2Fa"})

        assert not link.is_operation
        assert link.method == "GET"

    def test_link_without_href(self):
        with pytest.raises(ResponseDecodeError):
            Link.from_api({"method": "GET"})


@pytest.mark.integration
class TestYandexDiskClient:

    def test_requires_token(self):
        with pytest.raises(AuthenticationError):
            YandexDiskClient(oauth_token="")

    @pytest.mark.asyncio
    async def test_recent(self, fake_disk, client):
        fake_disk.recent = [
            api_resource(name="a.txt", media_type="document"),
            api_resource(name="b.png", mime_type="image/png", media_type="image"),
        ]

        items = await client.recent(limit=10)

        assert [item.name for item in items] == ["a.txt", "b.png"]
        method, path, query = fake_disk.requests[-1]
        assert path.endswith("/resources/last-uploaded")
        assert query == {"limit": "10"}

    @pytest.mark.asyncio
    async def test_recent_sends_media_type_and_clamps_limit(self, fake_disk, client):
        fake_disk.recent = [
            api_resource(name="a.txt", media_type="document"),
            api_resource(name="b.png", mime_type="image/png", media_type="image"),
        ]

        items = await client.recent(limit=5000, media_type="image")

        assert [item.name for item in items] == ["b.png"]
        assert fake_disk.requests[-1][2] == {"limit": "1000", "media_type": "image"}

    @pytest.mark.asyncio
    async def test_recent_rejects_malformed_body(self, fake_disk, client):
        fake_disk.recent = [{"name": "broken"}]

        with pytest.raises(ResponseDecodeError):
            await client.recent(limit=1)

    @pytest.mark.asyncio
    async def test_bad_token(self, fake_disk):
        async with YandexDiskClient(oauth_token="wrong", base_url=fake_disk.base_url) as client:
            with pytest.raises(AuthenticationError) as exc_info:
                await client.recent(limit=1)

        assert exc_info.value.status == 401
        assert "Unauthorized" in str(exc_info.value)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error_class", [
        (403, AuthenticationError),
        (404, NotFoundError),
        (409, ResourceConflictError),
        (429, RateLimitError),
        (500, APIConnectionError),
        (503, APIConnectionError),
    ])
    async def test_status_mapping(self, fake_disk, client, status, error_class):
        fake_disk.fail("/resources/last-uploaded", status, "Something went wrong")

        with pytest.raises(error_class) as exc_info:
            await client.recent(limit=1)

        assert "Something went wrong" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_rate_limit_retry_after(self, fake_disk, client):
        fake_disk.fail("/resources/last-uploaded", 429)

        with pytest.raises(RateLimitError) as exc_info:
            await client.recent(limit=1)

        assert exc_info.value.retry_after == 7

    @pytest.mark.asyncio
    async def test_network_error(self):
        async with YandexDiskClient(oauth_token=TOKEN, base_url="http://127.0.0.1:1/v1/disk") as client:
            with pytest.raises(APIConnectionError):
                await client.recent(limit=1)

    @pytest.mark.asyncio
    async def test_health_check(self, fake_disk, client):
        assert await client.health_check() is True

        fake_disk.fail("/resources/last-uploaded", 401)
        assert await client.health_check() is False

    @pytest.mark.asyncio
    async def test_get_info_and_not_found(self, fake_disk, client):
        fake_disk.add_file("disk:/docs/a.txt", mime_type="text/plain")

        item = await client.get_info("disk:/docs/a.txt")
        assert item.name == "a.txt"

        with pytest.raises(NotFoundError):
            await client.get_info("disk:/missing.txt")

    @pytest.mark.asyncio
    async def test_list_folder(self, fake_disk, client):
        await client.create_folder("disk:/docs")
        fake_disk.add_file("disk:/docs/a.txt")
        fake_disk.add_file("disk:/docs/b.txt")

        items = await client.list_folder("disk:/docs", limit=10)

        assert [item.name for item in items] == ["a.txt", "b.txt"]

    @pytest.mark.asyncio
    async def test_upload_then_download(self, fake_disk, client):
        item = await client.upload("disk:/notes.txt", b"hello world")

        assert item.path == "disk:/notes.txt"
        assert item.size == 11
        assert await client.download("disk:/notes.txt") == b"hello world"

    @pytest.mark.asyncio
    async def test_upload_conflict_without_overwrite(self, fake_disk, client):
        fake_disk.add_file("disk:/notes.txt", b"old")

        with pytest.raises(ResourceConflictError):
            await client.upload("disk:/notes.txt", b"new", overwrite=False)

    @pytest.mark.asyncio
    async def test_synchronous_copy_returns_resource_link(self, fake_disk, client):
        fake_disk.add_file("disk:/a.txt")

        link = await client.copy("disk:/a.txt", "disk:/b.txt")

        assert not link.is_operation
        assert "disk:/b.txt" in fake_disk.resources

    @pytest.mark.asyncio
    async def test_delete_without_body(self, fake_disk, client):
        fake_disk.add_file("disk:/a.txt")

        assert await client.delete("disk:/a.txt") is None
        assert fake_disk.requests[-1][2] == {"path": "disk:/a.txt", "permanently": "false"}

    @pytest.mark.asyncio
    async def test_wait_for_operation(self, fake_disk, client):
        fake_disk.async_mutations = True
        fake_disk.add_file("disk:/a.txt")

        link = await client.move("disk:/a.txt", "disk:/b.txt")

        assert link.is_operation
        assert await client.wait_for_operation(link.operation_id, timeout=5, interval=0.01) == "success"

    @pytest.mark.asyncio
    async def test_failed_operation(self, fake_disk, client):
        fake_disk.operations["op-x"] = ["failed"]

        with pytest.raises(OperationFailedError):
            await client.wait_for_operation("op-x", timeout=5, interval=0.01)

    @pytest.mark.asyncio
    async def test_operation_timeout(self, fake_disk, client):
        fake_disk.operations["op-slow"] = ["in-progress"]

        with pytest.raises(OperationTimeoutError):
            await client.wait_for_operation("op-slow", timeout=0.05, interval=0.01)
