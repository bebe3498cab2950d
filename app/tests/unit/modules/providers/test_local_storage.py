"""Unit tests for LocalStorageProvider."""

import hashlib

import pytest

from infrastructure.resilience import InvalidArgumentError, NotFoundError
from modules.providers.local import LocalStorageProvider
from modules.providers.models import FileMetadata


@pytest.fixture
def storage(clock):
    return LocalStorageProvider(
        base_url="http://files.test/storage/", signing_key=b"k" * 32, clock=clock
    )


@pytest.mark.unit
class TestUploadAndDownload:
    @pytest.mark.asyncio
    async def test_upload_describes_file(self, storage):
        metadata = FileMetadata(content_type="text/plain", metadata={"owner": "ada"})

        info = await storage.upload("/docs/readme.txt", b"hello", metadata)

        assert info.path == "docs/readme.txt"
        assert info.size == 5
        assert info.content_type == "text/plain"
        assert info.etag == hashlib.md5(b"hello").hexdigest()
        assert info.metadata == {"owner": "ada"}
        assert await storage.download("docs/readme.txt") == b"hello"

    @pytest.mark.asyncio
    async def test_default_content_type(self, storage):
        info = await storage.upload("blob", b"\x00")

        assert info.content_type == "application/octet-stream"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["", "   ", "/", "a/../b", ".."])
    async def test_invalid_paths(self, storage, path):
        with pytest.raises(InvalidArgumentError):
            await storage.upload(path, b"x")

    @pytest.mark.asyncio
    async def test_missing_file(self, storage):
        with pytest.raises(NotFoundError):
            await storage.download("missing")
        with pytest.raises(NotFoundError):
            await storage.get_metadata("missing")

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, storage):
        await storage.upload("a.txt", b"a")

        await storage.delete("a.txt")
        await storage.delete("a.txt")

        with pytest.raises(NotFoundError):
            await storage.download("a.txt")


@pytest.mark.unit
class TestListing:
    @pytest.mark.asyncio
    async def test_prefix_and_paging(self, storage):
        for name in ("docs/c", "docs/a", "img/x", "docs/b"):
            await storage.upload(name, b"1")

        first = await storage.list("/docs/", max_results=2)
        second = await storage.list(
            "docs/", max_results=2, page_token=first.next_page_token
        )

        assert [f.path for f in first.files] == ["docs/a", "docs/b"]
        assert first.next_page_token == "2"
        assert [f.path for f in second.files] == ["docs/c"]
        assert second.next_page_token is None

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, storage):
        with pytest.raises(InvalidArgumentError):
            await storage.list(max_results=0)
        with pytest.raises(InvalidArgumentError):
            await storage.list(page_token="next")


@pytest.mark.unit
class TestSignedUrls:
    @pytest.mark.asyncio
    async def test_signed_url_verifies_until_expiry(self, storage, clock):
        await storage.upload("docs/report.pdf", b"%PDF")

        url = await storage.signed_url("docs/report.pdf", expires_in_seconds=30)

        assert url.startswith(
            "http://files.test/storage/docs/report.pdf?expires=1030&signature="
        )
        assert storage.verify_signed_url(url)
        clock.advance(31)
        assert not storage.verify_signed_url(url)

    @pytest.mark.asyncio
    async def test_tampered_url_is_rejected(self, storage):
        await storage.upload("a.txt", b"a")
        await storage.upload("b.txt", b"b")
        url = await storage.signed_url("a.txt")

        assert not storage.verify_signed_url(url.replace("a.txt", "b.txt"))
        assert not storage.verify_signed_url(url.replace("expires=", "expires=9"))
        assert not storage.verify_signed_url(url.split("&")[0])
        assert not storage.verify_signed_url("http://files.test/other/a.txt")

    @pytest.mark.asyncio
    async def test_other_key_cannot_verify(self, storage, clock):
        await storage.upload("a.txt", b"a")
        url = await storage.signed_url("a.txt")
        other = LocalStorageProvider(
            base_url="http://files.test/storage", signing_key=b"z" * 32, clock=clock
        )

        assert not other.verify_signed_url(url)

    @pytest.mark.asyncio
    async def test_signed_url_requires_existing_file(self, storage):
        with pytest.raises(NotFoundError):
            await storage.signed_url("missing")


@pytest.mark.unit
class TestCopyAndMove:
    @pytest.mark.asyncio
    async def test_copy_keeps_source_and_metadata(self, storage):
        metadata = FileMetadata(content_type="text/plain", metadata={"k": "v"})
        await storage.upload("a.txt", b"abc", metadata)

        info = await storage.copy("a.txt", "b.txt")

        assert info.path == "b.txt"
        assert info.content_type == "text/plain"
        assert info.metadata == {"k": "v"}
        assert await storage.download("a.txt") == b"abc"
        assert await storage.download("b.txt") == b"abc"

    @pytest.mark.asyncio
    async def test_move_removes_source(self, storage):
        await storage.upload("a.txt", b"abc")

        await storage.move("a.txt", "archive/a.txt")

        assert [f.path for f in (await storage.list()).files] == ["archive/a.txt"]

    @pytest.mark.asyncio
    async def test_health_check(self, storage):
        await storage.upload("a", b"12")
        await storage.upload("b", b"345")

        health = await storage.health_check()

        assert health.details == {"files": 2, "bytes": 5}
