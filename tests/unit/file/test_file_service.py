"""Tests for FileService upload and retrieval."""

import hashlib
from uuid import uuid4

import pytest

from algoshelf.core.modules.file.models import OwnerType
from algoshelf.core.modules.file.service import peek
from algoshelf.errors import (
    NotFoundError,
    PayloadTooLargeError,
    RangeNotSatisfiableError,
    StorageFailureError,
    UnsupportedMediaTypeError,
)


async def chunked(data: bytes, size: int = 100):
    for start in range(0, len(data), size):
        yield data[start : start + size]


def stored_files(service) -> list[str]:
    base = service.storage.base_path
    return [str(p) for p in base.rglob("*") if p.is_file()]


class TestPeek:
    """Tests for peek function."""

    async def test_head_and_full_replay(self):
        """Test that peeking does not consume the stream."""
        data = bytes(range(250))
        head, stream = await peek(chunked(data, 30), 64)

        assert head == data[:64]
        assert b"".join([chunk async for chunk in stream]) == data

    async def test_short_stream(self):
        head, stream = await peek(chunked(b"tiny"), 4096)
        assert head == b"tiny"
        assert [chunk async for chunk in stream] == [b"tiny"]


class TestFileService:
    """Tests for FileService against the in-memory database."""

    @pytest.fixture(autouse=True)
    def setup(self, core):
        self.service = core.services.file

    async def test_store_records_metadata(self, png_bytes):
        """Test that a stored upload has sniffed type, size and digest."""
        uploaded = await self.service.store(chunked(png_bytes), "image/jpeg", "../plot.jpg")

        assert uploaded.mime_type == "image/png"
        assert uploaded.filename == "plot.jpg"
        assert uploaded.size == len(png_bytes)
        assert uploaded.sha256 == hashlib.sha256(png_bytes).hexdigest()
        assert uploaded.owner_type is None
        assert await self.service.get_file(uploaded.id) == uploaded

    async def test_store_rejects_declared_oversize_early(self, config, png_bytes):
        with pytest.raises(PayloadTooLargeError):
            await self.service.store(chunked(png_bytes), "image/png", "a.png", declared_size=config.max_upload_size + 1)
        assert stored_files(self.service) == []

    async def test_store_rejects_streamed_oversize(self, config):
        """Test that an undeclared size is enforced while streaming."""
        data = b"\x89PNG\r\n\x1a\n" + b"\x00" * config.max_upload_size
        with pytest.raises(PayloadTooLargeError):
            await self.service.store(chunked(data, 4096), "image/png", "big.png")
        assert stored_files(self.service) == []

    async def test_store_rejects_unsupported_type(self):
        with pytest.raises(UnsupportedMediaTypeError):
            await self.service.store(chunked(b"MZ\x90\x00payload"), "image/png", "setup.png")
        assert stored_files(self.service) == []

    async def test_failed_metadata_insert_removes_bytes(self, monkeypatch, png_bytes):
        """Test that bytes never outlive a failed metadata write."""

        async def failing_insert(document):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(self.service._collection, "insert_one", failing_insert)

        with pytest.raises(RuntimeError):
            await self.service.store(chunked(png_bytes), "image/png", "plot.png")
        assert stored_files(self.service) == []

    async def test_cleanup_failure_keeps_original_error(self, monkeypatch, png_bytes):
        """Test that a failing cleanup after a failed metadata write does not replace the insert error."""

        async def failing_insert(document):
            raise RuntimeError("database unavailable")

        async def failing_delete(file_id):
            raise StorageFailureError("Cannot delete stored file")

        monkeypatch.setattr(self.service._collection, "insert_one", failing_insert)
        monkeypatch.setattr(self.service.storage, "delete", failing_delete)

        with pytest.raises(RuntimeError, match="database unavailable"):
            await self.service.store(chunked(png_bytes), "image/png", "plot.png")


    async def test_retrieve_full_and_partial(self, png_bytes):
        uploaded = await self.service.store(chunked(png_bytes), "image/png", "plot.png")

        full = await self.service.retrieve(uploaded.id)
        assert not full.is_partial
        assert b"".join(full.chunks) == png_bytes

        partial = await self.service.retrieve(uploaded.id, "bytes=8-15")
        assert partial.is_partial
        assert partial.content_length == 8
        assert b"".join(partial.chunks) == png_bytes[8:16]

    async def test_retrieve_unsatisfiable_range(self, png_bytes):
        uploaded = await self.service.store(chunked(png_bytes), "image/png", "plot.png")
        with pytest.raises(RangeNotSatisfiableError):
            await self.service.retrieve(uploaded.id, f"bytes={len(png_bytes)}-")

    async def test_retrieve_missing_bytes_is_storage_failure(self, png_bytes):
        """Test that metadata without bytes is reported as a storage failure, not a missing file."""
        uploaded = await self.service.store(chunked(png_bytes), "image/png", "plot.png")
        self.service.storage.path_for(uploaded.id).unlink()

        with pytest.raises(StorageFailureError):
            await self.service.retrieve(uploaded.id)

    async def test_retrieve_opens_bytes_only_when_read(self, png_bytes):
        """Test that the prepared stream opens the file on first read."""
        uploaded = await self.service.store(chunked(png_bytes), "image/png", "plot.png")
        stream = await self.service.retrieve(uploaded.id)
        self.service.storage.path_for(uploaded.id).unlink()

        with pytest.raises(StorageFailureError):
            next(stream.chunks)


    async def test_delete_twice(self, png_bytes):
        uploaded = await self.service.store(chunked(png_bytes), "image/png", "plot.png")

        await self.service.delete(uploaded.id)
        assert stored_files(self.service) == []
        with pytest.raises(NotFoundError):
            await self.service.delete(uploaded.id)
        with pytest.raises(NotFoundError):
            await self.service.get_file(uploaded.id)

    async def test_owned_files(self, png_bytes):
        """Test listing and bulk deletion by owner."""
        owner_id = uuid4()
        for name in ("a.png", "b.png"):
            await self.service.store(chunked(png_bytes), "image/png", name, OwnerType.PROJECT, owner_id)
        other = await self.service.store(chunked(png_bytes), "image/png", "c.png")

        owned = await self.service.list_owned(OwnerType.PROJECT, owner_id)
        assert sorted(f.filename for f in owned) == ["a.png", "b.png"]

        assert await self.service.delete_owned(OwnerType.PROJECT, owner_id) == 2
        assert await self.service.list_owned(OwnerType.PROJECT, owner_id) == []
        page = await self.service.list_files()
        assert [f.id for f in page.items] == [other.id]
        assert page.total == 1
        assert page.has_more is False
