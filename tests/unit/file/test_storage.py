"""Tests for on-disk file storage."""

import hashlib
from pathlib import Path
from uuid import uuid4

import pytest

from algoshelf.core.modules.file.storage import FileStorage, iter_file
from algoshelf.errors import PayloadTooLargeError, StorageFailureError


async def chunked(data: bytes, size: int = 100):
    for start in range(0, len(data), size):
        yield data[start : start + size]


def stored_files(storage: FileStorage) -> list[str]:
    return sorted(str(p.relative_to(storage.base_path)) for p in storage.base_path.rglob("*") if p.is_file())


class TestFileStorage:
    """Tests for FileStorage."""

    @pytest.fixture(autouse=True)
    def setup(self, tmp_path):
        self.storage = FileStorage(tmp_path / "files")
        self.storage.prepare()

    def test_prepare_removes_leftover_temporaries(self):
        """Test that interrupted uploads are cleaned up at startup."""
        (self.storage.tmp_path / "abandoned-upload").write_bytes(b"partial")
        assert self.storage.prepare() == 1
        assert list(self.storage.tmp_path.iterdir()) == []

    def test_path_is_sharded_by_id(self):
        file_id = uuid4()
        path = self.storage.path_for(file_id)
        assert path.parent.name == file_id.hex[:2]
        assert path.name == file_id.hex

    async def test_write_publishes_complete_file(self):
        """Test that written bytes land at the id path with size and digest."""
        data = bytes(range(256)) * 10
        file_id = uuid4()

        blob = await self.storage.write(file_id, chunked(data), max_size=10_000)

        assert blob.size == len(data)
        assert blob.sha256 == hashlib.sha256(data).hexdigest()
        assert self.storage.path_for(file_id).read_bytes() == data
        assert list(self.storage.tmp_path.iterdir()) == []

    async def test_oversized_write_leaves_nothing_behind(self):
        """Test that exceeding the ceiling removes the partial file."""
        file_id = uuid4()

        with pytest.raises(PayloadTooLargeError) as exc_info:
            await self.storage.write(file_id, chunked(b"x" * 1000), max_size=500)

        assert exc_info.value.limit == 500
        assert not self.storage.path_for(file_id).exists()
        assert stored_files(self.storage) == []

    async def test_empty_file(self):
        file_id = uuid4()
        blob = await self.storage.write(file_id, chunked(b""), max_size=10)
        assert blob.size == 0
        assert self.storage.path_for(file_id).read_bytes() == b""

    async def test_verify_and_iterate_range(self):
        """Test reading a byte span in small chunks."""
        file_id = uuid4()
        data = b"0123456789abcdef"
        await self.storage.write(file_id, chunked(data), max_size=100)

        path = await self.storage.verify(file_id, len(data))
        chunks = list(iter_file(path, 4, 8, chunk_size=3))

        assert path == self.storage.path_for(file_id)
        assert chunks == [b"456", b"789", b"ab"]

    async def test_verify_missing_file_is_storage_failure(self):
        with pytest.raises(StorageFailureError):
            await self.storage.verify(uuid4(), 10)

    async def test_verify_size_mismatch_is_storage_failure(self):
        """Test that bytes not matching the recorded size are refused."""
        file_id = uuid4()
        await self.storage.write(file_id, chunked(b"abc"), max_size=100)

        with pytest.raises(StorageFailureError):
            await self.storage.verify(file_id, 4)

    async def test_delete(self):
        file_id = uuid4()
        await self.storage.write(file_id, chunked(b"abc"), max_size=100)

        assert await self.storage.delete(file_id) is True
        assert await self.storage.delete(file_id) is False
        assert stored_files(self.storage) == []


class TestIterFile:
    """Tests for lazy file iteration."""

    @pytest.fixture
    def opened(self, monkeypatch):
        handles = []
        real_open = Path.open

        def tracking_open(path, *args, **kwargs):
            handle = real_open(path, *args, **kwargs)
            handles.append(handle)
            return handle

        monkeypatch.setattr(Path, "open", tracking_open)
        return handles

    def test_unconsumed_iterator_opens_nothing(self, tmp_path, opened):
        """Test that a stream which is never read holds no file handle."""
        path = tmp_path / "data.bin"
        path.write_bytes(b"a" * 100)
        opened.clear()

        iterator = iter_file(path, 0, 100, chunk_size=10)
        del iterator

        assert opened == []

    def test_abandoned_iteration_closes_handle(self, tmp_path, opened):
        path = tmp_path / "data.bin"
        path.write_bytes(b"a" * 100)
        opened.clear()

        iterator = iter_file(path, 0, 100, chunk_size=10)
        assert next(iterator) == b"a" * 10
        iterator.close()

        assert len(opened) == 1
        assert opened[0].closed

    def test_exhausted_iteration_closes_handle(self, tmp_path, opened):
        path = tmp_path / "data.bin"
        path.write_bytes(b"0123456789")
        opened.clear()

        assert b"".join(iter_file(path, 2, 100, chunk_size=4)) == b"23456789"
        assert opened[0].closed

    def test_file_removed_before_reading_is_storage_failure(self, tmp_path):
        """Test that bytes vanishing after the response was prepared surface as a storage failure."""
        iterator = iter_file(tmp_path / "gone.bin", 0, 10, chunk_size=4)

        with pytest.raises(StorageFailureError):
            next(iterator)

