"""On-disk byte storage for uploaded files.

Files are addressed by id: `<base>/<first two hex chars>/<hex id>`. Writes go
to `<base>/.tmp` first and are renamed into place once complete, so readers
never see a partial file.
"""

import asyncio
import hashlib
import os
import tempfile
from collections.abc import AsyncIterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO
from uuid import UUID

import structlog

from algoshelf.errors import PayloadTooLargeError, StorageFailureError

logger = structlog.get_logger(__name__)

TMP_DIR = ".tmp"


@dataclass(frozen=True)
class StoredBlob:
    size: int
    sha256: str


class FileStorage:
    """Path-addressed file storage rooted at `base_path`."""

    def __init__(self, base_path: str | Path) -> None:
        self.base_path = Path(base_path)
        self.tmp_path = self.base_path / TMP_DIR

    def prepare(self) -> int:
        """Create storage directories and remove temporaries left by a crash. Returns the number removed."""
        try:
            self.tmp_path.mkdir(parents=True, exist_ok=True)
            removed = 0
            for leftover in self.tmp_path.iterdir():
                leftover.unlink(missing_ok=True)
                removed += 1
        except OSError as e:
            logger.exception("storage_prepare_failed", path=str(self.base_path), errno=e.errno)
            raise StorageFailureError(f"Cannot prepare storage at {self.base_path}") from e
        return removed

    def path_for(self, file_id: UUID) -> Path:
        return self.base_path / file_id.hex[:2] / file_id.hex

    async def write(self, file_id: UUID, chunks: AsyncIterable[bytes], max_size: int) -> StoredBlob:
        """Stream chunks into a temporary file and publish it under the file id.

        Raises:
            PayloadTooLargeError: more than `max_size` bytes were received
            StorageFailureError: the filesystem refused a write or the rename
        """
        target = self.path_for(file_id)
        digest = hashlib.sha256()
        size = 0
        tmp_name: str | None = None
        try:
            try:
                handle, tmp_name = await asyncio.to_thread(self._create_temporary, self.tmp_path, f"{file_id.hex}-")
            except OSError as e:
                self._log_failure("storage_tmp_create_failed", self.tmp_path, e)
                raise StorageFailureError("Cannot create temporary file") from e

            with handle:
                async for chunk in chunks:
                    if not chunk:
                        continue
                    size += len(chunk)
                    if size > max_size:
                        raise PayloadTooLargeError(max_size)
                    digest.update(chunk)
                    try:
                        await asyncio.to_thread(handle.write, chunk)
                    except OSError as e:
                        self._log_failure("storage_write_failed", Path(tmp_name), e)
                        raise StorageFailureError("Cannot write file") from e
                try:
                    await asyncio.to_thread(self._flush, handle)
                except OSError as e:
                    self._log_failure("storage_flush_failed", Path(tmp_name), e)
                    raise StorageFailureError("Cannot flush file") from e

            try:
                await asyncio.to_thread(self._publish, tmp_name, target)
            except OSError as e:
                self._log_failure("storage_publish_failed", target, e)
                raise StorageFailureError("Cannot publish file") from e
            tmp_name = None
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

        return StoredBlob(size=size, sha256=digest.hexdigest())

    async def verify(self, file_id: UUID, expected_size: int) -> Path:
        """Check that stored bytes exist with the recorded size and return their path.

        Raises:
            StorageFailureError: bytes are missing, unreadable or of the wrong size
        """
        path = self.path_for(file_id)
        try:
            actual_size = (await asyncio.to_thread(path.stat)).st_size
        except OSError as e:
            self._log_failure("storage_open_failed", path, e)
            raise StorageFailureError("Stored file is unavailable") from e

        if actual_size != expected_size:
            logger.error("storage_size_mismatch", path=str(path), expected=expected_size, actual=actual_size)
            raise StorageFailureError("Stored file is corrupted")
        return path

    async def delete(self, file_id: UUID) -> bool:
        """Remove stored bytes. Returns False when there was nothing to remove."""
        path = self.path_for(file_id)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            logger.warning("storage_delete_missing", path=str(path))
            return False
        except OSError as e:
            self._log_failure("storage_delete_failed", path, e)
            raise StorageFailureError("Cannot delete stored file") from e
        return True

    @staticmethod
    def _create_temporary(directory: Path, prefix: str) -> tuple[BinaryIO, str]:
        fd, name = tempfile.mkstemp(dir=directory, prefix=prefix)
        return os.fdopen(fd, "wb"), name

    @staticmethod
    def _publish(tmp_name: str, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        os.replace(tmp_name, target)

    @staticmethod
    def _flush(handle: BinaryIO) -> None:
        handle.flush()
        os.fsync(handle.fileno())

    @staticmethod
    def _log_failure(event: str, path: Path, error: OSError) -> None:
        logger.error(event, path=str(path), errno=error.errno, error=error.strerror)


def iter_file(path: Path, start: int, length: int, chunk_size: int) -> Iterator[bytes]:
    """Yield `length` bytes from `start`.

    The file is opened on first iteration and closed when done or abandoned, so
    a stream that is never consumed holds no handle.
    """
    try:
        handle = path.open("rb")
    except OSError as e:
        FileStorage._log_failure("storage_open_failed", path, e)
        raise StorageFailureError("Stored file is unavailable") from e

    with handle:
        handle.seek(start)
        remaining = length
        while remaining > 0:
            chunk = handle.read(min(chunk_size, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk
