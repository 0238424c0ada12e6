from collections.abc import AsyncIterable, AsyncIterator
from contextlib import suppress
from typing import Any
from uuid import UUID, uuid4

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from algoshelf.core.core import Service
from algoshelf.core.modules.file.mime import SNIFF_SIZE, resolve_mime_type
from algoshelf.core.modules.file.models import FileStream, OwnerType, UploadedFile
from algoshelf.core.modules.file.ranges import parse_range_header
from algoshelf.core.modules.file.storage import FileStorage, iter_file
from algoshelf.core.modules.file.utils import sanitize_filename
from algoshelf.core.pagination import PaginationResult, paginate
from algoshelf.errors import NotFoundError, PayloadTooLargeError, StorageFailureError

logger = structlog.get_logger(__name__)


async def peek(chunks: AsyncIterable[bytes], size: int) -> tuple[bytes, AsyncIterator[bytes]]:
    """Read at least `size` bytes (or everything) and return them with an iterator over the full stream."""
    iterator = aiter(chunks)
    buffered: list[bytes] = []
    buffered_size = 0
    async for chunk in iterator:
        buffered.append(chunk)
        buffered_size += len(chunk)
        if buffered_size >= size:
            break

    async def replay() -> AsyncIterator[bytes]:
        for chunk in buffered:
            yield chunk
        async for chunk in iterator:
            yield chunk

    return b"".join(buffered)[:size], replay()


class FileService(Service):
    """Stores uploaded files on disk with their metadata in MongoDB."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("files")
        self._storage: FileStorage | None = None

    async def on_start(self) -> None:
        """Create indexes and the storage directories."""
        await self._collection.create_index([("owner_type", 1), ("owner_id", 1)])
        await self._collection.create_index([("created_at", -1)])
        removed = self.storage.prepare()
        logger.debug("file_service_started", files_path=self.core.config.files_path, removed_temporaries=removed)

    @property
    def storage(self) -> FileStorage:
        if self._storage is None:
            self._storage = FileStorage(self.core.config.files_path)
        return self._storage

    async def store(
        self,
        chunks: AsyncIterable[bytes],
        declared_mime_type: str | None,
        declared_name: str,
        owner_type: OwnerType | None = None,
        owner_id: UUID | None = None,
        declared_size: int | None = None,
    ) -> UploadedFile:
        """Stream an upload to disk and record its metadata.

        Args:
            chunks: Request body chunks
            declared_mime_type: Content type sent by the client (a hint only)
            declared_name: Original filename
            owner_type: Kind of entity owning the file, None for standalone files
            owner_id: ID of the owning entity
            declared_size: Content-Length, when known, for an early size check

        Returns:
            The stored file metadata

        Raises:
            PayloadTooLargeError: upload exceeds max_upload_size
            UnsupportedMediaTypeError: media type is blocked or not allow-listed
            StorageFailureError: disk write failed
        """
        max_size = self.core.config.max_upload_size
        if declared_size is not None and declared_size > max_size:
            raise PayloadTooLargeError(max_size)

        filename = sanitize_filename(declared_name)
        head, stream = await peek(chunks, SNIFF_SIZE)
        mime_type = resolve_mime_type(declared_mime_type, filename, head)

        file_id = uuid4()
        blob = await self.storage.write(file_id, stream, max_size)
        uploaded = UploadedFile(
            id=file_id,
            filename=filename,
            mime_type=mime_type,
            size=blob.size,
            sha256=blob.sha256,
            owner_type=owner_type,
            owner_id=owner_id,
        )
        try:
            await self._collection.insert_one(uploaded.to_mongo())
        except BaseException:
            with suppress(StorageFailureError):
                await self.storage.delete(file_id)
            raise

        logger.info(
            "file_stored",
            file_id=file_id,
            filename=filename,
            mime_type=mime_type,
            declared_mime_type=declared_mime_type,
            size=blob.size,
            owner_type=owner_type,
            owner_id=owner_id,
        )
        return uploaded

    async def get_file(self, file_id: UUID) -> UploadedFile:
        """Get file metadata by ID.

        Raises:
            NotFoundError: If file not found
        """
        found = UploadedFile.from_mongo(await self._collection.find_one({"_id": file_id}))
        if found is None:
            raise NotFoundError(f"File not found: {file_id}")
        return found

    async def retrieve(self, file_id: UUID, range_header: str | None = None) -> FileStream:
        """Open a file for sending, honouring a single byte range.

        Raises:
            NotFoundError: no such file
            RangeNotSatisfiableError: range starts past the end of the file
            StorageFailureError: metadata exists but the bytes cannot be read
        """
        uploaded = await self.get_file(file_id)
        byte_range = parse_range_header(range_header, uploaded.size)
        path = await self.storage.verify(file_id, uploaded.size)

        chunk_size = self.core.config.stream_chunk_size
        if byte_range is None:
            return FileStream(file=uploaded, chunks=iter_file(path, 0, uploaded.size, chunk_size), content_length=uploaded.size)
        return FileStream(
            file=uploaded,
            chunks=iter_file(path, byte_range.start, byte_range.length, chunk_size),
            content_length=byte_range.length,
            byte_range=byte_range,
        )

    async def delete(self, file_id: UUID) -> None:
        """Delete file metadata, then its bytes.

        Raises:
            NotFoundError: no such file (including a second delete)
        """
        result = await self._collection.delete_one({"_id": file_id})
        if result.deleted_count == 0:
            raise NotFoundError(f"File not found: {file_id}")
        await self.storage.delete(file_id)
        logger.info("file_deleted", file_id=file_id)

    async def list_owned(self, owner_type: OwnerType, owner_id: UUID) -> list[UploadedFile]:
        """List files owned by an entity, newest first."""
        cursor = self._collection.find({"owner_type": owner_type, "owner_id": owner_id}).sort("created_at", -1)
        return await UploadedFile.list_cursor(cursor)

    async def list_files(self, limit: int = 50, offset: int = 0) -> PaginationResult[UploadedFile]:
        """List all files, newest first."""
        return await paginate(self._collection, UploadedFile, {}, [("created_at", -1)], limit, offset)

    async def delete_owned(self, owner_type: OwnerType, owner_id: UUID) -> int:
        """Delete every file owned by an entity and return how many were removed."""
        files = await self.list_owned(owner_type, owner_id)
        for uploaded in files:
            result = await self._collection.delete_one({"_id": uploaded.id})
            if result.deleted_count:
                await self.storage.delete(uploaded.id)
        logger.debug("owned_files_deleted", owner_type=owner_type, owner_id=owner_id, count=len(files))
        return len(files)
