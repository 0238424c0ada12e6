from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import Field

from algoshelf.core.db import MongoModel
from algoshelf.utils import now


class OwnerType(StrEnum):
    """Content entities that can own uploaded files."""

    ALGORITHM = "algorithm"
    ALGORITHM_CONTENT = "algorithm_content"
    PROJECT = "project"


class UploadedFile(MongoModel):
    """Metadata of a stored file. The bytes live at a path derived from the id."""

    filename: str  # Sanitized original filename
    mime_type: str  # Resolved at upload time, served as-is
    size: int  # File size in bytes
    sha256: str  # Hex digest of the content
    owner_type: OwnerType | None = None
    owner_id: UUID | None = None

    created_at: datetime = Field(default_factory=now)

    @property
    def etag(self) -> str:
        return f'"{self.sha256[:32]}"'


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte span inside a file of `size` bytes."""

    start: int
    end: int
    size: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.size}"


@dataclass
class FileStream:
    """A file ready to be sent: metadata, the body iterator and the served span."""

    file: UploadedFile
    chunks: Iterator[bytes]
    content_length: int
    byte_range: ByteRange | None = None

    @property
    def is_partial(self) -> bool:
        return self.byte_range is not None
