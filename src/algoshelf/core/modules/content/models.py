"""Notes attached to an algorithm write-up."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from algoshelf.core.db import MongoModel
from algoshelf.utils import now


class AlgorithmContent(MongoModel):
    """A note section of an algorithm, e.g. an explanation or an implementation.

    Indexed on (algorithm_id, position).
    """

    algorithm_id: UUID
    title: str
    body: str = ""  # Markdown
    language: str | None = None  # Code language when the body is mainly a listing
    position: int = 0  # Display order inside the algorithm

    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)


class ContentCreate(BaseModel):
    """Fields accepted when adding a note to an algorithm."""

    title: str = Field(..., min_length=1, description="Section title")
    body: str = Field("", description="Markdown body")
    language: str | None = Field(None, description="Code language, e.g. 'python'")
    position: int | None = Field(None, ge=0, description="Display order; appended at the end when omitted")


class ContentUpdate(BaseModel):
    """Partial update; omitted or null fields are left unchanged."""

    title: str | None = Field(None, min_length=1)
    body: str | None = None
    language: str | None = None
    position: int | None = Field(None, ge=0)
