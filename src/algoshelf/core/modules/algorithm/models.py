"""Algorithm write-up models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from algoshelf.core.db import MongoModel
from algoshelf.utils import SLUG_PATTERN, now


class Difficulty(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Algorithm(MongoModel):
    """Published algorithm write-up.

    Indexed on slug - unique, category, tags.
    """

    slug: str  # URL-friendly unique ID
    title: str
    category: str = ""  # e.g. "graphs", "dynamic-programming"
    difficulty: Difficulty = Difficulty.MEDIUM
    summary: str = ""
    description: str = ""  # Markdown body
    time_complexity: str = ""  # e.g. "O(n log n)"
    space_complexity: str = ""
    tags: list[str] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)


class AlgorithmCreate(BaseModel):
    """Fields accepted when creating an algorithm."""

    slug: str = Field(..., description="URL-friendly unique identifier", pattern=SLUG_PATTERN)
    title: str = Field(..., min_length=1, description="Display title")
    category: str = Field("", description="Category, e.g. 'graphs'")
    difficulty: Difficulty = Field(Difficulty.MEDIUM, description="Difficulty level")
    summary: str = Field("", description="Short summary for listings")
    description: str = Field("", description="Markdown write-up")
    time_complexity: str = Field("", description="Time complexity, e.g. 'O(n log n)'")
    space_complexity: str = Field("", description="Space complexity")
    tags: list[str] = Field(default_factory=list, description="Free-form tags")


class AlgorithmUpdate(BaseModel):
    """Partial update; omitted or null fields are left unchanged."""

    slug: str | None = Field(None, pattern=SLUG_PATTERN)
    title: str | None = Field(None, min_length=1)
    category: str | None = None
    difficulty: Difficulty | None = None
    summary: str | None = None
    description: str | None = None
    time_complexity: str | None = None
    space_complexity: str | None = None
    tags: list[str] | None = None
