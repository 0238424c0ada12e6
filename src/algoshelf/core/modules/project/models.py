"""Project showcase models."""

from datetime import datetime

from pydantic import BaseModel, Field, HttpUrl

from algoshelf.core.db import MongoModel
from algoshelf.utils import SLUG_PATTERN, now


class Project(MongoModel):
    """Showcased project. Indexed on slug - unique, featured."""

    slug: str
    title: str
    summary: str = ""
    description: str = ""  # Markdown
    tech_stack: list[str] = Field(default_factory=list)
    repo_url: str | None = None
    demo_url: str | None = None
    featured: bool = False

    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)


class ProjectCreate(BaseModel):
    """Fields accepted when creating a project."""

    slug: str = Field(..., description="URL-friendly unique identifier", pattern=SLUG_PATTERN)
    title: str = Field(..., min_length=1, description="Display title")
    summary: str = Field("", description="Short summary for listings")
    description: str = Field("", description="Markdown description")
    tech_stack: list[str] = Field(default_factory=list, description="Technologies used")
    repo_url: HttpUrl | None = Field(None, description="Source repository URL")
    demo_url: HttpUrl | None = Field(None, description="Live demo URL")
    featured: bool = Field(False, description="Show on the front page")


class ProjectUpdate(BaseModel):
    """Partial update; omitted or null fields are left unchanged."""

    slug: str | None = Field(None, pattern=SLUG_PATTERN)
    title: str | None = Field(None, min_length=1)
    summary: str | None = None
    description: str | None = None
    tech_stack: list[str] | None = None
    repo_url: HttpUrl | None = None
    demo_url: HttpUrl | None = None
    featured: bool | None = None
