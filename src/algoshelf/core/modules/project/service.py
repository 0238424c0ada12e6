from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from algoshelf.core.core import Service
from algoshelf.core.modules.project.models import Project, ProjectCreate, ProjectUpdate
from algoshelf.core.pagination import PaginationResult, paginate
from algoshelf.errors import NotFoundError, ValidationError
from algoshelf.utils import now


def _project_fields(data: ProjectCreate | ProjectUpdate) -> dict[str, Any]:
    """Dump set, non-null fields with URLs as plain strings."""
    fields = data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
    if "tech_stack" in fields:
        fields["tech_stack"] = [item.strip() for item in fields["tech_stack"] if item.strip()]
    return fields


class ProjectService(Service):
    """Manages project showcases."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("projects")

    async def on_start(self) -> None:
        await self._collection.create_index([("slug", 1)], unique=True)
        await self._collection.create_index([("featured", -1), ("created_at", -1)])

    async def get_project(self, project_id: UUID) -> Project:
        found = Project.from_mongo(await self._collection.find_one({"_id": project_id}))
        if found is None:
            raise NotFoundError(f"Project '{project_id}' not found")
        return found

    async def get_project_by_slug(self, slug: str) -> Project:
        found = Project.from_mongo(await self._collection.find_one({"slug": slug}))
        if found is None:
            raise NotFoundError(f"Project with slug '{slug}' not found")
        return found

    async def has_slug(self, slug: str) -> bool:
        return await self._collection.find_one({"slug": slug}) is not None

    async def list_projects(self, limit: int = 50, offset: int = 0, featured: bool | None = None) -> PaginationResult[Project]:
        """Get paginated projects, featured first, then newest."""
        query: dict[str, Any] = {}
        if featured is not None:
            query["featured"] = featured

        return await paginate(self._collection, Project, query, [("featured", -1), ("created_at", -1)], limit, offset)

    async def create_project(self, data: ProjectCreate) -> Project:
        if await self.has_slug(data.slug):
            raise ValidationError(f"Project with slug '{data.slug}' already exists")

        project = Project(**_project_fields(data))
        try:
            await self._collection.insert_one(project.to_mongo())
        except DuplicateKeyError as e:
            raise ValidationError(f"Project with slug '{data.slug}' already exists") from e
        return project

    async def update_project(self, project_id: UUID, data: ProjectUpdate) -> Project:
        project = await self.get_project(project_id)
        changes = _project_fields(data)

        if "slug" in changes and changes["slug"] != project.slug and await self.has_slug(changes["slug"]):
            raise ValidationError(f"Project with slug '{changes['slug']}' already exists")
        if not changes:
            return project

        changes["updated_at"] = now()
        try:
            await self._collection.update_one({"_id": project_id}, {"$set": changes})
        except DuplicateKeyError as e:
            raise ValidationError(f"Project with slug '{changes['slug']}' already exists") from e
        return await self.get_project(project_id)

    async def delete_project(self, project_id: UUID) -> None:
        result = await self._collection.delete_one({"_id": project_id})
        if result.deleted_count == 0:
            raise NotFoundError(f"Project '{project_id}' not found")
