from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from algoshelf.core.core import Service
from algoshelf.core.modules.algorithm.models import Algorithm, AlgorithmCreate, AlgorithmUpdate, Difficulty
from algoshelf.core.pagination import PaginationResult, paginate
from algoshelf.errors import NotFoundError, ValidationError
from algoshelf.utils import normalize_tags, now

logger = structlog.get_logger(__name__)


class AlgorithmService(Service):
    """Manages algorithm write-ups."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("algorithms")

    async def on_start(self) -> None:
        """Create indexes for slug lookup and listing filters."""
        await self._collection.create_index([("slug", 1)], unique=True)
        await self._collection.create_index([("category", 1)])
        await self._collection.create_index([("tags", 1)])
        await self._collection.create_index([("created_at", -1)])

    async def get_algorithm(self, algorithm_id: UUID) -> Algorithm:
        found = Algorithm.from_mongo(await self._collection.find_one({"_id": algorithm_id}))
        if found is None:
            raise NotFoundError(f"Algorithm '{algorithm_id}' not found")
        return found

    async def get_algorithm_by_slug(self, slug: str) -> Algorithm:
        found = Algorithm.from_mongo(await self._collection.find_one({"slug": slug}))
        if found is None:
            raise NotFoundError(f"Algorithm with slug '{slug}' not found")
        return found

    async def has_slug(self, slug: str) -> bool:
        return await self._collection.find_one({"slug": slug}) is not None

    async def list_algorithms(
        self,
        limit: int = 50,
        offset: int = 0,
        category: str | None = None,
        tag: str | None = None,
        difficulty: Difficulty | None = None,
    ) -> PaginationResult[Algorithm]:
        """Get paginated algorithms, newest first, optionally filtered."""
        query: dict[str, Any] = {}
        if category:
            query["category"] = category
        if tag:
            query["tags"] = tag.strip().lower()
        if difficulty:
            query["difficulty"] = difficulty

        return await paginate(self._collection, Algorithm, query, [("created_at", -1)], limit, offset)

    async def create_algorithm(self, data: AlgorithmCreate) -> Algorithm:
        if await self.has_slug(data.slug):
            raise ValidationError(f"Algorithm with slug '{data.slug}' already exists")

        algorithm = Algorithm(**data.model_dump(exclude={"tags"}), tags=normalize_tags(data.tags))
        try:
            await self._collection.insert_one(algorithm.to_mongo())
        except DuplicateKeyError as e:
            raise ValidationError(f"Algorithm with slug '{data.slug}' already exists") from e
        logger.debug("algorithm_created", algorithm_id=algorithm.id, slug=algorithm.slug)
        return algorithm

    async def update_algorithm(self, algorithm_id: UUID, data: AlgorithmUpdate) -> Algorithm:
        """Apply a partial update. Only fields that are set and not null change."""
        algorithm = await self.get_algorithm(algorithm_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if "slug" in changes and changes["slug"] != algorithm.slug and await self.has_slug(changes["slug"]):
            raise ValidationError(f"Algorithm with slug '{changes['slug']}' already exists")
        if "tags" in changes:
            changes["tags"] = normalize_tags(changes["tags"])
        if not changes:
            return algorithm

        changes["updated_at"] = now()
        try:
            await self._collection.update_one({"_id": algorithm_id}, {"$set": changes})
        except DuplicateKeyError as e:
            raise ValidationError(f"Algorithm with slug '{changes['slug']}' already exists") from e
        return await self.get_algorithm(algorithm_id)

    async def delete_algorithm(self, algorithm_id: UUID) -> None:
        result = await self._collection.delete_one({"_id": algorithm_id})
        if result.deleted_count == 0:
            raise NotFoundError(f"Algorithm '{algorithm_id}' not found")
        logger.debug("algorithm_deleted", algorithm_id=algorithm_id)
