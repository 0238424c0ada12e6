from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from algoshelf.core.core import Service
from algoshelf.core.modules.content.models import AlgorithmContent, ContentCreate, ContentUpdate
from algoshelf.errors import NotFoundError
from algoshelf.utils import now

logger = structlog.get_logger(__name__)


class ContentService(Service):
    """Manages note sections belonging to algorithms."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("algorithm_contents")

    async def on_start(self) -> None:
        await self._collection.create_index([("algorithm_id", 1), ("position", 1)])

    async def get_content(self, algorithm_id: UUID, content_id: UUID) -> AlgorithmContent:
        """Get a content section, checking it belongs to the algorithm."""
        found = AlgorithmContent.from_mongo(await self._collection.find_one({"_id": content_id, "algorithm_id": algorithm_id}))
        if found is None:
            raise NotFoundError(f"Content '{content_id}' not found")
        return found

    async def list_contents(self, algorithm_id: UUID) -> list[AlgorithmContent]:
        """List an algorithm's sections in display order."""
        cursor = self._collection.find({"algorithm_id": algorithm_id}).sort([("position", 1), ("created_at", 1)])
        return await AlgorithmContent.list_cursor(cursor)

    async def create_content(self, algorithm_id: UUID, data: ContentCreate) -> AlgorithmContent:
        position = data.position
        if position is None:
            position = len(await self.list_contents(algorithm_id))

        content = AlgorithmContent(
            algorithm_id=algorithm_id,
            title=data.title,
            body=data.body,
            language=data.language,
            position=position,
        )
        await self._collection.insert_one(content.to_mongo())
        logger.debug("content_created", content_id=content.id, algorithm_id=algorithm_id, position=position)
        return content

    async def update_content(self, algorithm_id: UUID, content_id: UUID, data: ContentUpdate) -> AlgorithmContent:
        content = await self.get_content(algorithm_id, content_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return content

        changes["updated_at"] = now()
        await self._collection.update_one({"_id": content_id}, {"$set": changes})
        return await self.get_content(algorithm_id, content_id)

    async def delete_content(self, algorithm_id: UUID, content_id: UUID) -> None:
        result = await self._collection.delete_one({"_id": content_id, "algorithm_id": algorithm_id})
        if result.deleted_count == 0:
            raise NotFoundError(f"Content '{content_id}' not found")
        logger.debug("content_deleted", content_id=content_id, algorithm_id=algorithm_id)
