from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, computed_field
from pymongo.asynchronous.collection import AsyncCollection

from algoshelf.core.db import MongoModel

T = TypeVar("T")
M = TypeVar("M", bound=MongoModel)


class PaginationResult(BaseModel, Generic[T]):
    """One page of a listing plus the numbers needed to fetch the next one."""

    items: list[T] = Field(..., description="Items in the current page")
    total: int = Field(..., description="Total number of matching items", ge=0)
    limit: int = Field(..., description="Maximum items per page", ge=1)
    offset: int = Field(..., description="Number of items skipped", ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_more(self) -> bool:
        """Whether there are more items beyond the current page."""
        return self.offset + len(self.items) < self.total


async def paginate(
    collection: AsyncCollection[dict[str, Any]],
    model: type[M],
    query: dict[str, Any],
    sort: list[tuple[str, int]],
    limit: int,
    offset: int,
) -> PaginationResult[M]:
    """Count matches and load a single sorted page of them."""
    total = await collection.count_documents(query)
    cursor = collection.find(query).sort(sort).skip(offset).limit(limit)
    items = await model.list_cursor(cursor)
    return PaginationResult(items=items, total=total, limit=limit, offset=offset)
