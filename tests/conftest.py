"""Shared pytest fixtures."""

from collections.abc import AsyncIterator, Iterator
from copy import deepcopy
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from algoshelf.app import App
from algoshelf.config import Config
from algoshelf.core.core import Core
from algoshelf.web.server import create_fastapi_app

ADMIN_PASSWORD = "correct horse battery staple"
# Low cost factor keeps the suite fast
ADMIN_PASSWORD_HASH = bcrypt.hashpw(ADMIN_PASSWORD.encode(), bcrypt.gensalt(rounds=4)).decode()

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 4


class FakeClock:
    """Settable clock for time-dependent logic."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


# === In-memory stand-in for the async MongoDB collection API ===


@dataclass
class FakeDeleteResult:
    deleted_count: int


@dataclass
class FakeUpdateResult:
    matched_count: int
    modified_count: int


def _matches(doc: dict[str, Any], query: dict[str, Any]) -> bool:
    for key, expected in query.items():
        value = doc.get(key)
        if isinstance(value, list) and not isinstance(expected, list):
            if expected not in value:
                return False
        elif value != expected:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs
        self._skip = 0
        self._limit = 0

    def sort(self, key_or_list: str | list[tuple[str, int]], direction: int = 1) -> "FakeCursor":
        keys = [(key_or_list, direction)] if isinstance(key_or_list, str) else key_or_list
        # Stable sorts applied from the least significant key
        for key, key_direction in reversed(keys):
            self._docs.sort(key=lambda doc, k=key: doc.get(k), reverse=key_direction < 0)
        return self

    def skip(self, count: int) -> "FakeCursor":
        self._skip = count
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._limit = count
        return self

    def _selected(self) -> list[dict[str, Any]]:
        docs = self._docs[self._skip :]
        return docs[: self._limit] if self._limit else docs

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[dict[str, Any]]:
        for doc in self._selected():
            yield deepcopy(doc)


class FakeCollection:
    def __init__(self, name: str) -> None:
        self.name = name
        self.docs: dict[Any, dict[str, Any]] = {}
        self.indexes: list[Any] = []

    async def create_index(self, keys: Any, **kwargs: Any) -> str:
        self.indexes.append((keys, kwargs))
        return f"index_{len(self.indexes)}"

    async def insert_one(self, document: dict[str, Any]) -> None:
        if document["_id"] in self.docs:
            raise DuplicateKeyError(f"Duplicate _id {document['_id']}")
        self.docs[document["_id"]] = deepcopy(document)

    async def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        for doc in self.docs.values():
            if _matches(doc, query):
                return deepcopy(doc)
        return None

    def find(self, query: dict[str, Any] | None = None) -> FakeCursor:
        return FakeCursor([doc for doc in self.docs.values() if _matches(doc, query or {})])

    async def count_documents(self, query: dict[str, Any]) -> int:
        return sum(1 for doc in self.docs.values() if _matches(doc, query))

    async def update_one(self, query: dict[str, Any], update: dict[str, Any]) -> FakeUpdateResult:
        for doc in self.docs.values():
            if _matches(doc, query):
                doc.update(deepcopy(update.get("$set", {})))
                return FakeUpdateResult(matched_count=1, modified_count=1)
        return FakeUpdateResult(matched_count=0, modified_count=0)

    async def delete_one(self, query: dict[str, Any]) -> FakeDeleteResult:
        for key, doc in self.docs.items():
            if _matches(doc, query):
                del self.docs[key]
                return FakeDeleteResult(deleted_count=1)
        return FakeDeleteResult(deleted_count=0)

    async def delete_many(self, query: dict[str, Any]) -> FakeDeleteResult:
        keys = [key for key, doc in self.docs.items() if _matches(doc, query)]
        for key in keys:
            del self.docs[key]
        return FakeDeleteResult(deleted_count=len(keys))


class FakeDatabase:
    name = "algoshelf_test"

    def __init__(self) -> None:
        self.collections: dict[str, FakeCollection] = {}

    def get_collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection(name))


# === Application fixtures ===


@pytest.fixture
def config(tmp_path):
    """Configuration pointing file storage at a temporary directory."""
    return Config(
        database_url="mongodb://localhost:27017/algoshelf_test",
        admin_password_hash=ADMIN_PASSWORD_HASH,
        token_secret_key="test-secret-key",
        files_path=str(tmp_path / "files"),
        max_upload_size=64 * 1024,
        stream_chunk_size=256,
    )


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
async def core(config, fake_db):
    """Started core over the in-memory database."""
    core = Core(config, database=fake_db)
    async with core.lifespan():
        yield core


@pytest.fixture
def client(config, fake_db) -> Iterator[TestClient]:
    """HTTP client for the full application; the lifespan runs on enter."""
    app = App(config, core=Core(config, database=fake_db))
    with TestClient(create_fastapi_app(app, config)) as test_client:
        yield test_client


@pytest.fixture
def admin_headers(client):
    """Authorization header carrying a freshly issued admin token."""
    response = client.post("/api/v1/auth/login", json={"password": ADMIN_PASSWORD})
    assert response.status_code == 200
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def admin_password():
    return ADMIN_PASSWORD


@pytest.fixture
def admin_password_hash():
    return ADMIN_PASSWORD_HASH


@pytest.fixture
def png_bytes():
    return PNG_BYTES
