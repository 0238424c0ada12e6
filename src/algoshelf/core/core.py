from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator, Iterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, cast
from urllib.parse import urlparse

import structlog
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from algoshelf.config import Config

if TYPE_CHECKING:
    from algoshelf.core.modules.algorithm.service import AlgorithmService
    from algoshelf.core.modules.auth.service import AuthService
    from algoshelf.core.modules.content.service import ContentService
    from algoshelf.core.modules.file.service import FileService
    from algoshelf.core.modules.limiter.service import LimiterService
    from algoshelf.core.modules.project.service import ProjectService

logger = structlog.get_logger(__name__)

# (attribute, "module:Class") in start order; auth reads the limiter backend on start
SERVICE_REGISTRY: tuple[tuple[str, str], ...] = (
    ("limiter", "algoshelf.core.modules.limiter.service:LimiterService"),
    ("auth", "algoshelf.core.modules.auth.service:AuthService"),
    ("file", "algoshelf.core.modules.file.service:FileService"),
    ("algorithm", "algoshelf.core.modules.algorithm.service:AlgorithmService"),
    ("content", "algoshelf.core.modules.content.service:ContentService"),
    ("project", "algoshelf.core.modules.project.service:ProjectService"),
)


class Service:
    """Base class for services with direct database access."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self.database = database
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Create indexes or build collaborators once config is available."""

    async def on_stop(self) -> None:
        """Release resources on shutdown."""

    @property
    def core(self) -> Core:
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        self._core = core


def load_service_class(target: str) -> type[Service]:
    module_path, _, class_name = target.partition(":")
    module = importlib.import_module(module_path)
    return cast(type[Service], getattr(module, class_name))


class Services:
    """Registry holding one instance of every service, created from SERVICE_REGISTRY."""

    limiter: LimiterService
    auth: AuthService
    file: FileService
    algorithm: AlgorithmService
    content: ContentService
    project: ProjectService

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self._services: dict[str, Service] = {}
        for attr_name, target in SERVICE_REGISTRY:
            service = load_service_class(target)(database)
            setattr(self, attr_name, service)
            self._services[attr_name] = service

    def __iter__(self) -> Iterator[Service]:
        return iter(self._services.values())

    def set_core(self, core: Core) -> None:
        for service in self:
            service.set_core(core)

    async def start_all(self) -> None:
        """Start services in registry order. If one fails, the ones already started are stopped again."""
        started: list[str] = []
        for name, service in self._services.items():
            try:
                await service.on_start()
            except Exception:
                logger.exception("service_start_failed", service=name, started=started)
                await self._stop(reversed(started))
                raise
            started.append(name)

    async def stop_all(self) -> None:
        """Stop services in reverse start order."""
        await self._stop(reversed(list(self._services)))

    async def _stop(self, names: Iterator[str]) -> None:
        for name in names:
            await self._services[name].on_stop()


class Core:
    """Container providing config, database, and all service instances."""

    config: Config
    mongo_client: AsyncMongoClient[dict[str, Any]] | None
    database: AsyncDatabase[dict[str, Any]]
    services: Services

    def __init__(self, config: Config, database: AsyncDatabase[dict[str, Any]] | None = None) -> None:
        """Connect to MongoDB and create the services.

        An already opened database may be passed in; the core then does not own a client.
        """
        self.config = config
        if database is None:
            self.mongo_client = AsyncMongoClient(config.database_url, uuidRepresentation="standard", tz_aware=True)
            self.database = self.mongo_client.get_database(urlparse(config.database_url).path[1:])
        else:
            self.mongo_client = None
            self.database = database
        self.services = Services(self.database)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        await self.services.start_all()
        logger.info("core_started", database=self.database.name)

    async def on_stop(self) -> None:
        """Stop services, then close the MongoDB client if this core opened it."""
        await self.services.stop_all()
        if self.mongo_client is not None:
            await self.mongo_client.aclose()
