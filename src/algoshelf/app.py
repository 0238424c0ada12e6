from collections.abc import AsyncGenerator, AsyncIterable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from uuid import UUID

import structlog

from algoshelf.config import Config
from algoshelf.core.core import Core
from algoshelf.core.modules.algorithm.models import Algorithm, AlgorithmCreate, AlgorithmUpdate, Difficulty
from algoshelf.core.modules.auth.models import AuthToken, IssuedToken, Principal
from algoshelf.core.modules.content.models import AlgorithmContent, ContentCreate, ContentUpdate
from algoshelf.core.modules.file.models import FileStream, OwnerType, UploadedFile
from algoshelf.core.modules.project.models import Project, ProjectCreate, ProjectUpdate
from algoshelf.core.pagination import PaginationResult

logger = structlog.get_logger(__name__)


@dataclass
class FileUpload:
    """Raw upload as received by the web layer."""

    chunks: AsyncIterable[bytes]
    filename: str
    mime_type: str | None  # Content-Type sent by the client
    size: int | None  # Content-Length, when sent


class App:
    """Facade for all application operations, verifies the admin token before any mutation."""

    def __init__(self, config: Config, core: Core | None = None) -> None:
        self._core = core or Core(config)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    # === Authentication ===
    async def login(self, password: str, client_address: str) -> IssuedToken:
        """Authenticate the admin from a client address and issue a token."""
        return await self._core.services.auth.login(password, client_address)

    def verify_token(self, auth_token: AuthToken) -> Principal:
        """Verify a token; raises an AuthenticationError subclass when it is not acceptable."""
        return self._core.services.auth.verify(auth_token)

    async def get_session(self, auth_token: AuthToken) -> Principal:
        return self._ensure_admin(auth_token)

    # === Algorithms ===
    async def list_algorithms(
        self,
        limit: int = 50,
        offset: int = 0,
        category: str | None = None,
        tag: str | None = None,
        difficulty: Difficulty | None = None,
    ) -> PaginationResult[Algorithm]:
        return await self._core.services.algorithm.list_algorithms(limit, offset, category, tag, difficulty)

    async def get_algorithm(self, slug: str) -> Algorithm:
        return await self._resolve_algorithm(slug)

    async def create_algorithm(self, auth_token: AuthToken, data: AlgorithmCreate) -> Algorithm:
        """Create an algorithm (admin only)."""
        self._ensure_admin(auth_token)
        return await self._core.services.algorithm.create_algorithm(data)

    async def update_algorithm(self, auth_token: AuthToken, slug: str, data: AlgorithmUpdate) -> Algorithm:
        """Update an algorithm (admin only)."""
        self._ensure_admin(auth_token)
        algorithm = await self._resolve_algorithm(slug)
        return await self._core.services.algorithm.update_algorithm(algorithm.id, data)

    async def delete_algorithm(self, auth_token: AuthToken, slug: str) -> None:
        """Delete an algorithm with its contents and all their files (admin only)."""
        self._ensure_admin(auth_token)
        algorithm = await self._resolve_algorithm(slug)
        services = self._core.services

        # Delete in order: content files and contents first, then the algorithm's own files and the algorithm
        for content in await services.content.list_contents(algorithm.id):
            await services.file.delete_owned(OwnerType.ALGORITHM_CONTENT, content.id)
            await services.content.delete_content(algorithm.id, content.id)
        await services.file.delete_owned(OwnerType.ALGORITHM, algorithm.id)
        await services.algorithm.delete_algorithm(algorithm.id)
        logger.info("algorithm_deleted", slug=slug)

    # === Algorithm contents ===
    async def list_contents(self, slug: str) -> list[AlgorithmContent]:
        algorithm = await self._resolve_algorithm(slug)
        return await self._core.services.content.list_contents(algorithm.id)

    async def get_content(self, slug: str, content_id: UUID) -> AlgorithmContent:
        algorithm = await self._resolve_algorithm(slug)
        return await self._core.services.content.get_content(algorithm.id, content_id)

    async def create_content(self, auth_token: AuthToken, slug: str, data: ContentCreate) -> AlgorithmContent:
        """Add a note section to an algorithm (admin only)."""
        self._ensure_admin(auth_token)
        algorithm = await self._resolve_algorithm(slug)
        return await self._core.services.content.create_content(algorithm.id, data)

    async def update_content(
        self, auth_token: AuthToken, slug: str, content_id: UUID, data: ContentUpdate
    ) -> AlgorithmContent:
        """Update a note section (admin only)."""
        self._ensure_admin(auth_token)
        algorithm = await self._resolve_algorithm(slug)
        return await self._core.services.content.update_content(algorithm.id, content_id, data)

    async def delete_content(self, auth_token: AuthToken, slug: str, content_id: UUID) -> None:
        """Delete a note section and its files (admin only)."""
        self._ensure_admin(auth_token)
        algorithm = await self._resolve_algorithm(slug)
        content = await self._core.services.content.get_content(algorithm.id, content_id)
        await self._core.services.file.delete_owned(OwnerType.ALGORITHM_CONTENT, content.id)
        await self._core.services.content.delete_content(algorithm.id, content.id)

    # === Projects ===
    async def list_projects(self, limit: int = 50, offset: int = 0, featured: bool | None = None) -> PaginationResult[Project]:
        return await self._core.services.project.list_projects(limit, offset, featured)

    async def get_project(self, slug: str) -> Project:
        return await self._core.services.project.get_project_by_slug(slug)

    async def create_project(self, auth_token: AuthToken, data: ProjectCreate) -> Project:
        """Create a project (admin only)."""
        self._ensure_admin(auth_token)
        return await self._core.services.project.create_project(data)

    async def update_project(self, auth_token: AuthToken, slug: str, data: ProjectUpdate) -> Project:
        """Update a project (admin only)."""
        self._ensure_admin(auth_token)
        project = await self._core.services.project.get_project_by_slug(slug)
        return await self._core.services.project.update_project(project.id, data)

    async def delete_project(self, auth_token: AuthToken, slug: str) -> None:
        """Delete a project and its files (admin only)."""
        self._ensure_admin(auth_token)
        project = await self._core.services.project.get_project_by_slug(slug)
        await self._core.services.file.delete_owned(OwnerType.PROJECT, project.id)
        await self._core.services.project.delete_project(project.id)
        logger.info("project_deleted", slug=slug)

    # === Files ===
    async def upload_file(self, auth_token: AuthToken, upload: FileUpload) -> UploadedFile:
        """Upload a standalone file (admin only)."""
        self._ensure_admin(auth_token)
        return await self._store(upload, None, None)

    async def upload_algorithm_file(self, auth_token: AuthToken, slug: str, upload: FileUpload) -> UploadedFile:
        """Upload a file owned by an algorithm (admin only)."""
        self._ensure_admin(auth_token)
        algorithm = await self._resolve_algorithm(slug)
        return await self._store(upload, OwnerType.ALGORITHM, algorithm.id)

    async def upload_content_file(
        self, auth_token: AuthToken, slug: str, content_id: UUID, upload: FileUpload
    ) -> UploadedFile:
        """Upload a file owned by an algorithm's note section (admin only)."""
        self._ensure_admin(auth_token)
        content = await self.get_content(slug, content_id)
        return await self._store(upload, OwnerType.ALGORITHM_CONTENT, content.id)

    async def upload_project_file(self, auth_token: AuthToken, slug: str, upload: FileUpload) -> UploadedFile:
        """Upload a file owned by a project (admin only)."""
        self._ensure_admin(auth_token)
        project = await self._core.services.project.get_project_by_slug(slug)
        return await self._store(upload, OwnerType.PROJECT, project.id)

    async def list_algorithm_files(self, slug: str) -> list[UploadedFile]:
        algorithm = await self._resolve_algorithm(slug)
        return await self._core.services.file.list_owned(OwnerType.ALGORITHM, algorithm.id)

    async def list_content_files(self, slug: str, content_id: UUID) -> list[UploadedFile]:
        content = await self.get_content(slug, content_id)
        return await self._core.services.file.list_owned(OwnerType.ALGORITHM_CONTENT, content.id)

    async def list_project_files(self, slug: str) -> list[UploadedFile]:
        project = await self._core.services.project.get_project_by_slug(slug)
        return await self._core.services.file.list_owned(OwnerType.PROJECT, project.id)

    async def list_files(self, auth_token: AuthToken, limit: int = 50, offset: int = 0) -> PaginationResult[UploadedFile]:
        """List every stored file (admin only)."""
        self._ensure_admin(auth_token)
        return await self._core.services.file.list_files(limit, offset)

    async def get_file(self, file_id: UUID) -> UploadedFile:
        return await self._core.services.file.get_file(file_id)

    async def retrieve_file(self, file_id: UUID, range_header: str | None) -> FileStream:
        return await self._core.services.file.retrieve(file_id, range_header)

    async def delete_file(self, auth_token: AuthToken, file_id: UUID) -> None:
        """Delete a file explicitly (admin only)."""
        self._ensure_admin(auth_token)
        await self._core.services.file.delete(file_id)

    # === Metadata ===
    def get_version(self) -> dict[str, str]:
        config = self._core.config
        return {"git_commit_hash": config.git_commit_hash, "build_time": config.build_time}

    # === Private helpers ===
    def _ensure_admin(self, auth_token: AuthToken) -> Principal:
        return self._core.services.auth.verify(auth_token)

    async def _resolve_algorithm(self, slug: str) -> Algorithm:
        """Resolve algorithm slug to Algorithm object. Raises NotFoundError if not found."""
        return await self._core.services.algorithm.get_algorithm_by_slug(slug)

    async def _store(self, upload: FileUpload, owner_type: OwnerType | None, owner_id: UUID | None) -> UploadedFile:
        return await self._core.services.file.store(
            upload.chunks,
            upload.mime_type,
            upload.filename,
            owner_type=owner_type,
            owner_id=owner_id,
            declared_size=upload.size,
        )
