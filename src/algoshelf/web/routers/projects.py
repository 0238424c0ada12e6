from fastapi import APIRouter, Query

from algoshelf.core.modules.project.models import Project, ProjectCreate, ProjectUpdate
from algoshelf.core.pagination import PaginationResult
from algoshelf.web.deps import AppDep, AuthTokenDep
from algoshelf.web.openapi import ErrorResponse

router = APIRouter(tags=["projects"])


@router.get(
    "/projects",
    summary="List projects",
    description="Get showcased projects, featured first. Use `featured` to filter.",
    operation_id="listProjects",
    responses={200: {"description": "Paginated list of projects"}},
)
async def list_projects(
    app: AppDep,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    featured: bool | None = None,
) -> PaginationResult[Project]:
    return await app.list_projects(limit, offset, featured)


@router.get(
    "/projects/{slug}",
    summary="Get project",
    operation_id="getProject",
    responses={
        200: {"description": "Project details"},
        404: {"model": ErrorResponse, "description": "Project not found"},
    },
)
async def get_project(slug: str, app: AppDep) -> Project:
    return await app.get_project(slug)


@router.post(
    "/projects",
    summary="Create project",
    operation_id="createProject",
    status_code=201,
    responses={
        201: {"description": "Project created"},
        400: {"model": ErrorResponse, "description": "Slug already exists"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def create_project(req: ProjectCreate, app: AppDep, auth_token: AuthTokenDep) -> Project:
    return await app.create_project(auth_token, req)


@router.patch(
    "/projects/{slug}",
    summary="Update project",
    operation_id="updateProject",
    responses={
        200: {"description": "Project updated"},
        400: {"model": ErrorResponse, "description": "New slug already exists"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Project not found"},
    },
)
async def update_project(slug: str, req: ProjectUpdate, app: AppDep, auth_token: AuthTokenDep) -> Project:
    return await app.update_project(auth_token, slug, req)


@router.delete(
    "/projects/{slug}",
    summary="Delete project",
    description="Delete a project and every file it owns.",
    operation_id="deleteProject",
    status_code=204,
    responses={
        204: {"description": "Project deleted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Project not found"},
    },
)
async def delete_project(slug: str, app: AppDep, auth_token: AuthTokenDep) -> None:
    await app.delete_project(auth_token, slug)
