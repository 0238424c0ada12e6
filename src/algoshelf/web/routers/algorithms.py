from fastapi import APIRouter, Query

from algoshelf.core.modules.algorithm.models import Algorithm, AlgorithmCreate, AlgorithmUpdate, Difficulty
from algoshelf.core.pagination import PaginationResult
from algoshelf.web.deps import AppDep, AuthTokenDep
from algoshelf.web.openapi import ErrorResponse

router = APIRouter(tags=["algorithms"])


@router.get(
    "/algorithms",
    summary="List algorithms",
    description="Get published algorithms, newest first. Optionally filter by category, tag or difficulty.",
    operation_id="listAlgorithms",
    responses={200: {"description": "Paginated list of algorithms"}},
)
async def list_algorithms(
    app: AppDep,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    category: str | None = None,
    tag: str | None = None,
    difficulty: Difficulty | None = None,
) -> PaginationResult[Algorithm]:
    return await app.list_algorithms(limit, offset, category, tag, difficulty)


@router.get(
    "/algorithms/{slug}",
    summary="Get algorithm",
    operation_id="getAlgorithm",
    responses={
        200: {"description": "Algorithm details"},
        404: {"model": ErrorResponse, "description": "Algorithm not found"},
    },
)
async def get_algorithm(slug: str, app: AppDep) -> Algorithm:
    return await app.get_algorithm(slug)


@router.post(
    "/algorithms",
    summary="Create algorithm",
    operation_id="createAlgorithm",
    status_code=201,
    responses={
        201: {"description": "Algorithm created"},
        400: {"model": ErrorResponse, "description": "Slug already exists"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def create_algorithm(req: AlgorithmCreate, app: AppDep, auth_token: AuthTokenDep) -> Algorithm:
    return await app.create_algorithm(auth_token, req)


@router.patch(
    "/algorithms/{slug}",
    summary="Update algorithm",
    description="Partially update an algorithm. Omitted fields are left unchanged; the slug may be changed.",
    operation_id="updateAlgorithm",
    responses={
        200: {"description": "Algorithm updated"},
        400: {"model": ErrorResponse, "description": "New slug already exists"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Algorithm not found"},
    },
)
async def update_algorithm(slug: str, req: AlgorithmUpdate, app: AppDep, auth_token: AuthTokenDep) -> Algorithm:
    return await app.update_algorithm(auth_token, slug, req)


@router.delete(
    "/algorithms/{slug}",
    summary="Delete algorithm",
    description="Delete an algorithm together with its content sections and every file they own.",
    operation_id="deleteAlgorithm",
    status_code=204,
    responses={
        204: {"description": "Algorithm deleted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Algorithm not found"},
    },
)
async def delete_algorithm(slug: str, app: AppDep, auth_token: AuthTokenDep) -> None:
    await app.delete_algorithm(auth_token, slug)
