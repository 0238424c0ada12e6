from uuid import UUID

from fastapi import APIRouter

from algoshelf.core.modules.content.models import AlgorithmContent, ContentCreate, ContentUpdate
from algoshelf.web.deps import AppDep, AuthTokenDep
from algoshelf.web.openapi import ErrorResponse

router = APIRouter(tags=["contents"])


@router.get(
    "/algorithms/{slug}/contents",
    summary="List algorithm contents",
    description="Get the note sections of an algorithm in display order.",
    operation_id="listContents",
    responses={
        200: {"description": "List of content sections"},
        404: {"model": ErrorResponse, "description": "Algorithm not found"},
    },
)
async def list_contents(slug: str, app: AppDep) -> list[AlgorithmContent]:
    return await app.list_contents(slug)


@router.get(
    "/algorithms/{slug}/contents/{content_id}",
    summary="Get algorithm content",
    operation_id="getContent",
    responses={
        200: {"description": "Content section"},
        404: {"model": ErrorResponse, "description": "Algorithm or content not found"},
    },
)
async def get_content(slug: str, content_id: UUID, app: AppDep) -> AlgorithmContent:
    return await app.get_content(slug, content_id)


@router.post(
    "/algorithms/{slug}/contents",
    summary="Add algorithm content",
    operation_id="createContent",
    status_code=201,
    responses={
        201: {"description": "Content section created"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Algorithm not found"},
    },
)
async def create_content(slug: str, req: ContentCreate, app: AppDep, auth_token: AuthTokenDep) -> AlgorithmContent:
    return await app.create_content(auth_token, slug, req)


@router.patch(
    "/algorithms/{slug}/contents/{content_id}",
    summary="Update algorithm content",
    operation_id="updateContent",
    responses={
        200: {"description": "Content section updated"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Algorithm or content not found"},
    },
)
async def update_content(
    slug: str, content_id: UUID, req: ContentUpdate, app: AppDep, auth_token: AuthTokenDep
) -> AlgorithmContent:
    return await app.update_content(auth_token, slug, content_id, req)


@router.delete(
    "/algorithms/{slug}/contents/{content_id}",
    summary="Delete algorithm content",
    description="Delete a content section and every file it owns.",
    operation_id="deleteContent",
    status_code=204,
    responses={
        204: {"description": "Content section deleted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Algorithm or content not found"},
    },
)
async def delete_content(slug: str, content_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> None:
    await app.delete_content(auth_token, slug, content_id)
