from typing import Annotated, Any, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import StreamingResponse

from algoshelf.app import FileUpload
from algoshelf.core.modules.file.models import FileStream, UploadedFile
from algoshelf.core.modules.file.utils import content_disposition
from algoshelf.core.pagination import PaginationResult
from algoshelf.web.deps import AppDep, AuthTokenDep
from algoshelf.web.openapi import ErrorResponse

router = APIRouter(tags=["files"])

# Served files never run as active content in the site's origin
FILE_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Content-Security-Policy": "default-src 'none'; style-src 'unsafe-inline'; sandbox",
}

UPLOAD_RESPONSES: dict[int | str, dict[str, Any]] = {
    201: {"description": "File stored"},
    401: {"model": ErrorResponse, "description": "Not authenticated"},
    404: {"model": ErrorResponse, "description": "Owner not found"},
    413: {"model": ErrorResponse, "description": "File exceeds the upload size limit"},
    415: {"model": ErrorResponse, "description": "Media type not allowed"},
    507: {"model": ErrorResponse, "description": "Storage failure"},
}

UPLOAD_DESCRIPTION = (
    "Stream the raw request body as the file content. `Content-Type` is the declared media type "
    "and is checked against the payload; `filename` is the original file name."
)


async def get_file_upload(
    request: Request, filename: Annotated[str, Query(min_length=1, description="Original file name")]
) -> FileUpload:
    """Wrap the raw request body as an upload stream."""
    content_length = request.headers.get("content-length", "")
    return FileUpload(
        chunks=request.stream(),
        filename=filename,
        mime_type=request.headers.get("content-type"),
        size=int(content_length) if content_length.isdigit() else None,
    )


FileUploadDep = Annotated[FileUpload, Depends(get_file_upload)]


def file_response(stream: FileStream, disposition: Literal["inline", "attachment"]) -> StreamingResponse:
    """Build a streaming response for a full or partial file."""
    headers = {
        "Accept-Ranges": "bytes",
        "Content-Length": str(stream.content_length),
        "Content-Disposition": content_disposition(disposition, stream.file.filename),
        "ETag": stream.file.etag,
        **FILE_SECURITY_HEADERS,
    }
    if stream.byte_range is not None:
        headers["Content-Range"] = stream.byte_range.content_range

    return StreamingResponse(
        stream.chunks,
        status_code=206 if stream.is_partial else 200,
        media_type=stream.file.mime_type,
        headers=headers,
    )


@router.post(
    "/files",
    summary="Upload standalone file",
    description=UPLOAD_DESCRIPTION,
    operation_id="uploadFile",
    status_code=201,
    responses=UPLOAD_RESPONSES,
)
async def upload_file(upload: FileUploadDep, app: AppDep, auth_token: AuthTokenDep) -> UploadedFile:
    return await app.upload_file(auth_token, upload)


@router.post(
    "/algorithms/{slug}/files",
    summary="Upload algorithm file",
    description=UPLOAD_DESCRIPTION,
    operation_id="uploadAlgorithmFile",
    status_code=201,
    responses=UPLOAD_RESPONSES,
)
async def upload_algorithm_file(slug: str, upload: FileUploadDep, app: AppDep, auth_token: AuthTokenDep) -> UploadedFile:
    return await app.upload_algorithm_file(auth_token, slug, upload)


@router.post(
    "/algorithms/{slug}/contents/{content_id}/files",
    summary="Upload algorithm content file",
    description=UPLOAD_DESCRIPTION,
    operation_id="uploadContentFile",
    status_code=201,
    responses=UPLOAD_RESPONSES,
)
async def upload_content_file(
    slug: str, content_id: UUID, upload: FileUploadDep, app: AppDep, auth_token: AuthTokenDep
) -> UploadedFile:
    return await app.upload_content_file(auth_token, slug, content_id, upload)


@router.post(
    "/projects/{slug}/files",
    summary="Upload project file",
    description=UPLOAD_DESCRIPTION,
    operation_id="uploadProjectFile",
    status_code=201,
    responses=UPLOAD_RESPONSES,
)
async def upload_project_file(slug: str, upload: FileUploadDep, app: AppDep, auth_token: AuthTokenDep) -> UploadedFile:
    return await app.upload_project_file(auth_token, slug, upload)


@router.get(
    "/algorithms/{slug}/files",
    summary="List algorithm files",
    operation_id="listAlgorithmFiles",
    responses={404: {"model": ErrorResponse, "description": "Algorithm not found"}},
)
async def list_algorithm_files(slug: str, app: AppDep) -> list[UploadedFile]:
    return await app.list_algorithm_files(slug)


@router.get(
    "/algorithms/{slug}/contents/{content_id}/files",
    summary="List algorithm content files",
    operation_id="listContentFiles",
    responses={404: {"model": ErrorResponse, "description": "Algorithm or content not found"}},
)
async def list_content_files(slug: str, content_id: UUID, app: AppDep) -> list[UploadedFile]:
    return await app.list_content_files(slug, content_id)


@router.get(
    "/projects/{slug}/files",
    summary="List project files",
    operation_id="listProjectFiles",
    responses={404: {"model": ErrorResponse, "description": "Project not found"}},
)
async def list_project_files(slug: str, app: AppDep) -> list[UploadedFile]:
    return await app.list_project_files(slug)


@router.get(
    "/files",
    summary="List all files",
    operation_id="listFiles",
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
)
async def list_files(
    app: AppDep,
    auth_token: AuthTokenDep,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> PaginationResult[UploadedFile]:
    return await app.list_files(auth_token, limit, offset)


@router.get(
    "/files/{file_id}",
    summary="Get file metadata",
    operation_id="getFile",
    responses={404: {"model": ErrorResponse, "description": "File not found"}},
)
async def get_file(file_id: UUID, app: AppDep) -> UploadedFile:
    return await app.get_file(file_id)


FILE_BODY_RESPONSES: dict[int | str, dict[str, Any]] = {
    200: {"description": "Full file content"},
    206: {"description": "Requested byte range"},
    404: {"model": ErrorResponse, "description": "File not found"},
    416: {"model": ErrorResponse, "description": "Range not satisfiable"},
    507: {"model": ErrorResponse, "description": "Storage failure"},
}


@router.get(
    "/files/{file_id}/preview",
    summary="Preview file",
    description="Serve the file inline with its stored media type. Supports single `Range` requests for seeking.",
    operation_id="previewFile",
    response_class=StreamingResponse,
    responses=FILE_BODY_RESPONSES,
)
async def preview_file(
    file_id: UUID, app: AppDep, range_header: Annotated[str | None, Header(alias="Range")] = None
) -> StreamingResponse:
    stream = await app.retrieve_file(file_id, range_header)
    return file_response(stream, "inline")


@router.get(
    "/files/{file_id}/download",
    summary="Download file",
    description="Serve the file as an attachment. Supports single `Range` requests for resumable downloads.",
    operation_id="downloadFile",
    response_class=StreamingResponse,
    responses=FILE_BODY_RESPONSES,
)
async def download_file(
    file_id: UUID, app: AppDep, range_header: Annotated[str | None, Header(alias="Range")] = None
) -> StreamingResponse:
    stream = await app.retrieve_file(file_id, range_header)
    return file_response(stream, "attachment")


@router.delete(
    "/files/{file_id}",
    summary="Delete file",
    operation_id="deleteFile",
    status_code=204,
    responses={
        204: {"description": "File deleted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "File not found"},
    },
)
async def delete_file(file_id: UUID, app: AppDep, auth_token: AuthTokenDep) -> None:
    await app.delete_file(auth_token, file_id)
