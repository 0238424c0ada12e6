"""Metadata endpoints for exposing system information."""

from fastapi import APIRouter

from algoshelf.core.modules.file.mime import ALLOWED_MIME_TYPES
from algoshelf.web.deps import AppDep, ConfigDep

router = APIRouter(tags=["metadata"])


@router.get(
    "/metadata/version",
    summary="Get version information",
    description="Returns build information: git commit hash and build time.",
    operation_id="getVersion",
    responses={200: {"description": "Version and build information"}},
)
async def get_version(app: AppDep) -> dict[str, str]:
    return app.get_version()


@router.get(
    "/metadata/upload-limits",
    summary="Get upload limits",
    description="Returns the maximum upload size and the accepted media types, so clients can validate before uploading.",
    operation_id="getUploadLimits",
    responses={200: {"description": "Upload size ceiling and media type allow-list"}},
)
async def get_upload_limits(config: ConfigDep) -> dict[str, int | list[str]]:
    return {"max_upload_size": config.max_upload_size, "allowed_mime_types": sorted(ALLOWED_MIME_TYPES)}
