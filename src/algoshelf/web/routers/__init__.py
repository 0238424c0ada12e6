from algoshelf.web.routers.algorithms import router as algorithms_router
from algoshelf.web.routers.auth import router as auth_router
from algoshelf.web.routers.contents import router as contents_router
from algoshelf.web.routers.files import router as files_router
from algoshelf.web.routers.metadata import router as metadata_router
from algoshelf.web.routers.projects import router as projects_router

__all__ = [
    "algorithms_router",
    "auth_router",
    "contents_router",
    "files_router",
    "metadata_router",
    "projects_router",
]
