from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from algoshelf.app import App
from algoshelf.config import Config
from algoshelf.errors import StorageFailureError, UserError
from algoshelf.web.error_handlers import general_exception_handler, storage_failure_handler, user_error_handler
from algoshelf.web.middleware import RequestContextMiddleware
from algoshelf.web.openapi import set_custom_openapi
from algoshelf.web.routers import (
    algorithms_router,
    auth_router,
    contents_router,
    files_router,
    metadata_router,
    projects_router,
)


def create_fastapi_app(app_instance: App, config: Config) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """FastAPI application lifespan management."""
        app.state.app = app_instance
        app.state.config = config
        async with app_instance.lifespan():
            yield

    app = FastAPI(
        title="AlgoShelf API",
        lifespan=lifespan,
    )

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["Content-Range", "Content-Disposition", "Accept-Ranges", "Retry-After", "X-Request-ID"],
        )

    app.add_middleware(RequestContextMiddleware)

    # Health check endpoint (at root level, not versioned)
    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(algorithms_router, prefix="/api/v1")
    app.include_router(contents_router, prefix="/api/v1")
    app.include_router(projects_router, prefix="/api/v1")
    app.include_router(files_router, prefix="/api/v1")
    app.include_router(metadata_router, prefix="/api/v1")

    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(StorageFailureError, storage_failure_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    set_custom_openapi(app)

    return app
