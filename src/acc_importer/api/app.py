"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from acc_importer.api.acc import router as acc_router
from acc_importer.api.auth import router as auth_router
from acc_importer.api.error_handlers import (
    general_exception_handler,
    upstream_error_handler,
    user_error_handler,
)
from acc_importer.api.images import router as images_router
from acc_importer.api.uploads import router as uploads_router
from acc_importer.app_logging import configure_logging
from acc_importer.containers import AppContainer
from acc_importer.errors import UpstreamHttpError, UserError


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(UpstreamHttpError, upstream_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(auth_router)
    app.include_router(acc_router)
    app.include_router(uploads_router)
    app.include_router(images_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
