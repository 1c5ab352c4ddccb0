"""
FastAPI application factory.

Assembles the app, registers the RBAC router, maps domain exceptions
to HTTP responses and wires up lifecycle events.  Database schema is
managed by Alembic, NOT create_all.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from rbac_core.controllers.rbac_controller import router as rbac_router
from rbac_core.core.config import settings
from rbac_core.core.database import engine
from rbac_core.core.exceptions import (
    DeletionConflictError,
    DuplicateCodeError,
    InvalidUserIdentifierError,
    PermissionNotFoundError,
    RoleNotFoundError,
)
from rbac_core.models import Base  # noqa: F401  ensures all models are registered

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL.upper(),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Translate domain errors: not-found → 400, conflicts → 409."""

    @app.exception_handler(RoleNotFoundError)
    @app.exception_handler(PermissionNotFoundError)
    @app.exception_handler(InvalidUserIdentifierError)
    async def bad_request_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc)},
        )

    @app.exception_handler(DeletionConflictError)
    async def deletion_conflict_handler(request: Request, exc: DeletionConflictError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "detail": exc.message,
                "entity": exc.entity_identifier,
                "affected_entities": exc.affected_entities,
            },
        )

    @app.exception_handler(DuplicateCodeError)
    async def duplicate_code_handler(request: Request, exc: DuplicateCodeError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": exc.message},
        )

    @app.exception_handler(ValueError)
    async def validation_handler(request: Request, exc: ValueError) -> JSONResponse:
        # Model-level validation errors that slipped past the schemas.
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc)},
        )


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ── Register routers ─────────────────────────────────────────────
    app.include_router(rbac_router)
    register_exception_handlers(app)

    # ── Shutdown ─────────────────────────────────────────────────────
    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await engine.dispose()
        logger.info("Database engine disposed.")

    # ── Health check ─────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
