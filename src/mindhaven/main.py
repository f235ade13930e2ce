# src/mindhaven/main.py
"""Main entry point for the MindHaven community service."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from mindhaven.api.v1 import (
    communities_router,
    notifications_router,
    support_router,
    system_router,
)
from mindhaven.core.errors import (
    AuthenticationRequiredError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PartialWriteError,
    StoreError,
    ValidationError,
)
from mindhaven.core.settings import settings
from mindhaven.db.session import SessionLocal
from mindhaven.services.catalog import seed_predefined_communities
from mindhaven.services.membership import MembershipManager
from mindhaven.services.support_chat import (
    SupportChatDisabledError,
    SupportChatError,
    SupportChatRateLimitedError,
    get_support_chat_client,
)
from mindhaven.store import SqlDocumentStore

# Configure logger for this module
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="MindHaven API",
    description="Peer-support communities for mental wellness",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(communities_router, prefix="/api/v1")
app.include_router(notifications_router, prefix="/api/v1")
app.include_router(support_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


def _error(status_code: int, detail: str, **extra: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, **extra})


@app.exception_handler(ValidationError)
async def validation_error_handler(_request: Request, exc: ValidationError) -> JSONResponse:
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc), errors=exc.errors)


@app.exception_handler(AuthenticationRequiredError)
async def authentication_error_handler(
    _request: Request, exc: AuthenticationRequiredError
) -> JSONResponse:
    return _error(status.HTTP_401_UNAUTHORIZED, str(exc))


@app.exception_handler(AuthorizationError)
async def authorization_error_handler(_request: Request, exc: AuthorizationError) -> JSONResponse:
    return _error(status.HTTP_403_FORBIDDEN, str(exc))


@app.exception_handler(NotFoundError)
async def not_found_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, str(exc))


@app.exception_handler(ConflictError)
async def conflict_handler(_request: Request, exc: ConflictError) -> JSONResponse:
    return _error(status.HTTP_409_CONFLICT, str(exc))


@app.exception_handler(PartialWriteError)
async def partial_write_handler(_request: Request, exc: PartialWriteError) -> JSONResponse:
    logger.error("Partial write on community %s: %s", exc.community_id, exc)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        str(exc),
        community_id=exc.community_id,
        completed_steps=exc.completed_steps,
        failed_step=exc.failed_step,
    )


@app.exception_handler(StoreError)
async def store_error_handler(_request: Request, exc: StoreError) -> JSONResponse:
    logger.error("Store failure: %s", exc)
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "Storage is temporarily unavailable")


@app.exception_handler(SupportChatError)
async def support_chat_error_handler(_request: Request, exc: SupportChatError) -> JSONResponse:
    if isinstance(exc, SupportChatRateLimitedError):
        return _error(status.HTTP_429_TOO_MANY_REQUESTS, str(exc))
    if isinstance(exc, SupportChatDisabledError):
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))
    logger.warning("Support chat failed: %s", exc)
    return _error(status.HTTP_502_BAD_GATEWAY, "Support chat is unavailable")


@app.on_event("startup")
async def on_startup() -> None:
    if not settings.seed_predefined_communities:
        return
    db = SessionLocal()
    try:
        manager = MembershipManager(SqlDocumentStore(db))
        await seed_predefined_communities(manager, settings.seed_creator_id)
    finally:
        db.close()


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await get_support_chat_client().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "MindHaven API",
        "version": settings.app_version,
        "description": "Peer-support communities for mental wellness",
        "docs": "/docs",
        "redoc": "/redoc"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("mindhaven.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
