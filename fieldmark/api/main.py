"""Main FastAPI application for the fieldmark REST API."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fieldmark.api.models import ErrorResponse, HealthResponse
from fieldmark.api.routers import storage, templates
from fieldmark.configuration import FieldmarkConfig, resolve_config
from fieldmark.errors import (
    FormatError,
    IndexUpdateError,
    SerializationError,
    StoreError,
    ValidationError,
)
from fieldmark.observability.logging import configure_logging
from fieldmark.templates.service import create_manager


def _error(status_code: int, code: str, message: str, details: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=code, message=message, details=details).model_dump(),
    )


def create_app(config: Optional[FieldmarkConfig] = None) -> FastAPI:
    """Build the application; the record store is opened on startup."""
    resolved = config or resolve_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(resolved.observability.log_level)
        manager = await create_manager(resolved)
        app.state.manager = manager
        try:
            yield
        finally:
            await manager.close()

    app = FastAPI(
        title=resolved.api.title,
        description="Store extraction templates and match them against page URLs",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.config = resolved

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(resolved.api.allow_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ========================================================================
    # Exception Handlers
    # ========================================================================

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        return _error(exc.status_code, f"HTTP_{exc.status_code}", str(exc.detail))

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request, exc):
        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "TEMPLATE_INVALID",
            str(exc),
            {"errors": exc.errors},
        )

    @app.exception_handler(FormatError)
    async def format_error_handler(request, exc):
        return _error(status.HTTP_400_BAD_REQUEST, "IMPORT_FORMAT_INVALID", str(exc))

    @app.exception_handler(StoreError)
    async def store_error_handler(request, exc):
        details = None
        if isinstance(exc, IndexUpdateError):
            details = {"templateId": exc.template_id, "stateUnknown": True}
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "STORE_UNAVAILABLE", str(exc), details)

    @app.exception_handler(SerializationError)
    async def serialization_error_handler(request, exc):
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "SERIALIZATION_FAILED", str(exc))

    # ========================================================================
    # Health Check
    # ========================================================================

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Check API health status."""
        return HealthResponse(status="healthy", timestamp=datetime.now(timezone.utc))

    app.include_router(templates.router, prefix="/api", tags=["Templates"])
    app.include_router(storage.router, prefix="/api", tags=["Storage"])
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
