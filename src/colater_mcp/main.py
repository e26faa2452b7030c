"""Colater FastAPI application entry point."""

from __future__ import annotations

import math
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from colater_mcp import __version__
from colater_mcp.config import Settings, get_settings
from colater_mcp.db import close_db, get_session_factory, init_db
from colater_mcp.dispatcher import ToolDispatcher
from colater_mcp.errors import ColaterError, ValidationFailedError
from colater_mcp.handlers import BrandToolHandlers
from colater_mcp.services.api_key import ApiKeyService
from colater_mcp.services.auth import Authenticator, IdentityVerifier, JWTIdentityVerifier
from colater_mcp.services.brands import BrandRepository
from colater_mcp.services.voice import GeminiVoiceModel, VoiceModel, VoiceValidator

logger = structlog.get_logger()


def retry_after_headers(exc: ColaterError) -> dict[str, str] | None:
    """Retry-After header for errors that carry ``retry_after`` seconds.

    Rounded up, so a sub-second wait never advertises zero.
    """
    retry_after = exc.details.get("retry_after")
    if retry_after is None:
        return None
    return {"Retry-After": str(math.ceil(retry_after))}


def create_app(
    settings: Settings | None = None,
    *,
    session_factory=None,
    voice_model: VoiceModel | None = None,
    identity_verifier: IdentityVerifier | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use; defaults to get_settings()
        session_factory: Database session factory. When omitted the
            configured database is used and its tables are created at startup.
        voice_model: Model for voice validation; defaults to Gemini when an
            API key is configured
        identity_verifier: Legacy identity-token verifier; defaults to JWT
            verification from ``auth`` settings
    """
    settings = settings or get_settings()
    owns_database = session_factory is None
    if owns_database:
        session_factory = get_session_factory()

    if voice_model is None and settings.voice.api_key:
        voice_model = GeminiVoiceModel(settings.voice)
    if identity_verifier is None and (settings.auth.jwt_secret or settings.auth.jwks_url):
        identity_verifier = JWTIdentityVerifier(settings.auth)

    # Every data-store call made while serving a request is bounded
    store_timeout = settings.upstream_timeout
    api_keys = ApiKeyService(session_factory, timeout=store_timeout)
    authenticator = Authenticator(api_keys, identity_verifier, timeout=store_timeout)
    brands = BrandRepository(session_factory, timeout=store_timeout)
    handlers = BrandToolHandlers(
        brands,
        VoiceValidator(voice_model) if voice_model is not None else None,
    )
    dispatcher = ToolDispatcher(
        handlers.as_mapping(),
        default_brand_id=settings.default_brand_id,
        timeout=settings.upstream_timeout,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        logger.info("colater.startup", version=__version__)
        if owns_database:
            await init_db()

        yield

        logger.info("colater.shutdown")
        await authenticator.wait_for_usage_updates()
        if owns_database:
            await close_db()

    app = FastAPI(
        title="Colater MCP",
        description="Brand-scoped API keys and MCP tools for Colater brands",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.api_keys = api_keys
    app.state.authenticator = authenticator
    app.state.brands = brands
    app.state.dispatcher = dispatcher

    def _error_response(request: Request, exc: ColaterError) -> JSONResponse:
        documentation_base = (
            settings.docs_base_url if getattr(request.state, "document_errors", False) else None
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(documentation_base),
            headers=retry_after_headers(exc),
        )

    # Error handlers
    @app.exception_handler(ColaterError)
    async def colater_error_handler(request: Request, exc: ColaterError):
        """Handle Colater errors with consistent format."""
        return _error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Report malformed request bodies as validation_failed."""
        error = ValidationFailedError(
            details={
                "errors": jsonable_encoder(
                    [{k: v for k, v in e.items() if k != "ctx"} for e in exc.errors()]
                )
            }
        )
        return _error_response(request, error)

    # Health check
    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    # Import and register API routers
    from colater_mcp.api.v1 import router as v1_router

    app.include_router(v1_router, prefix="/v1")

    return app
