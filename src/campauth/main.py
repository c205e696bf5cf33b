# CampAuth - Campground OAuth2 Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""CampAuth - Main Application Module."""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from beartype import beartype
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .api.dependencies import OAuth2HTTPException
from .api.v1 import oauth2_router
from .api.v1 import router as v1_router
from .core.auth.oauth2 import (
    AuthorizationCodeStore,
    CredentialStore,
    InMemoryAuthorizationCodeStore,
    InMemoryCredentialStore,
    PostgresCredentialStore,
    RedisAuthorizationCodeStore,
    TokenService,
    run_periodic_sweep,
)
from .core.cache import Cache
from .core.config import Settings, get_settings
from .core.database import Database
from .core.logging_utils import get_logger
from .schemas.health import HealthResponse

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle - startup and shutdown."""
    # Startup
    settings: Settings = app.state.settings
    logger.info("Starting CampAuth in %s mode", settings.api_env)

    db: Database | None = None
    cache: Cache | None = None

    credential_store: CredentialStore | None = app.state.credential_store
    if credential_store is None:
        if settings.credential_store_backend == "postgres":
            db = Database(settings)
            await db.connect()
            credential_store = PostgresCredentialStore(db)
        else:
            credential_store = InMemoryCredentialStore()

    code_store: AuthorizationCodeStore | None = app.state.code_store
    if code_store is None:
        if settings.code_store_backend == "redis":
            cache = Cache(settings=settings)
            await cache.connect()
            code_store = RedisAuthorizationCodeStore(cache)
        else:
            code_store = InMemoryAuthorizationCodeStore()

    app.state.token_service = TokenService(credential_store, code_store, settings)
    logger.info(
        "Credential store: %s, code store: %s",
        type(credential_store).__name__,
        type(code_store).__name__,
    )

    sweeper: asyncio.Task[None] | None = None
    if settings.oauth2_code_sweep_interval > 0:
        sweeper = asyncio.create_task(
            run_periodic_sweep(code_store, settings.oauth2_code_sweep_interval)
        )

    yield

    # Shutdown
    logger.info("Shutting down CampAuth")

    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper

    if db is not None:
        await db.disconnect()
    if cache is not None:
        await cache.disconnect()


async def oauth2_exception_handler(
    request: Request, exc: OAuth2HTTPException
) -> JSONResponse:
    """Render dependency failures as OAuth2 error bodies."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.error.to_dict(),
        headers=exc.headers,
    )


@beartype
def create_app(
    settings: Settings | None = None,
    credential_store: CredentialStore | None = None,
    code_store: AuthorizationCodeStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Stores passed in are used as-is; otherwise they are built at startup
    from the configured backends.

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()
    get_logger("campauth", level=settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        description="OAuth2 authorization server for campground reservation APIs",
        version=__version__,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.credential_store = credential_store
    app.state.code_store = code_store

    app.add_exception_handler(OAuth2HTTPException, oauth2_exception_handler)

    # Include API routers
    app.include_router(oauth2_router)
    app.include_router(v1_router)

    @app.get("/health")
    async def health() -> HealthResponse:
        """Liveness check."""
        return HealthResponse(version=__version__, environment=settings.api_env)

    return app


# Create the application instance
app = create_app()


@beartype
def main() -> None:
    """Run the main application entry point."""
    settings = get_settings()

    uvicorn.run(
        "campauth.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
