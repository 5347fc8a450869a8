# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""DID Connect - application factory and entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from beartype import beartype
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import __version__
from .api import router
from .core.auth import AuthorizationServer, ClientRegistry
from .core.config import Settings, get_settings
from .core.errors import invalid_request
from .core.ledger import IdentityLedgerGateway
from .core.logging_utils import configure_logging, get_logger
from .storage import (
    Clock,
    CredentialStore,
    CredentialSweeper,
    build_credential_store,
    utc_now,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Connect the credential store and run the sweeper for the app's lifetime."""
    settings: Settings = app.state.settings
    store: CredentialStore = app.state.authorization_server.store
    logger.info(
        "Starting %s in %s mode (%s credential store)",
        settings.app_name,
        settings.api_env,
        store.backend_name,
    )

    await store.connect()

    sweeper: CredentialSweeper | None = None
    if settings.sweep_interval_seconds > 0:
        sweeper = CredentialSweeper(store, settings.sweep_interval_seconds)
        sweeper.start()

    yield

    logger.info("Shutting down %s", settings.app_name)
    if sweeper is not None:
        await sweeper.stop()
    await store.disconnect()


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=invalid_request("Malformed request body").to_dict(),
    )


@beartype
def create_app(
    settings: Settings | None = None,
    *,
    store: CredentialStore | None = None,
    ledger: IdentityLedgerGateway | None = None,
    clock: Clock = utc_now,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``store`` and ``ledger`` default to the backends named in ``settings``;
    tests inject in-memory or fake implementations and a controllable
    ``clock`` instead.
    """
    settings = settings or get_settings()
    configure_logging(level=settings.log_level)

    registry = ClientRegistry.from_settings(settings)
    server = AuthorizationServer.from_settings(
        settings,
        registry,
        ledger or IdentityLedgerGateway.from_settings(settings),
        store or build_credential_store(settings, clock),
        clock=clock,
    )

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Delegated authorization for wallet-owned decentralized identifiers"
        ),
        version=__version__,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.authorization_server = server

    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(router)

    return app


@beartype
def main() -> None:
    """Run the main application entry point."""
    settings = get_settings()

    uvicorn.run(
        "did_connect.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level="info" if not settings.is_production else "error",
    )


if __name__ == "__main__":
    main()
