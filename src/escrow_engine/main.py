"""FastAPI application entry point for the escrow engine.

Lifecycle:
    1. Startup: Initialize logging, build the in-memory engine or prepare the
       database for an injected one.
    2. Running: Serve the REST API.
    3. Shutdown: Close database connections gracefully.

An engine and ledger passed to create_app() are used as-is; this is how tests
and embedders wire their own. With ESCROW_STORE=database the engine must be
injected (SqlEscrowStore plus a persistent ledger); the lifespan only creates
tables and disposes of the connection pool.

Run with:
    uvicorn escrow_engine.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from escrow_engine import __version__
from escrow_engine.config import get_settings
from escrow_engine.infrastructure.clock import SystemClock
from escrow_engine.infrastructure.ledger import InMemoryLedger
from escrow_engine.infrastructure.memory_store import InMemoryEscrowStore
from escrow_engine.logging_config import get_logger, setup_logging
from escrow_engine.services.escrow_engine import EscrowEngine

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )
    logger = get_logger(__name__)
    logger.info("app.starting", env=settings.app_env, debug=settings.app_debug)

    uses_database = settings.escrow_store == "database"
    if getattr(app.state, "engine", None) is None:
        if uses_database:
            # Vault balances would be lost on restart while the records survive.
            logger.error("app.volatile_ledger_with_database_store")
            raise RuntimeError(
                "ESCROW_STORE=database needs a persistent ledger: build an EscrowEngine "
                "around SqlEscrowStore and your ledger, and pass it to create_app()"
            )
        app.state.ledger = InMemoryLedger()
        app.state.engine = EscrowEngine(
            ledger=app.state.ledger,
            store=InMemoryEscrowStore(),
            clock=SystemClock(),
            role_policy=settings.escrow_role_policy,
        )
    elif uses_database:
        from escrow_engine.infrastructure.database.engine import init_db

        await init_db()

    logger.info(
        "app.started",
        host=settings.app_host,
        port=settings.app_port,
        store=settings.escrow_store,
        role_policy=settings.escrow_role_policy.value,
    )

    yield

    logger.info("app.shutting_down")
    if uses_database:
        from escrow_engine.infrastructure.database.engine import close_db

        await close_db()
    logger.info("app.stopped")


def create_app(
    engine: EscrowEngine | None = None,
    ledger: InMemoryLedger | None = None,
) -> FastAPI:
    """Application factory — creates and configures the FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Escrow Engine",
        description="Arbitrated escrow: initialize, withdraw, refund, cancel, resolve.",
        version=__version__,
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.engine = engine
    app.state.ledger = ledger

    from escrow_engine.api.middleware import setup_middleware

    setup_middleware(app)

    from escrow_engine.api.routes.escrow import events_router
    from escrow_engine.api.routes.escrow import router as escrow_router
    from escrow_engine.api.routes.health import router as health_router
    from escrow_engine.api.routes.ledger import router as ledger_router

    app.include_router(health_router)
    app.include_router(escrow_router)
    app.include_router(events_router)
    app.include_router(ledger_router)

    return app


# The app instance used by Uvicorn
app = create_app()
