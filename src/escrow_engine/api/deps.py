"""FastAPI dependency injection providers.

The engine and ledger are built once per application (see main.py) and
stored on ``app.state``; these providers hand them to route handlers.
"""

from __future__ import annotations

from fastapi import Request

from escrow_engine.config import Settings, get_settings
from escrow_engine.infrastructure.ledger import InMemoryLedger
from escrow_engine.services.escrow_engine import EscrowEngine


def get_engine(request: Request) -> EscrowEngine:
    """Provide the application's EscrowEngine."""
    return request.app.state.engine


def get_ledger(request: Request) -> InMemoryLedger:
    """Provide the ledger the engine moves funds through."""
    return request.app.state.ledger


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()
