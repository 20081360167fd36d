"""Pydantic API schemas."""

from escrow_engine.schemas.escrow import (
    CallerRequest,
    CreditRequest,
    EscrowEventResponse,
    EscrowResponse,
    EscrowStatusResponse,
    HealthResponse,
    InitializeEscrowRequest,
    LedgerBalanceResponse,
    ResolveRequest,
)

__all__ = [
    "CallerRequest",
    "CreditRequest",
    "EscrowEventResponse",
    "EscrowResponse",
    "EscrowStatusResponse",
    "HealthResponse",
    "InitializeEscrowRequest",
    "LedgerBalanceResponse",
    "ResolveRequest",
]
