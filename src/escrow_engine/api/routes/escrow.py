"""Escrow REST API routes.

Routes:
    POST   /api/v1/escrow                   — Initialize a new escrow
    GET    /api/v1/escrow/{id}              — Get escrow details
    GET    /api/v1/escrow/{id}/status       — Status and currently open actions
    GET    /api/v1/escrow/{id}/events       — Event history of one escrow
    POST   /api/v1/escrow/{id}/withdraw     — Recipient withdraws
    POST   /api/v1/escrow/{id}/refund       — Initializer refunds after deadline
    POST   /api/v1/escrow/{id}/cancel       — Initializer cancels before deadline
    POST   /api/v1/escrow/{id}/resolve      — Arbiter resolves either way
    GET    /api/v1/events                   — Global ordered event stream
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query

from escrow_engine.api.deps import get_engine
from escrow_engine.schemas.escrow import (
    CallerRequest,
    EscrowEventResponse,
    EscrowResponse,
    EscrowStatusResponse,
    InitializeEscrowRequest,
    ResolveRequest,
)
from escrow_engine.services.escrow_engine import EscrowEngine

router = APIRouter(prefix="/api/v1/escrow", tags=["Escrow"])
events_router = APIRouter(prefix="/api/v1/events", tags=["Events"])


# ---------------------------------------------------------------------------
# Initialize
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=EscrowResponse,
    status_code=201,
    summary="Initialize a new escrow",
)
async def initialize_escrow(
    request: InitializeEscrowRequest,
    engine: EscrowEngine = Depends(get_engine),
) -> EscrowResponse:
    """Debit the caller and lock the amount in a fresh vault."""
    if request.timeout_seconds is not None:
        escrow = await engine.initialize_with_timeout(
            caller=request.caller,
            recipient=request.recipient,
            arbiter=request.arbiter,
            amount=request.amount,
            timeout=request.timeout_seconds,
            nonce=request.nonce,
        )
    else:
        escrow = await engine.initialize(
            caller=request.caller,
            recipient=request.recipient,
            arbiter=request.arbiter,
            amount=request.amount,
            deadline=request.deadline,
            nonce=request.nonce,
        )
    return EscrowResponse.model_validate(escrow)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


@router.post("/{escrow_id}/withdraw", response_model=EscrowResponse, summary="Withdraw")
async def withdraw(
    escrow_id: uuid.UUID,
    request: CallerRequest,
    engine: EscrowEngine = Depends(get_engine),
) -> EscrowResponse:
    """Recipient claims the funds. INITIALIZED -> WITHDRAWN, until the deadline."""
    escrow = await engine.withdraw(escrow_id, caller=request.caller)
    return EscrowResponse.model_validate(escrow)


@router.post("/{escrow_id}/refund", response_model=EscrowResponse, summary="Refund")
async def refund(
    escrow_id: uuid.UUID,
    request: CallerRequest,
    engine: EscrowEngine = Depends(get_engine),
) -> EscrowResponse:
    """Initializer reclaims the funds. INITIALIZED -> REFUNDED, after the deadline."""
    escrow = await engine.refund(escrow_id, caller=request.caller)
    return EscrowResponse.model_validate(escrow)


@router.post("/{escrow_id}/cancel", response_model=EscrowResponse, summary="Cancel")
async def cancel(
    escrow_id: uuid.UUID,
    request: CallerRequest,
    engine: EscrowEngine = Depends(get_engine),
) -> EscrowResponse:
    """Initializer calls the escrow off. INITIALIZED -> CANCELLED, until the deadline."""
    escrow = await engine.cancel(escrow_id, caller=request.caller)
    return EscrowResponse.model_validate(escrow)


@router.post(
    "/{escrow_id}/resolve",
    response_model=EscrowResponse,
    summary="Arbiter resolution",
)
async def resolve(
    escrow_id: uuid.UUID,
    request: ResolveRequest,
    engine: EscrowEngine = Depends(get_engine),
) -> EscrowResponse:
    """Arbiter releases to the recipient or returns to the initializer, at any time."""
    escrow = await engine.resolve_by_arbiter(
        escrow_id, caller=request.caller, release=request.release
    )
    return EscrowResponse.model_validate(escrow)


# ---------------------------------------------------------------------------
# Read endpoints
# ---------------------------------------------------------------------------


@router.get("/{escrow_id}", response_model=EscrowResponse, summary="Get escrow details")
async def get_escrow(
    escrow_id: uuid.UUID,
    engine: EscrowEngine = Depends(get_engine),
) -> EscrowResponse:
    escrow = await engine.get_escrow(escrow_id)
    return EscrowResponse.model_validate(escrow)


@router.get(
    "/{escrow_id}/status",
    response_model=EscrowStatusResponse,
    summary="Get lightweight status check",
)
async def get_status(
    escrow_id: uuid.UUID,
    engine: EscrowEngine = Depends(get_engine),
) -> EscrowStatusResponse:
    """Return the current status and the actions open right now."""
    status_data = await engine.get_status(escrow_id)
    return EscrowStatusResponse(**status_data)


@router.get(
    "/{escrow_id}/events",
    response_model=list[EscrowEventResponse],
    summary="Get event history",
)
async def get_events(
    escrow_id: uuid.UUID,
    engine: EscrowEngine = Depends(get_engine),
) -> list[EscrowEventResponse]:
    events = await engine.get_events(escrow_id)
    return [EscrowEventResponse.model_validate(e) for e in events]


@events_router.get(
    "",
    response_model=list[EscrowEventResponse],
    summary="Global event stream",
)
async def list_events(
    after: int = Query(default=0, ge=0, description="Return events after this sequence"),
    limit: int = Query(default=100, ge=1, le=1000),
    engine: EscrowEngine = Depends(get_engine),
) -> list[EscrowEventResponse]:
    """Poll the ordered stream of every committed transition."""
    events = await engine.list_events(after_sequence=after, limit=limit)
    return [EscrowEventResponse.model_validate(e) for e in events]
