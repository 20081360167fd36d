"""Ledger inspection routes for the bundled in-memory ledger.

Routes:
    GET    /api/v1/ledger/{handle}          — Balance of a custody handle
    POST   /api/v1/ledger/{handle}/credit   — Mint units (development only)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from escrow_engine.api.deps import get_app_settings, get_ledger
from escrow_engine.config import Settings
from escrow_engine.infrastructure.ledger import InMemoryLedger
from escrow_engine.logging_config import get_logger
from escrow_engine.schemas.escrow import CreditRequest, LedgerBalanceResponse

router = APIRouter(prefix="/api/v1/ledger", tags=["Ledger"])
logger = get_logger(__name__)


@router.get("/{handle}", response_model=LedgerBalanceResponse, summary="Get balance")
async def get_balance(
    handle: str,
    ledger: InMemoryLedger = Depends(get_ledger),
) -> LedgerBalanceResponse:
    return LedgerBalanceResponse(handle=handle, balance=ledger.balance_of(handle))


@router.post(
    "/{handle}/credit",
    response_model=LedgerBalanceResponse,
    summary="Credit a custody handle (development only)",
)
async def credit(
    handle: str,
    request: CreditRequest,
    ledger: InMemoryLedger = Depends(get_ledger),
    settings: Settings = Depends(get_app_settings),
) -> LedgerBalanceResponse:
    if not settings.ledger_dev_funding:
        raise HTTPException(status_code=404, detail="Ledger funding is disabled")
    balance = ledger.credit(handle, request.amount)
    logger.info("ledger.dev_credit", handle=handle, amount=request.amount)
    return LedgerBalanceResponse(handle=handle, balance=balance)
