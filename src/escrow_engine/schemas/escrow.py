"""Pydantic schemas for the escrow API.

These schemas define the request/response shapes for the REST API. They are
separate from the domain dataclasses to keep the transport boundary thin.
Amount and deadline rules are deliberately left to the engine so that the
typed domain errors reach the caller unchanged.
"""

from __future__ import annotations

import uuid  # noqa: TC003 - pydantic resolves field types at runtime
from datetime import datetime  # noqa: TC003

from pydantic import BaseModel, ConfigDict, Field, model_validator

from escrow_engine.domain.enums import EscrowStatus, EventType  # noqa: TC001

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class InitializeEscrowRequest(BaseModel):
    """Request body for opening a new escrow. The caller is the initializer."""

    caller: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Identity of the initializer; its custody is debited",
        examples=["alice"],
    )
    recipient: str = Field(..., min_length=1, max_length=128, examples=["bob"])
    arbiter: str = Field(..., min_length=1, max_length=128, examples=["carol"])
    amount: int = Field(
        ...,
        description="Units to lock in the vault; must be positive",
        examples=[100],
    )
    deadline: datetime | None = Field(
        default=None,
        description="Absolute deadline (ISO 8601). Mutually exclusive with timeout_seconds",
    )
    timeout_seconds: int | None = Field(
        default=None,
        description="Deadline relative to the engine clock, in seconds",
        examples=[3600],
    )
    nonce: int = Field(
        default=0,
        ge=0,
        description="Distinguishes escrows opened by the same initializer",
    )

    @model_validator(mode="after")
    def _one_deadline_form(self) -> InitializeEscrowRequest:
        if (self.deadline is None) == (self.timeout_seconds is None):
            raise ValueError("Provide exactly one of 'deadline' or 'timeout_seconds'")
        return self


class CallerRequest(BaseModel):
    """Request body for withdraw, refund and cancel."""

    caller: str = Field(..., min_length=1, max_length=128)


class ResolveRequest(BaseModel):
    """Request body for arbiter resolution."""

    caller: str = Field(..., min_length=1, max_length=128)
    release: bool = Field(
        ...,
        description="True pays the recipient, False returns funds to the initializer",
    )


class CreditRequest(BaseModel):
    """Development-only: mint units into a custody handle."""

    amount: int = Field(..., gt=0)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class EscrowResponse(BaseModel):
    """Response schema for an escrow record."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    initializer: str
    recipient: str
    arbiter: str
    amount: int
    deadline: datetime
    status: EscrowStatus
    vault_reference: str
    created_at: datetime
    updated_at: datetime


class EscrowEventResponse(BaseModel):
    """Response schema for one event of the stream."""

    model_config = ConfigDict(from_attributes=True)

    sequence: int | None
    escrow_id: uuid.UUID
    event_type: EventType
    old_status: EscrowStatus | None
    new_status: EscrowStatus
    actor: str
    payload: dict
    occurred_at: datetime


class EscrowStatusResponse(BaseModel):
    """Lightweight status check response."""

    escrow_id: uuid.UUID
    status: EscrowStatus
    deadline: datetime
    deadline_passed: bool
    allowed_actions: list[str] = Field(
        description="Actions that would currently pass status and deadline checks"
    )


class LedgerBalanceResponse(BaseModel):
    handle: str
    balance: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    store: str = "unknown"
