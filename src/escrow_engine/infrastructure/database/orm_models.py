"""SQLAlchemy 2.0 ORM models for the escrow engine.

Two tables:
    1. escrows        — One row per escrow identity.
    2. escrow_events  — Append-only log of every accepted transition.

Design decisions:
    - Deterministic UUIDs as primary keys (derived from initializer + nonce).
    - BigInteger for asset units (no fractional units exist).
    - JSON payload column, JSONB on PostgreSQL.
    - CHECK constraints on status and amount to reject invalid rows at DB level.
    - escrow_events uses an autoincrement integer key; its order is the
      global event stream order.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# ---------------------------------------------------------------------------
# 1. escrows
# ---------------------------------------------------------------------------
class EscrowRow(Base):
    """Persistent escrow record."""

    __tablename__ = "escrows"

    # --- Primary Key ---
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)

    # --- Participants ---
    initializer: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Depositing party identity",
    )
    recipient: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Beneficiary identity",
    )
    arbiter: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Arbiter identity",
    )

    # --- Custody ---
    amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Units held in the vault while INITIALIZED",
    )
    vault_reference: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Ledger custody handle of the vault",
    )
    deadline: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Withdraw/cancel allowed up to and including this instant",
    )

    # --- Status (Enum-guarded) ---
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="INITIALIZED",
        comment="Current lifecycle state (guarded by EscrowStateMachine)",
    )

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    # --- Relationships ---
    events: Mapped[list[EscrowEventRow]] = relationship(
        "EscrowEventRow",
        back_populates="escrow",
        order_by="EscrowEventRow.sequence.asc()",
        lazy="noload",
    )

    # --- Table Constraints & Indexes ---
    __table_args__ = (
        CheckConstraint(
            "status IN ('INITIALIZED', 'WITHDRAWN', 'REFUNDED', 'CANCELLED')",
            name="ck_escrow_valid_status",
        ),
        CheckConstraint("amount > 0", name="ck_escrow_positive_amount"),
        Index("idx_escrow_status", "status"),
        Index("idx_escrow_initializer", "initializer"),
        Index("idx_escrow_recipient", "recipient"),
    )

    def __repr__(self) -> str:
        return f"<EscrowRow id={self.id} status={self.status} amount={self.amount}>"


# ---------------------------------------------------------------------------
# 2. escrow_events (Append-Only)
# ---------------------------------------------------------------------------
class EscrowEventRow(Base):
    """Immutable record of one accepted transition.

    This table is APPEND-ONLY. No UPDATE or DELETE operations are issued
    by the application.
    """

    __tablename__ = "escrow_events"

    sequence: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    escrow_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("escrows.id", ondelete="CASCADE"),
        nullable=False,
    )

    # --- Event Details ---
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    old_status: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        comment="Escrow status before this event (null for creation)",
    )
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)
    actor: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Identity of the caller that triggered the transition",
    )
    payload: Mapped[dict] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
    )
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    escrow: Mapped[EscrowRow] = relationship("EscrowRow", back_populates="events")

    __table_args__ = (
        Index("idx_event_escrow", "escrow_id"),
        Index("idx_event_type", "event_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<EscrowEventRow seq={self.sequence} type={self.event_type} "
            f"{self.old_status}->{self.new_status}>"
        )
