"""Domain records: the Escrow itself and the events it emits.

Both are frozen dataclasses. The engine never mutates a record in place;
a transition produces a new Escrow via ``with_status`` and the store
persists it together with the matching EscrowEvent.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime  # noqa: TC003 - dataclass field annotation

from escrow_engine.domain.enums import EscrowStatus, EventType, Role

ESCROW_NAMESPACE = uuid.UUID("6f1c2a4e-8d3b-5e7f-9a10-2b4c6d8e0f12")
VAULT_PREFIX = "vault:"


def derive_escrow_id(initializer: str, nonce: int) -> uuid.UUID:
    """Deterministic escrow identity: unique per (initializer, nonce) pair."""
    return uuid.uuid5(ESCROW_NAMESPACE, f"{initializer}:{nonce}")


def vault_reference_for(escrow_id: uuid.UUID) -> str:
    """Custody handle of the vault that holds an escrow's funds."""
    return f"{VAULT_PREFIX}{escrow_id}"


@dataclass(frozen=True)
class Escrow:
    """A single custody record between an initializer, a recipient and an arbiter.

    Attributes:
        id: Stable identity, see derive_escrow_id.
        initializer: Depositing party; custody handle of its balance.
        recipient: Beneficiary; custody handle its payout goes to.
        arbiter: Neutral party with time-unconstrained override authority.
        amount: Units held in the vault while INITIALIZED. Never changes.
        deadline: Absolute, timezone-aware. Never changes.
        status: Current lifecycle state.
        vault_reference: Custody handle of the vault.
    """

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

    def holder_of(self, role: Role) -> str:
        """Return the identity recorded for a role."""
        if role is Role.INITIALIZER:
            return self.initializer
        if role is Role.RECIPIENT:
            return self.recipient
        return self.arbiter

    def with_status(self, status: EscrowStatus, at: datetime) -> Escrow:
        return replace(self, status=status, updated_at=at)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "initializer": self.initializer,
            "recipient": self.recipient,
            "arbiter": self.arbiter,
            "amount": self.amount,
            "deadline": self.deadline.isoformat(),
            "status": self.status.value,
            "vault_reference": self.vault_reference,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class EscrowEvent:
    """Notification of one accepted transition.

    Attributes:
        escrow_id: The escrow the transition happened on.
        event_type: Which transition.
        old_status: Status before (None for ESCROW_INITIALIZED).
        new_status: Status after.
        actor: Identity of the caller that triggered it.
        payload: Parties and amount relevant to the event, and for
            ESCROW_RESOLVED the ``released_to`` role.
        occurred_at: Clock Source time of the transition.
        sequence: Global position in the event stream, assigned by the store.
    """

    escrow_id: uuid.UUID
    event_type: EventType
    old_status: EscrowStatus | None
    new_status: EscrowStatus
    actor: str
    occurred_at: datetime
    payload: dict = field(default_factory=dict)
    sequence: int | None = None

    def with_sequence(self, sequence: int) -> EscrowEvent:
        return replace(self, sequence=sequence)

    def to_dict(self) -> dict:
        return {
            "sequence": self.sequence,
            "escrow_id": str(self.escrow_id),
            "event_type": self.event_type.value,
            "old_status": self.old_status.value if self.old_status else None,
            "new_status": self.new_status.value,
            "actor": self.actor,
            "payload": dict(self.payload),
            "occurred_at": self.occurred_at.isoformat(),
        }
