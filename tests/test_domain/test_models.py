"""Tests for escrow identity derivation and record helpers."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

from escrow_engine.domain.enums import EscrowStatus, EventType, Role
from escrow_engine.domain.models import (
    Escrow,
    EscrowEvent,
    derive_escrow_id,
    vault_reference_for,
)

NOW = datetime(2024, 6, 1, tzinfo=UTC)


class TestIdentity:
    def test_same_inputs_same_id(self) -> None:
        assert derive_escrow_id("alice", 7) == derive_escrow_id("alice", 7)

    def test_nonce_changes_id(self) -> None:
        assert derive_escrow_id("alice", 0) != derive_escrow_id("alice", 1)

    def test_initializer_changes_id(self) -> None:
        assert derive_escrow_id("alice", 0) != derive_escrow_id("bob", 0)

    def test_separator_prevents_ambiguity(self) -> None:
        assert derive_escrow_id("alice1", 0) != derive_escrow_id("alice", 10)

    def test_vault_reference_embeds_id(self) -> None:
        escrow_id = uuid.uuid4()
        assert vault_reference_for(escrow_id) == f"vault:{escrow_id}"


class TestEscrowRecord:
    def _escrow(self) -> Escrow:
        return Escrow(
            id=uuid.uuid4(),
            initializer="alice",
            recipient="bob",
            arbiter="carol",
            amount=100,
            deadline=NOW + timedelta(seconds=10),
            status=EscrowStatus.INITIALIZED,
            vault_reference="vault:x",
            created_at=NOW,
            updated_at=NOW,
        )

    def test_holder_of(self) -> None:
        escrow = self._escrow()
        assert escrow.holder_of(Role.INITIALIZER) == "alice"
        assert escrow.holder_of(Role.RECIPIENT) == "bob"
        assert escrow.holder_of(Role.ARBITER) == "carol"

    def test_with_status_keeps_amount_and_deadline(self) -> None:
        escrow = self._escrow()
        later = NOW + timedelta(seconds=5)
        updated = escrow.with_status(EscrowStatus.WITHDRAWN, later)
        assert updated.status is EscrowStatus.WITHDRAWN
        assert updated.updated_at == later
        assert updated.amount == escrow.amount
        assert updated.deadline == escrow.deadline
        assert escrow.status is EscrowStatus.INITIALIZED

    def test_to_dict(self) -> None:
        data = self._escrow().to_dict()
        assert data["status"] == "INITIALIZED"
        assert data["amount"] == 100


class TestEscrowEvent:
    def test_to_dict_for_creation_event(self) -> None:
        event = EscrowEvent(
            escrow_id=uuid.uuid4(),
            event_type=EventType.ESCROW_INITIALIZED,
            old_status=None,
            new_status=EscrowStatus.INITIALIZED,
            actor="alice",
            occurred_at=NOW,
            payload={"amount": 100},
        ).with_sequence(3)
        data = event.to_dict()
        assert data["sequence"] == 3
        assert data["old_status"] is None
        assert data["event_type"] == "ESCROW_INITIALIZED"
