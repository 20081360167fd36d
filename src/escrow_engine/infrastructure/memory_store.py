"""In-memory escrow store.

Keeps escrow records in a dict and events in an append-only list. Each
mutating call is synchronous between awaits, so a record change and its
event always land together.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from escrow_engine.domain.exceptions import EscrowAlreadyExistsError, InvalidStateError

if TYPE_CHECKING:
    import uuid

    from escrow_engine.domain.enums import EscrowStatus
    from escrow_engine.domain.models import Escrow, EscrowEvent


class InMemoryEscrowStore:
    """Process-local EscrowStore."""

    def __init__(self) -> None:
        self._escrows: dict[uuid.UUID, Escrow] = {}
        self._events: list[EscrowEvent] = []

    async def get(self, escrow_id: uuid.UUID) -> Escrow | None:
        return self._escrows.get(escrow_id)

    async def create(self, escrow: Escrow, event: EscrowEvent) -> EscrowEvent:
        existing = self._escrows.get(escrow.id)
        if existing is not None:
            raise EscrowAlreadyExistsError(str(escrow.id), existing.status.value)
        self._escrows[escrow.id] = escrow
        return self._append(event)

    async def commit_transition(
        self,
        escrow: Escrow,
        expected_status: EscrowStatus,
        event: EscrowEvent,
    ) -> EscrowEvent:
        current = self._escrows.get(escrow.id)
        if current is None or current.status is not expected_status:
            found = current.status.value if current else "MISSING"
            raise InvalidStateError(found, event.event_type.value)
        self._escrows[escrow.id] = escrow
        return self._append(event)

    async def events_for(self, escrow_id: uuid.UUID) -> list[EscrowEvent]:
        return [e for e in self._events if e.escrow_id == escrow_id]

    async def list_events(
        self, after_sequence: int = 0, limit: int | None = None
    ) -> list[EscrowEvent]:
        events = [e for e in self._events if (e.sequence or 0) > after_sequence]
        return events if limit is None else events[:limit]

    def _append(self, event: EscrowEvent) -> EscrowEvent:
        stored = event.with_sequence(len(self._events) + 1)
        self._events.append(stored)
        return stored
