"""SQL-backed EscrowStore.

Every mutating call opens its own session and transaction, so a status
change and the event that announces it are committed together or not at
all. Reads map ORM rows back to the frozen domain records.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from escrow_engine.domain.enums import EscrowStatus, EventType
from escrow_engine.domain.exceptions import EscrowAlreadyExistsError, InvalidStateError
from escrow_engine.domain.models import Escrow, EscrowEvent
from escrow_engine.infrastructure.database.orm_models import EscrowEventRow, EscrowRow

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


def _aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back out.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _to_escrow(row: EscrowRow) -> Escrow:
    return Escrow(
        id=row.id,
        initializer=row.initializer,
        recipient=row.recipient,
        arbiter=row.arbiter,
        amount=row.amount,
        deadline=_aware(row.deadline),
        status=EscrowStatus(row.status),
        vault_reference=row.vault_reference,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _to_event(row: EscrowEventRow) -> EscrowEvent:
    return EscrowEvent(
        escrow_id=row.escrow_id,
        event_type=EventType(row.event_type),
        old_status=EscrowStatus(row.old_status) if row.old_status else None,
        new_status=EscrowStatus(row.new_status),
        actor=row.actor,
        occurred_at=_aware(row.occurred_at),
        payload=dict(row.payload or {}),
        sequence=row.sequence,
    )


def _event_row(event: EscrowEvent) -> EscrowEventRow:
    return EscrowEventRow(
        escrow_id=event.escrow_id,
        event_type=event.event_type.value,
        old_status=event.old_status.value if event.old_status else None,
        new_status=event.new_status.value,
        actor=event.actor,
        payload=event.payload,
        occurred_at=event.occurred_at,
    )


class SqlEscrowStore:
    """EscrowStore backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, escrow_id: uuid.UUID) -> Escrow | None:
        async with self._session_factory() as session:
            row = await session.get(EscrowRow, escrow_id)
            return _to_escrow(row) if row is not None else None

    async def create(self, escrow: Escrow, event: EscrowEvent) -> EscrowEvent:
        async with self._session_factory() as session:
            existing = await session.get(EscrowRow, escrow.id)
            if existing is not None:
                raise EscrowAlreadyExistsError(str(escrow.id), existing.status)

            session.add(
                EscrowRow(
                    id=escrow.id,
                    initializer=escrow.initializer,
                    recipient=escrow.recipient,
                    arbiter=escrow.arbiter,
                    amount=escrow.amount,
                    vault_reference=escrow.vault_reference,
                    deadline=escrow.deadline,
                    status=escrow.status.value,
                    created_at=escrow.created_at,
                    updated_at=escrow.updated_at,
                )
            )
            event_row = _event_row(event)
            try:
                # Escrow row first; the event row references it.
                await session.flush()
                session.add(event_row)
                await session.commit()
            except IntegrityError as err:
                await session.rollback()
                raise EscrowAlreadyExistsError(str(escrow.id), "UNKNOWN") from err
            return event.with_sequence(event_row.sequence)

    async def commit_transition(
        self,
        escrow: Escrow,
        expected_status: EscrowStatus,
        event: EscrowEvent,
    ) -> EscrowEvent:
        async with self._session_factory() as session:
            result = await session.execute(
                update(EscrowRow)
                .where(EscrowRow.id == escrow.id)
                .where(EscrowRow.status == expected_status.value)
                .values(status=escrow.status.value, updated_at=escrow.updated_at)
            )
            if result.rowcount != 1:
                await session.rollback()
                current = await session.get(EscrowRow, escrow.id)
                found = current.status if current is not None else "MISSING"
                raise InvalidStateError(found, event.event_type.value)

            event_row = _event_row(event)
            session.add(event_row)
            await session.commit()
            return event.with_sequence(event_row.sequence)

    async def events_for(self, escrow_id: uuid.UUID) -> list[EscrowEvent]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(EscrowEventRow)
                .where(EscrowEventRow.escrow_id == escrow_id)
                .order_by(EscrowEventRow.sequence.asc())
            )
            return [_to_event(row) for row in result.scalars().all()]

    async def list_events(
        self, after_sequence: int = 0, limit: int | None = None
    ) -> list[EscrowEvent]:
        async with self._session_factory() as session:
            stmt = (
                select(EscrowEventRow)
                .where(EscrowEventRow.sequence > after_sequence)
                .order_by(EscrowEventRow.sequence.asc())
            )
            if limit is not None:
                stmt = stmt.limit(limit)
            result = await session.execute(stmt)
            return [_to_event(row) for row in result.scalars().all()]
