"""Collaborator protocols consumed by the escrow engine.

These are Protocols (structural subtyping) so concrete ledgers, clocks and
stores don't need to inherit from a base class — they just need to match
the shape.

The domain layer has ZERO imports from SQLAlchemy, FastAPI, or any external
service.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import uuid
    from datetime import datetime

    from escrow_engine.domain.enums import EscrowStatus
    from escrow_engine.domain.models import Escrow, EscrowEvent


@runtime_checkable
class AssetLedger(Protocol):
    """Asset custody ledger: the only way units move.

    Concrete implementations:
        - infrastructure/ledger.py (InMemoryLedger)
    """

    async def transfer(self, source: str, destination: str, amount: int) -> None:
        """Move ``amount`` units from one custody handle to another.

        Atomic: either the full amount moves or nothing does.

        Raises:
            LedgerTransferError: On insufficient balance or an invalid handle.
        """
        ...


@runtime_checkable
class ClockSource(Protocol):
    """Monotonic source of the current time used for deadline checks.

    Concrete implementations:
        - infrastructure/clock.py (SystemClock, ManualClock)
    """

    def now(self) -> datetime:
        """Return the current timezone-aware time."""
        ...


@runtime_checkable
class EscrowStore(Protocol):
    """Persistence for escrow records and the append-only event stream.

    Concrete implementations:
        - infrastructure/memory_store.py (InMemoryEscrowStore)
        - infrastructure/database/repositories.py (SqlEscrowStore)
    """

    async def get(self, escrow_id: uuid.UUID) -> Escrow | None:
        """Fetch an escrow by identity."""
        ...

    async def create(self, escrow: Escrow, event: EscrowEvent) -> EscrowEvent:
        """Insert a new escrow and its creation event as one unit.

        Raises:
            EscrowAlreadyExistsError: If the identity is taken.
        """
        ...

    async def commit_transition(
        self,
        escrow: Escrow,
        expected_status: EscrowStatus,
        event: EscrowEvent,
    ) -> EscrowEvent:
        """Persist a status change and its event as one unit.

        Raises:
            InvalidStateError: If the stored status is not ``expected_status``.
        """
        ...

    async def events_for(self, escrow_id: uuid.UUID) -> list[EscrowEvent]:
        """All events of one escrow in the order they happened."""
        ...

    async def list_events(
        self, after_sequence: int = 0, limit: int | None = None
    ) -> list[EscrowEvent]:
        """The global event stream, starting after a sequence number."""
        ...
