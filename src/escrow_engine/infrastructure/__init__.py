"""Infrastructure — ledger, clocks and escrow stores."""

from escrow_engine.infrastructure.clock import ManualClock, SystemClock
from escrow_engine.infrastructure.ledger import InMemoryLedger, LedgerEntry
from escrow_engine.infrastructure.memory_store import InMemoryEscrowStore

__all__ = [
    "InMemoryEscrowStore",
    "InMemoryLedger",
    "LedgerEntry",
    "ManualClock",
    "SystemClock",
]
