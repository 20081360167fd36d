"""In-memory asset custody ledger.

Reference implementation of the AssetLedger protocol, used by the
simulation, the development server and the test suite. Production
deployments plug in their own ledger that satisfies the same contract.

Guarantees:
    - A transfer either moves the full amount or nothing.
    - Transfers fail closed on insufficient balance, unknown source handle,
      empty handles or non-positive amounts.
    - Destination handles are opened on first credit, so vaults need no
      explicit provisioning step.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass

from escrow_engine.domain.exceptions import (
    InsufficientBalanceError,
    LedgerTransferError,
    UnknownCustodyError,
)
from escrow_engine.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class LedgerEntry:
    """One completed transfer in the ledger journal."""

    transfer_id: str
    source: str
    destination: str
    amount: int


class InMemoryLedger:
    """Balances keyed by custody handle, guarded by a single lock."""

    def __init__(self, balances: dict[str, int] | None = None) -> None:
        self._balances: dict[str, int] = {}
        self._journal: list[LedgerEntry] = []
        self._lock = asyncio.Lock()
        for handle, amount in (balances or {}).items():
            self.credit(handle, amount)

    def credit(self, handle: str, amount: int) -> int:
        """Mint units into a custody handle (seeding only). Returns the new balance."""
        if not handle:
            raise UnknownCustodyError(handle)
        if amount < 0:
            raise ValueError(f"Credit amount must be non-negative, got {amount}")
        self._balances[handle] = self._balances.get(handle, 0) + amount
        logger.debug("ledger.credited", handle=handle, amount=amount)
        return self._balances[handle]

    def balance_of(self, handle: str) -> int:
        return self._balances.get(handle, 0)

    def has_custody(self, handle: str) -> bool:
        return handle in self._balances

    @property
    def journal(self) -> list[LedgerEntry]:
        return list(self._journal)

    @property
    def total_supply(self) -> int:
        return sum(self._balances.values())

    async def transfer(self, source: str, destination: str, amount: int) -> None:
        """Atomically move ``amount`` units from ``source`` to ``destination``."""
        if not source or source not in self._balances:
            raise UnknownCustodyError(source)
        if not destination:
            raise UnknownCustodyError(destination)
        if amount <= 0:
            raise LedgerTransferError(f"Transfer amount must be positive, got {amount}")

        async with self._lock:
            available = self._balances[source]
            if available < amount:
                logger.info(
                    "ledger.transfer_rejected",
                    source=source,
                    destination=destination,
                    amount=amount,
                    available=available,
                )
                raise InsufficientBalanceError(source, required=amount, available=available)

            self._balances[source] = available - amount
            self._balances[destination] = self._balances.get(destination, 0) + amount
            entry = LedgerEntry(
                transfer_id=uuid.uuid4().hex,
                source=source,
                destination=destination,
                amount=amount,
            )
            self._journal.append(entry)

        logger.info(
            "ledger.transferred",
            transfer_id=entry.transfer_id,
            source=source,
            destination=destination,
            amount=amount,
        )
