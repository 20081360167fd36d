"""Tests for the in-memory asset ledger."""

from __future__ import annotations

import pytest

from escrow_engine.domain.exceptions import (
    InsufficientBalanceError,
    LedgerTransferError,
    UnknownCustodyError,
)
from escrow_engine.infrastructure.ledger import InMemoryLedger


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger({"alice": 100})


class TestTransfer:
    @pytest.mark.asyncio
    async def test_moves_full_amount(self, ledger: InMemoryLedger) -> None:
        await ledger.transfer("alice", "vault:1", 40)
        assert ledger.balance_of("alice") == 60
        assert ledger.balance_of("vault:1") == 40
        assert ledger.total_supply == 100

    @pytest.mark.asyncio
    async def test_opens_destination_on_first_credit(self, ledger: InMemoryLedger) -> None:
        assert not ledger.has_custody("bob")
        await ledger.transfer("alice", "bob", 1)
        assert ledger.has_custody("bob")

    @pytest.mark.asyncio
    async def test_insufficient_balance_moves_nothing(self, ledger: InMemoryLedger) -> None:
        with pytest.raises(InsufficientBalanceError) as exc_info:
            await ledger.transfer("alice", "bob", 101)
        assert exc_info.value.required == 101
        assert exc_info.value.available == 100
        assert ledger.balance_of("alice") == 100
        assert ledger.journal == []

    @pytest.mark.asyncio
    async def test_unknown_source(self, ledger: InMemoryLedger) -> None:
        with pytest.raises(UnknownCustodyError):
            await ledger.transfer("nobody", "alice", 1)

    @pytest.mark.asyncio
    async def test_empty_destination(self, ledger: InMemoryLedger) -> None:
        with pytest.raises(UnknownCustodyError):
            await ledger.transfer("alice", "", 1)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -1])
    async def test_non_positive_amount(self, ledger: InMemoryLedger, amount: int) -> None:
        with pytest.raises(LedgerTransferError):
            await ledger.transfer("alice", "bob", amount)

    @pytest.mark.asyncio
    async def test_journal_records_transfers(self, ledger: InMemoryLedger) -> None:
        await ledger.transfer("alice", "bob", 10)
        await ledger.transfer("bob", "carol", 5)
        journal = ledger.journal
        assert [(e.source, e.destination, e.amount) for e in journal] == [
            ("alice", "bob", 10),
            ("bob", "carol", 5),
        ]
        assert journal[0].transfer_id != journal[1].transfer_id


class TestCredit:
    def test_credit_adds_balance(self, ledger: InMemoryLedger) -> None:
        assert ledger.credit("alice", 5) == 105

    def test_negative_credit_rejected(self, ledger: InMemoryLedger) -> None:
        with pytest.raises(ValueError):
            ledger.credit("alice", -5)

    def test_empty_handle_rejected(self, ledger: InMemoryLedger) -> None:
        with pytest.raises(UnknownCustodyError):
            ledger.credit("", 5)
