"""Shared test fixtures for the escrow engine test suite.

Provides:
    - A manual clock pinned at a fixed instant (T)
    - An in-memory ledger seeded with the initializer's balance
    - An engine wired to the in-memory store
    - Async test support via pytest-asyncio
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from escrow_engine.domain.enums import RolePolicy
from escrow_engine.infrastructure.clock import ManualClock
from escrow_engine.infrastructure.ledger import InMemoryLedger
from escrow_engine.infrastructure.memory_store import InMemoryEscrowStore
from escrow_engine.services.escrow_engine import EscrowEngine

T0 = datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)
STARTING_BALANCE = 1_000

ALICE = "alice"  # initializer
BOB = "bob"  # recipient
CAROL = "carol"  # arbiter
MALLORY = "mallory"  # holds no role


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(T0)


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger({ALICE: STARTING_BALANCE, BOB: 0, CAROL: 0})


@pytest.fixture
def store() -> InMemoryEscrowStore:
    return InMemoryEscrowStore()


@pytest.fixture
def engine(ledger: InMemoryLedger, store: InMemoryEscrowStore, clock: ManualClock) -> EscrowEngine:
    return EscrowEngine(
        ledger=ledger,
        store=store,
        clock=clock,
        role_policy=RolePolicy.DISTINCT_PARTIES,
    )


@pytest.fixture
def deadline() -> datetime:
    """Deadline ten seconds after T0."""
    return T0 + timedelta(seconds=10)
