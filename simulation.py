#!/usr/bin/env python3
"""Escrow Engine — End-to-End Simulation.

Walks three parties (alice the initializer, bob the recipient, carol the
arbiter) through the escrow lifecycle on a manual clock:

    Scenario 1: Withdraw before the deadline
        - alice locks 100 units until T+10s
        - at T+5s bob withdraws -> WITHDRAWN, bob holds 100

    Scenario 2: Refund after the deadline
        - alice locks 100 units until T+10s
        - at T+11s alice refunds -> REFUNDED
        - bob's late withdraw is rejected with InvalidState

    Scenario 3: Arbiter release
        - alice locks 100 units, carol releases to bob at T
        - a second resolution by anyone is rejected with InvalidState

    Scenario 4: Racing withdraw and cancel
        - bob and alice fire at the same time; exactly one wins

Usage:
    # In-memory store (default):
    uv run python simulation.py

    # SQLAlchemy store on SQLite in-memory:
    uv run python simulation.py --sqlite

    # Run a specific scenario:
    uv run python simulation.py --scenario 2
"""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

# ---------------------------------------------------------------------------
# Configure structured logging BEFORE importing app modules
# ---------------------------------------------------------------------------
from escrow_engine.logging_config import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False)
logger = get_logger("simulation")

from escrow_engine.domain.exceptions import EscrowError  # noqa: E402
from escrow_engine.infrastructure.clock import ManualClock  # noqa: E402
from escrow_engine.infrastructure.ledger import InMemoryLedger  # noqa: E402
from escrow_engine.infrastructure.memory_store import InMemoryEscrowStore  # noqa: E402
from escrow_engine.services.escrow_engine import EscrowEngine  # noqa: E402

T0 = datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)

# Module-level state
_sqlite_engine = None


async def build_store(use_sqlite: bool = False):
    """Return a fresh escrow store, SQL-backed when requested."""
    global _sqlite_engine

    if not use_sqlite:
        return InMemoryEscrowStore()

    from escrow_engine.infrastructure.database.engine import (
        create_engine_for_url,
        create_tables,
        make_session_factory,
    )
    from escrow_engine.infrastructure.database.repositories import SqlEscrowStore

    # Every scenario gets an empty database; the same (alice, nonce) pair recurs.
    await shutdown_database()
    _sqlite_engine = create_engine_for_url("sqlite+aiosqlite:///:memory:")
    await create_tables(_sqlite_engine)
    logger.info("database.sqlite_initialized")
    return SqlEscrowStore(make_session_factory(_sqlite_engine))


async def shutdown_database() -> None:
    """Close database connections."""
    global _sqlite_engine

    if _sqlite_engine is not None:
        await _sqlite_engine.dispose()
        _sqlite_engine = None


@dataclass
class World:
    """One engine, its ledger and its clock, fresh for every scenario."""

    engine: EscrowEngine
    ledger: InMemoryLedger
    clock: ManualClock


async def new_world(use_sqlite: bool) -> World:
    ledger = InMemoryLedger({"alice": 1_000, "bob": 0, "carol": 0})
    clock = ManualClock(T0)
    engine = EscrowEngine(ledger=ledger, store=await build_store(use_sqlite), clock=clock)
    return World(engine=engine, ledger=ledger, clock=clock)


# ---------------------------------------------------------------------------
# Display Helpers
# ---------------------------------------------------------------------------
def banner(text: str) -> None:
    """Print a prominent banner."""
    width = 70
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width + "\n")


def section(text: str) -> None:
    """Print a section header."""
    print(f"\n--- {text} ---\n")


def print_balances(world: World, *handles: str) -> None:
    for handle in ("alice", "bob", "carol", *handles):
        print(f"  {handle:<48} {world.ledger.balance_of(handle):>6}")


async def print_audit_trail(world: World, escrow_id) -> None:
    """Print the event history of one escrow."""
    events = await world.engine.get_events(escrow_id)
    print("\n  Audit Trail:")
    for evt in events:
        old = evt.old_status.value if evt.old_status else "(new)"
        print(
            f"    {evt.sequence}. [{evt.event_type.value}] {old} -> "
            f"{evt.new_status.value} (by {evt.actor})"
        )
    print()


async def attempt(label: str, call) -> None:
    """Run an operation that is expected to be rejected and show the error."""
    try:
        await call
    except EscrowError as exc:
        print(f"  {label}: rejected with {exc.code} ({exc.message})")
    else:
        raise RuntimeError(f"{label} was expected to fail")


# ===========================================================================
# Scenarios
# ===========================================================================
async def scenario_1_withdraw(use_sqlite: bool = False) -> None:
    banner("SCENARIO 1: Withdraw before the deadline")
    world = await new_world(use_sqlite)

    section("alice locks 100 units until T+10s")
    escrow = await world.engine.initialize(
        caller="alice",
        recipient="bob",
        arbiter="carol",
        amount=100,
        deadline=T0 + timedelta(seconds=10),
    )
    print_balances(world, escrow.vault_reference)

    section("T+5s: bob withdraws")
    world.clock.advance(5)
    escrow = await world.engine.withdraw(escrow.id, caller="bob")
    print(f"  Status: {escrow.status.value}")
    print_balances(world, escrow.vault_reference)
    await print_audit_trail(world, escrow.id)


async def scenario_2_refund(use_sqlite: bool = False) -> None:
    banner("SCENARIO 2: Refund after the deadline")
    world = await new_world(use_sqlite)

    escrow = await world.engine.initialize_with_timeout(
        caller="alice", recipient="bob", arbiter="carol", amount=100, timeout=10
    )

    section("T+11s: alice refunds")
    world.clock.advance(11)
    await attempt("bob withdraws late", world.engine.withdraw(escrow.id, caller="bob"))
    escrow = await world.engine.refund(escrow.id, caller="alice")
    print(f"  Status: {escrow.status.value}")

    section("bob tries again")
    await attempt("bob withdraws after refund", world.engine.withdraw(escrow.id, caller="bob"))
    print_balances(world, escrow.vault_reference)
    await print_audit_trail(world, escrow.id)


async def scenario_3_arbiter(use_sqlite: bool = False) -> None:
    banner("SCENARIO 3: Arbiter release")
    world = await new_world(use_sqlite)

    escrow = await world.engine.initialize(
        caller="alice",
        recipient="bob",
        arbiter="carol",
        amount=100,
        deadline=T0 + timedelta(seconds=10),
    )

    section("carol releases to bob")
    escrow = await world.engine.resolve_by_arbiter(escrow.id, caller="carol", release=True)
    print(f"  Status: {escrow.status.value}")

    section("Second resolution")
    await attempt(
        "carol refunds",
        world.engine.resolve_by_arbiter(escrow.id, caller="carol", release=False),
    )
    await attempt(
        "alice poses as arbiter",
        world.engine.resolve_by_arbiter(escrow.id, caller="alice", release=False),
    )
    print_balances(world, escrow.vault_reference)
    await print_audit_trail(world, escrow.id)


async def scenario_4_race(use_sqlite: bool = False) -> None:
    banner("SCENARIO 4: Racing withdraw and cancel")
    world = await new_world(use_sqlite)

    escrow = await world.engine.initialize(
        caller="alice",
        recipient="bob",
        arbiter="carol",
        amount=100,
        deadline=T0 + timedelta(seconds=10),
    )

    results = await asyncio.gather(
        world.engine.withdraw(escrow.id, caller="bob"),
        world.engine.cancel(escrow.id, caller="alice"),
        return_exceptions=True,
    )
    for who, result in zip(("bob/withdraw", "alice/cancel"), results, strict=True):
        if isinstance(result, EscrowError):
            print(f"  {who}: lost with {result.code}")
        elif isinstance(result, BaseException):
            raise result
        else:
            print(f"  {who}: won -> {result.status.value}")

    print_balances(world, escrow.vault_reference)
    await print_audit_trail(world, escrow.id)


SCENARIOS = {
    1: scenario_1_withdraw,
    2: scenario_2_refund,
    3: scenario_3_arbiter,
    4: scenario_4_race,
}


# ===========================================================================
# Main
# ===========================================================================
async def run_all(use_sqlite: bool = False) -> None:
    """Run all scenarios sequentially."""
    try:
        print("\n" + "#" * 70)
        print("  ESCROW ENGINE — SIMULATION")
        print(f"  Store: {'SQLite (in-memory)' if use_sqlite else 'in-memory'}")
        print("#" * 70 + "\n")

        for scenario in SCENARIOS.values():
            await scenario(use_sqlite)

        print("\n" + "=" * 70)
        print("  ALL SCENARIOS COMPLETED SUCCESSFULLY")
        print("=" * 70 + "\n")
    finally:
        await shutdown_database()


async def run_scenario(num: int, use_sqlite: bool = False) -> None:
    """Run a specific scenario."""
    try:
        if num not in SCENARIOS:
            print(f"Unknown scenario {num}. Available: {', '.join(map(str, SCENARIOS))}")
            return
        await SCENARIOS[num](use_sqlite)
    finally:
        await shutdown_database()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Escrow Engine Simulation")
    parser.add_argument(
        "--scenario",
        type=int,
        default=0,
        help="Run a specific scenario (1-4). Default: run all.",
    )
    parser.add_argument(
        "--sqlite",
        action="store_true",
        help="Use the SQLAlchemy store on SQLite in-memory.",
    )
    args = parser.parse_args()

    if args.scenario == 0:
        asyncio.run(run_all(use_sqlite=args.sqlite))
    else:
        asyncio.run(run_scenario(args.scenario, use_sqlite=args.sqlite))
