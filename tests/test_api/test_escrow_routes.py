"""Tests for the escrow REST API.

The app is built around an engine wired to a manual clock and the shared
in-memory fixtures, and driven through httpx's ASGI transport.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from escrow_engine.api.deps import get_app_settings
from escrow_engine.config import Settings
from escrow_engine.infrastructure.clock import ManualClock
from escrow_engine.infrastructure.ledger import InMemoryLedger
from escrow_engine.main import create_app
from escrow_engine.services.escrow_engine import EscrowEngine

T0 = datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)
DEADLINE = (T0 + timedelta(seconds=10)).isoformat()


@pytest.fixture
def app(engine: EscrowEngine, ledger: InMemoryLedger):
    return create_app(engine=engine, ledger=ledger)


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _open(client: AsyncClient, **overrides) -> dict:
    body = {
        "caller": "alice",
        "recipient": "bob",
        "arbiter": "carol",
        "amount": 100,
        "deadline": DEADLINE,
    }
    body.update(overrides)
    response = await client.post("/api/v1/escrow", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestInitializeRoute:
    @pytest.mark.asyncio
    async def test_creates_escrow(self, client: AsyncClient, ledger: InMemoryLedger) -> None:
        data = await _open(client)
        assert data["status"] == "INITIALIZED"
        assert data["amount"] == 100
        assert data["vault_reference"] == f"vault:{data['id']}"
        assert ledger.balance_of("alice") == 900

    @pytest.mark.asyncio
    async def test_timeout_form(self, client: AsyncClient) -> None:
        body = {
            "caller": "alice",
            "recipient": "bob",
            "arbiter": "carol",
            "amount": 50,
            "timeout_seconds": 60,
        }
        response = await client.post("/api/v1/escrow", json=body)
        assert response.status_code == 201
        deadline = datetime.fromisoformat(response.json()["deadline"].replace("Z", "+00:00"))
        assert deadline == T0 + timedelta(seconds=60)

    @pytest.mark.asyncio
    async def test_both_deadline_forms_rejected(self, client: AsyncClient) -> None:
        body = {
            "caller": "alice",
            "recipient": "bob",
            "arbiter": "carol",
            "amount": 50,
            "deadline": DEADLINE,
            "timeout_seconds": 60,
        }
        response = await client.post("/api/v1/escrow", json=body)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_zero_amount_is_invalid_amount(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/escrow",
            json={
                "caller": "alice",
                "recipient": "bob",
                "arbiter": "carol",
                "amount": 0,
                "deadline": DEADLINE,
            },
        )
        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_AMOUNT"

    @pytest.mark.asyncio
    async def test_past_deadline_is_invalid_deadline(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/escrow",
            json={
                "caller": "alice",
                "recipient": "bob",
                "arbiter": "carol",
                "amount": 10,
                "deadline": T0.isoformat(),
            },
        )
        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_DEADLINE"

    @pytest.mark.asyncio
    async def test_underfunded_is_402(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/escrow",
            json={
                "caller": "alice",
                "recipient": "bob",
                "arbiter": "carol",
                "amount": 10_000,
                "deadline": DEADLINE,
            },
        )
        assert response.status_code == 402
        assert response.json()["error"] == "TRANSFER_FAILURE"

    @pytest.mark.asyncio
    async def test_duplicate_nonce_conflicts(self, client: AsyncClient) -> None:
        await _open(client)
        response = await client.post(
            "/api/v1/escrow",
            json={
                "caller": "alice",
                "recipient": "bob",
                "arbiter": "carol",
                "amount": 100,
                "deadline": DEADLINE,
            },
        )
        assert response.status_code == 409


class TestTransitionRoutes:
    @pytest.mark.asyncio
    async def test_withdraw(self, client: AsyncClient, ledger: InMemoryLedger) -> None:
        escrow_id = (await _open(client))["id"]
        response = await client.post(
            f"/api/v1/escrow/{escrow_id}/withdraw", json={"caller": "bob"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "WITHDRAWN"
        assert ledger.balance_of("bob") == 100

    @pytest.mark.asyncio
    async def test_wrong_caller_is_403(self, client: AsyncClient) -> None:
        escrow_id = (await _open(client))["id"]
        response = await client.post(
            f"/api/v1/escrow/{escrow_id}/withdraw", json={"caller": "mallory"}
        )
        assert response.status_code == 403
        assert response.json()["error"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_refund_before_deadline_is_409(self, client: AsyncClient) -> None:
        escrow_id = (await _open(client))["id"]
        response = await client.post(
            f"/api/v1/escrow/{escrow_id}/refund", json={"caller": "alice"}
        )
        assert response.status_code == 409
        assert response.json()["error"] == "DEADLINE_NOT_REACHED"

    @pytest.mark.asyncio
    async def test_refund_after_deadline(
        self, client: AsyncClient, clock: ManualClock, ledger: InMemoryLedger
    ) -> None:
        escrow_id = (await _open(client))["id"]
        clock.advance(11)
        response = await client.post(
            f"/api/v1/escrow/{escrow_id}/refund", json={"caller": "alice"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "REFUNDED"
        assert ledger.balance_of("alice") == 1_000

    @pytest.mark.asyncio
    async def test_cancel_then_replay_is_invalid_state(self, client: AsyncClient) -> None:
        escrow_id = (await _open(client))["id"]
        first = await client.post(f"/api/v1/escrow/{escrow_id}/cancel", json={"caller": "alice"})
        second = await client.post(f"/api/v1/escrow/{escrow_id}/cancel", json={"caller": "alice"})
        assert first.status_code == 200
        assert second.status_code == 409
        assert second.json()["error"] == "INVALID_STATE"

    @pytest.mark.asyncio
    async def test_arbiter_resolve(self, client: AsyncClient, ledger: InMemoryLedger) -> None:
        escrow_id = (await _open(client))["id"]
        response = await client.post(
            f"/api/v1/escrow/{escrow_id}/resolve",
            json={"caller": "carol", "release": False},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "REFUNDED"
        assert ledger.balance_of("alice") == 1_000

    @pytest.mark.asyncio
    async def test_unknown_escrow_is_404(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/escrow/00000000-0000-0000-0000-000000000000/withdraw",
            json={"caller": "bob"},
        )
        assert response.status_code == 404
        assert response.json()["error"] == "ESCROW_NOT_FOUND"


class TestReadRoutes:
    @pytest.mark.asyncio
    async def test_get_escrow(self, client: AsyncClient) -> None:
        created = await _open(client)
        response = await client.get(f"/api/v1/escrow/{created['id']}")
        assert response.status_code == 200
        assert response.json()["recipient"] == "bob"

    @pytest.mark.asyncio
    async def test_status(self, client: AsyncClient) -> None:
        escrow_id = (await _open(client))["id"]
        response = await client.get(f"/api/v1/escrow/{escrow_id}/status")
        data = response.json()
        assert data["status"] == "INITIALIZED"
        assert data["deadline_passed"] is False
        assert data["allowed_actions"] == ["withdraw", "cancel", "resolve_by_arbiter"]

    @pytest.mark.asyncio
    async def test_event_history(self, client: AsyncClient) -> None:
        escrow_id = (await _open(client))["id"]
        await client.post(
            f"/api/v1/escrow/{escrow_id}/resolve", json={"caller": "carol", "release": True}
        )
        response = await client.get(f"/api/v1/escrow/{escrow_id}/events")
        events = response.json()
        assert [e["event_type"] for e in events] == ["ESCROW_INITIALIZED", "ESCROW_RESOLVED"]
        assert events[1]["payload"]["released_to"] == "recipient"

    @pytest.mark.asyncio
    async def test_global_event_stream(self, client: AsyncClient) -> None:
        await _open(client, nonce=1)
        await _open(client, nonce=2)
        response = await client.get("/api/v1/events", params={"after": 1})
        assert [e["sequence"] for e in response.json()] == [2]

    @pytest.mark.asyncio
    async def test_response_carries_request_id(self, client: AsyncClient) -> None:
        response = await client.get("/health", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"


class TestLedgerAndHealthRoutes:
    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["store"] == "healthy"

    @pytest.mark.asyncio
    async def test_balance_and_credit(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/ledger/dave/credit", json={"amount": 25})
        assert response.status_code == 200
        assert response.json() == {"handle": "dave", "balance": 25}

        response = await client.get("/api/v1/ledger/dave")
        assert response.json()["balance"] == 25

    @pytest.mark.asyncio
    async def test_credit_disabled(self, app, client: AsyncClient) -> None:
        app.dependency_overrides[get_app_settings] = lambda: Settings(ledger_dev_funding=False)
        response = await client.post("/api/v1/ledger/dave/credit", json={"amount": 25})
        assert response.status_code == 404
