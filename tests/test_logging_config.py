"""Tests for the escrow-specific logging helpers."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

import structlog

from escrow_engine.domain.enums import EscrowStatus
from escrow_engine.logging_config import _flatten_domain_values, escrow_context


class TestEscrowContext:
    def test_binds_and_unbinds(self) -> None:
        escrow_id = uuid.uuid4()
        with escrow_context(escrow_id, "withdraw"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["escrow_id"] == str(escrow_id)
            assert bound["action"] == "withdraw"
        assert "escrow_id" not in structlog.contextvars.get_contextvars()

    def test_keeps_outer_request_id(self) -> None:
        structlog.contextvars.bind_contextvars(request_id="req-1")
        try:
            with escrow_context("abc", "cancel"):
                assert structlog.contextvars.get_contextvars()["request_id"] == "req-1"
            assert structlog.contextvars.get_contextvars() == {"request_id": "req-1"}
        finally:
            structlog.contextvars.clear_contextvars()


class TestFlattenDomainValues:
    def test_domain_values_become_strings(self) -> None:
        escrow_id = uuid.uuid4()
        moment = datetime(2024, 6, 1, 12, tzinfo=UTC)
        event_dict = {
            "event": "escrow.cancelled",
            "escrow_id": escrow_id,
            "status": EscrowStatus.CANCELLED,
            "deadline": moment,
            "amount": 100,
        }

        flattened = _flatten_domain_values(None, "info", event_dict)

        assert flattened == {
            "event": "escrow.cancelled",
            "escrow_id": str(escrow_id),
            "status": "CANCELLED",
            "deadline": "2024-06-01T12:00:00+00:00",
            "amount": 100,
        }
