"""Database infrastructure — engine, ORM models, and the SQL escrow store."""

from escrow_engine.infrastructure.database.engine import (
    close_db,
    create_engine_for_url,
    create_tables,
    get_session_factory,
    init_db,
    make_session_factory,
)
from escrow_engine.infrastructure.database.orm_models import (
    Base,
    EscrowEventRow,
    EscrowRow,
)
from escrow_engine.infrastructure.database.repositories import SqlEscrowStore

__all__ = [
    "Base",
    "EscrowRow",
    "EscrowEventRow",
    "SqlEscrowStore",
    "close_db",
    "create_engine_for_url",
    "create_tables",
    "get_session_factory",
    "init_db",
    "make_session_factory",
]
