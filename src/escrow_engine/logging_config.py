"""Structured logging configuration using structlog.

JSON lines in production, colored console output in development. Two
escrow-specific pieces sit on top of the usual processor chain:

    - escrow_context() binds escrow_id and action into contextvars for the
      duration of one engine operation, so ledger and store log lines emitted
      underneath carry the escrow they belong to.
    - _flatten_domain_values turns UUIDs, enum members and datetimes into
      plain strings before rendering, so records and events can be logged
      as-is in both output modes.

Usage:
    from escrow_engine.logging_config import escrow_context, get_logger, setup_logging
    setup_logging(log_level="INFO", json_logs=True)
    logger = get_logger(__name__)
    with escrow_context(escrow.id, "withdraw"):
        logger.info("escrow.withdrawn", amount=100)
"""

from __future__ import annotations

import enum
import logging
import sys
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator, MutableMapping


def _flatten_domain_values(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    for key, value in event_dict.items():
        if isinstance(value, uuid.UUID):
            event_dict[key] = str(value)
        elif isinstance(value, enum.Enum):
            event_dict[key] = value.value
        elif isinstance(value, datetime):
            event_dict[key] = value.isoformat()
    return event_dict


def setup_logging(log_level: str = "DEBUG", json_logs: bool = False) -> None:
    """Configure structlog and route stdlib logging through the same renderer.

    Args:
        log_level: Standard Python log level string (DEBUG, INFO, WARNING, etc.)
        json_logs: If True, output JSON (for production). If False, colored console.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _flatten_domain_values,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.DEBUG))

    # SQL echo and per-request access lines drown out escrow transitions
    for noisy_logger in ("uvicorn.access", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)


@contextmanager
def escrow_context(escrow_id: uuid.UUID | str, action: str) -> Iterator[None]:
    """Bind ``escrow_id`` and ``action`` to every log line inside the block."""
    with structlog.contextvars.bound_contextvars(escrow_id=str(escrow_id), action=action):
        yield


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
