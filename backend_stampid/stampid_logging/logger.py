"""
structlog setup shared by the API, the stamp verifier and the auth layer.

Each record is one line on stdout carrying `event_type`, `level`, `logger`
and a UTC `timestamp`, followed by whatever context the call site passed
(entry_id, address, tx_ref, status, ...). Call sites pass addresses and
transaction hashes through short_ref() first.

LOG_LEVEL picks the threshold; LOG_FORMAT=console switches to the coloured
dev renderer. This module imports nothing from backend_stampid so any
package module can import it at load time.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _event_to_event_type(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog puts the first positional arg under 'event'; stored records use 'event_type'."""
    event = event_dict.pop("event", None)
    if event is not None:
        event_dict.setdefault("event_type", event)
    if "event_type" in event_dict:
        event_dict.setdefault("message", str(event_dict["event_type"]))
    return event_dict


def _renderer(fmt: str) -> Any:
    if fmt == "console":
        return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    return structlog.processors.JSONRenderer()


def configure_structlog(level: int = LOG_LEVEL_VALUE, fmt: str = LOG_FORMAT) -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _event_to_event_type,
            _renderer(fmt),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Module logger with `logger=<name>` bound, e.g.

        log = get_logger(__name__)
        log.info("stamp_confirmed", entry_id=12, tx_ref=short_ref(tx), status="verified")
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_account(address: str) -> structlog.BoundLogger:
    """Logger that tags every record with the truncated account address."""
    return get_logger("backend_stampid").bind(address=short_ref(address))


def short_ref(value: str | None, keep: int = 10) -> str:
    """First `keep` characters of an address or tx hash, with '...' when cut."""
    value = (value or "").strip()
    if len(value) <= keep:
        return value
    return value[:keep] + "..."
