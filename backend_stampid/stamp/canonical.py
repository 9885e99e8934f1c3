"""
Canonical payload and fingerprint for entry content.

The client computes the same fingerprint before submitting, so the byte layout
here is a wire contract: version line, then one `key=<json string>` line per
field in fixed order, joined by LF, hashed with Keccak-256. JSON string
encoding escapes CR/LF (and quotes, backslashes, control characters), so no
field can introduce an extra line.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from eth_utils import keccak

STAMP_VERSION = "1"

FINGERPRINT_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")

# Order is part of the contract.
FIELD_ORDER = (
    ("title", "title"),
    ("game", "category"),
    ("videoUrl", "media_url"),
    ("description", "description"),
    ("createdAt", "created_at_iso"),
    ("authorIdentifier", "author_identifier"),
)


@dataclass(frozen=True)
class StampPayloadInput:
    """The six mutable fields that identify an entry's content."""

    title: str
    category: str
    media_url: str
    description: str
    created_at_iso: str
    author_identifier: str


def format_created_at(value: datetime) -> str:
    """UTC ISO-8601 at second precision, e.g. 2024-05-01T12:30:00Z. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _quote(value: str) -> str:
    return json.dumps(value if value is not None else "", ensure_ascii=False)


def canonicalize(fields: StampPayloadInput) -> bytes:
    """Deterministic UTF-8 payload for `fields`."""
    lines = [f"version={STAMP_VERSION}"]
    for key, attr in FIELD_ORDER:
        lines.append(f"{key}={_quote(getattr(fields, attr))}")
    return "\n".join(lines).encode("utf-8")


def fingerprint(payload: bytes) -> str:
    """Keccak-256 of the canonical payload as 0x-prefixed lowercase hex."""
    return "0x" + keccak(payload).hex()


def compute_fingerprint(fields: StampPayloadInput) -> str:
    return fingerprint(canonicalize(fields))


def is_fingerprint(value: str | None) -> bool:
    return bool(value) and FINGERPRINT_RE.match(value) is not None
