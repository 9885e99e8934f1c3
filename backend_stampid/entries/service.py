"""
Entry submission and voting.

submit_entry fingerprints the content server-side from the same six fields
the client hashes, so a client-supplied fingerprint can be checked rather
than trusted. Both operations feed the reputation engine in the same
transaction as the row they create.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from eth_utils import is_address
from sqlalchemy.orm import Session

from backend_stampid.core.exceptions import NotFoundError, ValidationError
from backend_stampid.database import repositories as repo
from backend_stampid.database.models import Entry
from backend_stampid.reputation import engine as reputation
from backend_stampid.stamp.canonical import StampPayloadInput, compute_fingerprint, format_created_at, is_fingerprint
from backend_stampid.stampid_logging import get_logger, short_ref

logger = get_logger(__name__)


@dataclass
class EntrySubmission:
    title: str
    category: str
    platform: str
    description: str
    media_url: str = ""
    tags: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    fingerprint: str | None = None
    """Client-computed fingerprint; must equal the server's when given."""


def validate_address(address: Any) -> str:
    if not isinstance(address, str) or not address.strip():
        raise ValidationError("Wallet address is required")
    address = address.strip()
    if not is_address(address):
        raise ValidationError("Invalid wallet address")
    return address.lower()


def _require(value: str, name: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"Missing required field: {name}")
    return value


def submit_entry(
    db: Session,
    author_address: str,
    submission: EntrySubmission,
    *,
    now: int | None = None,
) -> Entry:
    author_address = validate_address(author_address)
    title = _require(submission.title, "title")
    category = _require(submission.category, "category")
    platform = _require(submission.platform, "platform")
    description = _require(submission.description, "description")
    media_url = (submission.media_url or "").strip()

    created_at = int(now if now is not None else time.time())
    payload = StampPayloadInput(
        title=title,
        category=category,
        media_url=media_url,
        description=description,
        created_at_iso=format_created_at(datetime.fromtimestamp(created_at, tz=timezone.utc)),
        author_identifier=author_address,
    )
    fp = compute_fingerprint(payload)
    if submission.fingerprint is not None:
        if not is_fingerprint(submission.fingerprint):
            raise ValidationError("Invalid fingerprint format")
        if submission.fingerprint.lower() != fp:
            logger.info("entry_fingerprint_mismatch", address=short_ref(author_address))
            raise ValidationError("Fingerprint does not match content")

    author = repo.get_or_create_account(db, author_address)
    entry = repo.create_entry(
        db,
        Entry(
            author_id=author.id,
            author_address=author_address,
            title=title,
            category=category,
            platform=platform,
            media_url=media_url,
            description=description,
            tags=(submission.tags or "").strip(),
            metadata_json=json.dumps(submission.metadata, sort_keys=True) if submission.metadata else None,
            fingerprint=fp,
            created_at=created_at,
        ),
    )
    reputation.record_submission(db, author.id)
    return entry


def cast_vote(db: Session, entry_id: int, voter_address: str) -> int:
    """Record one vote and credit the author. Returns the entry's vote count."""
    voter_address = validate_address(voter_address)
    entry = repo.get_entry(db, entry_id)
    if entry is None:
        raise NotFoundError(f"Entry {entry_id} not found")
    voter = repo.get_or_create_account(db, voter_address)
    if entry.author_id == voter.id:
        raise ValidationError("Cannot vote for your own entry")
    if repo.has_voted(db, entry_id, voter.id):
        raise ValidationError("Already voted for this entry")
    repo.add_vote(db, entry_id, voter.id)
    if entry.author_id is not None:
        reputation.record_vote_received(db, entry.author_id)
    votes = repo.count_votes_for_entry(db, entry_id)
    logger.info("entry_vote_cast", entry_id=entry_id, voter=short_ref(voter_address), votes=votes)
    return votes
