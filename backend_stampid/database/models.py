"""
SQLAlchemy models: accounts, entries, votes.

Timestamps are Unix seconds (Integer) throughout. `Entry.fingerprint` is written
once at creation; `anchor_tx_ref` / `anchor_confirmed_at` are written only by the
stamp confirmation flow.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Largest value an Integer primary key holds (signed 64-bit in SQLite and PostgreSQL BIGINT).
MAX_ROW_ID = 2**63 - 1


def _now() -> int:
    return int(time.time())


def iso_from_unix(ts: int | None) -> str | None:
    """Unix seconds to ISO 8601 UTC string; None stays None."""
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class Account(Base):
    """
    Wallet-identified user with reputation aggregate. `tier` is always tier_of(reputation_points);
    only the reputation engine writes points, tier and the three counters.
    """

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_address = Column(String(42), unique=True, nullable=False, index=True)
    display_name = Column(String(64), nullable=True)
    bio = Column(String(500), nullable=True)
    avatar_url = Column(String(512), nullable=True)
    reputation_points = Column(Integer, nullable=False, default=0, index=True)
    tier = Column(String(16), nullable=False, default="BRONZE")
    total_submissions = Column(Integer, nullable=False, default=0)
    total_votes_received = Column(Integer, nullable=False, default=0)
    total_stamps = Column(Integer, nullable=False, default=0)
    created_at = Column(Integer, nullable=False, default=_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "walletAddress": self.wallet_address,
            "displayName": self.display_name,
            "avatarUrl": self.avatar_url,
            "bio": self.bio,
            "tier": self.tier,
            "reputationPoints": self.reputation_points,
            "totalSubmissions": self.total_submissions,
            "totalVotesReceived": self.total_votes_received,
            "totalStamps": self.total_stamps,
            "createdAt": iso_from_unix(self.created_at),
        }


class Entry(Base):
    """Submitted write-up. One row per submission."""

    __tablename__ = "entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    author_id = Column(Integer, ForeignKey("accounts.id"), nullable=True, index=True)
    author_address = Column(String(42), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    category = Column(String(128), nullable=False, index=True)
    platform = Column(String(64), nullable=False)
    media_url = Column(String(512), nullable=False, default="")
    description = Column(Text, nullable=False)
    tags = Column(String(512), nullable=False, default="")
    metadata_json = Column(Text, nullable=True)
    fingerprint = Column(String(66), nullable=True, index=True)
    anchor_tx_ref = Column(String(66), nullable=True)
    anchor_confirmed_at = Column(Integer, nullable=True)
    created_at = Column(Integer, nullable=False, default=_now, index=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "authorId": self.author_id,
            "authorAddress": self.author_address,
            "title": self.title,
            "category": self.category,
            "platform": self.platform,
            "mediaUrl": self.media_url,
            "description": self.description,
            "tags": self.tags,
            "metadataJson": self.metadata_json,
            "fingerprint": self.fingerprint,
            "anchorTxRef": self.anchor_tx_ref,
            "anchorConfirmedAt": iso_from_unix(self.anchor_confirmed_at),
            "createdAt": iso_from_unix(self.created_at),
        }


class Vote(Base):
    """One vote per (entry, voter)."""

    __tablename__ = "votes"
    __table_args__ = (UniqueConstraint("entry_id", "voter_id", name="uq_votes_entry_voter"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    entry_id = Column(Integer, ForeignKey("entries.id"), nullable=False, index=True)
    voter_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    created_at = Column(Integer, nullable=False, default=_now)
