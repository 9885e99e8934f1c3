"""
Reputation engine: activity events to points, points to tier.

Point values per event and tier thresholds are fixed. Tier is never set on its
own; every write goes through _apply_points so tier == tier_of(points) holds.
add_points accumulates single events; recalculate rebuilds the total from
authoritative counts and corrects drift from concurrent increments.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from backend_stampid.core.exceptions import NotFoundError
from backend_stampid.database import repositories as repo
from backend_stampid.database.models import Account
from backend_stampid.stampid_logging import get_logger

logger = get_logger(__name__)


class Tier(str, Enum):
    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"
    DIAMOND = "DIAMOND"
    LEGENDARY = "LEGENDARY"


POINTS_SUBMISSION = 10
POINTS_VOTE_RECEIVED = 2
POINTS_STAMP_RECEIVED = 25
POINTS_FIRST_SUBMISSION_BONUS = 50

# (tier, inclusive minimum), ascending; each tier ends one below the next minimum.
TIER_THRESHOLDS: tuple[tuple[Tier, int], ...] = (
    (Tier.BRONZE, 0),
    (Tier.SILVER, 100),
    (Tier.GOLD, 500),
    (Tier.PLATINUM, 1500),
    (Tier.DIAMOND, 5000),
    (Tier.LEGENDARY, 15000),
)


def tier_of(points: int) -> Tier:
    """Highest tier whose minimum is <= points."""
    current = TIER_THRESHOLDS[0][0]
    for tier, minimum in TIER_THRESHOLDS:
        if points >= minimum:
            current = tier
        else:
            break
    return current


def tier_range(tier: Tier) -> tuple[int, int | None]:
    """(min, max) inclusive; max is None for the last tier."""
    for i, (t, minimum) in enumerate(TIER_THRESHOLDS):
        if t == tier:
            if i + 1 < len(TIER_THRESHOLDS):
                return minimum, TIER_THRESHOLDS[i + 1][1] - 1
            return minimum, None
    raise ValueError(f"unknown tier {tier!r}")


@dataclass
class TierProgress:
    current_tier: Tier
    next_tier: Tier | None
    current_points: int
    points_for_next_tier: int
    """Minimum of the next tier; the current tier's minimum when already at the top."""
    progress: float
    """Percent through the current tier, 0-100."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentTier": self.current_tier.value,
            "nextTier": self.next_tier.value if self.next_tier else None,
            "currentPoints": self.current_points,
            "pointsForNextTier": self.points_for_next_tier,
            "progress": round(self.progress, 2),
        }


def progress_to_next_tier(points: int) -> TierProgress:
    current = tier_of(points)
    order = [t for t, _ in TIER_THRESHOLDS]
    idx = order.index(current)
    current_min = TIER_THRESHOLDS[idx][1]
    if idx == len(order) - 1:
        return TierProgress(current, None, points, current_min, 100.0)
    next_tier, next_min = TIER_THRESHOLDS[idx + 1]
    progress = min(100.0, (points - current_min) / (next_min - current_min) * 100.0)
    return TierProgress(current, next_tier, points, next_min, progress)


def compute_points(submissions: int, votes_received: int, stamps_received: int) -> int:
    """Deterministic total from activity counts; the bonus applies once when submissions > 0."""
    total = (
        submissions * POINTS_SUBMISSION
        + votes_received * POINTS_VOTE_RECEIVED
        + stamps_received * POINTS_STAMP_RECEIVED
    )
    if submissions > 0:
        total += POINTS_FIRST_SUBMISSION_BONUS
    return total


@dataclass
class PointsUpdate:
    account_id: int
    points: int
    tier: Tier
    previous_tier: Tier
    tier_changed: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "accountId": self.account_id,
            "newPoints": self.points,
            "newTier": self.tier.value,
            "tierChanged": self.tier_changed,
        }


def _load(db: Session, account_id: int) -> Account:
    account = repo.get_account(db, account_id, for_update=True)
    if account is None:
        raise NotFoundError(f"Account {account_id} not found")
    return account


def _apply_points(account: Account, points: int) -> PointsUpdate:
    points = max(0, int(points))
    previous = Tier(account.tier) if account.tier in Tier.__members__ else tier_of(account.reputation_points or 0)
    new_tier = tier_of(points)
    account.reputation_points = points
    account.tier = new_tier.value
    return PointsUpdate(
        account_id=account.id,
        points=points,
        tier=new_tier,
        previous_tier=previous,
        tier_changed=previous != new_tier,
    )


def add_points(db: Session, account_id: int, delta: int) -> PointsUpdate:
    """Add `delta` to the account's total, recompute tier, persist both."""
    account = _load(db, account_id)
    update = _apply_points(account, (account.reputation_points or 0) + delta)
    db.flush()
    logger.info(
        "reputation_points_added",
        account_id=account_id,
        delta=delta,
        points=update.points,
        tier=update.tier.value,
        tier_changed=update.tier_changed,
    )
    return update


def record_submission(db: Session, account_id: int) -> PointsUpdate:
    """Submission event: counter + points, plus the one-time bonus on the first entry."""
    account = _load(db, account_id)
    first = (account.total_submissions or 0) == 0
    account.total_submissions = (account.total_submissions or 0) + 1
    delta = POINTS_SUBMISSION + (POINTS_FIRST_SUBMISSION_BONUS if first else 0)
    return add_points(db, account_id, delta)


def record_vote_received(db: Session, account_id: int) -> PointsUpdate:
    account = _load(db, account_id)
    account.total_votes_received = (account.total_votes_received or 0) + 1
    return add_points(db, account_id, POINTS_VOTE_RECEIVED)


def record_stamp_received(db: Session, account_id: int) -> PointsUpdate:
    account = _load(db, account_id)
    account.total_stamps = (account.total_stamps or 0) + 1
    return add_points(db, account_id, POINTS_STAMP_RECEIVED)


def recalculate(db: Session, account_id: int) -> PointsUpdate:
    """
    Rebuild counters and points from the stored entries and votes. Idempotent:
    unchanged underlying rows always reproduce the same total.
    """
    account = _load(db, account_id)
    submissions = repo.count_submissions(db, account_id)
    votes = repo.count_votes_received(db, account_id)
    stamps = repo.count_stamps(db, account_id)
    account.total_submissions = submissions
    account.total_votes_received = votes
    account.total_stamps = stamps
    update = _apply_points(account, compute_points(submissions, votes, stamps))
    db.flush()
    logger.info(
        "reputation_recalculated",
        account_id=account_id,
        submissions=submissions,
        votes_received=votes,
        stamps=stamps,
        points=update.points,
        tier=update.tier.value,
    )
    return update
