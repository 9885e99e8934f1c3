"""
Tests for the reputation engine (points, tiers, recalculation) and leaderboards.

Uses temporary SQLite DB via conftest fixtures.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from backend_stampid.core.exceptions import NotFoundError, ValidationError
from backend_stampid.database import Account, session_scope
from backend_stampid.database import repositories as repo
from backend_stampid.entries import EntrySubmission, cast_vote, submit_entry
from backend_stampid.reputation import engine as reputation
from backend_stampid.reputation.engine import Tier, compute_points, progress_to_next_tier, tier_of, tier_range
from backend_stampid.reputation.leaderboard import (
    CategoryLeaderboardQuery,
    GlobalLeaderboardQuery,
    parse_leaderboard_query,
    run_leaderboard,
)


def wallet(n: int) -> str:
    return "0x" + f"{n:040x}"


def new_account(n: int, points: int = 0) -> int:
    with session_scope() as db:
        account = repo.get_or_create_account(db, wallet(n))
        if points:
            reputation.add_points(db, account.id, points)
        return account.id


def submit(n: int, category: str = "Halo 3", title: str = "Glitch") -> int:
    with session_scope() as db:
        entry = submit_entry(
            db,
            wallet(n),
            EntrySubmission(title=title, category=category, platform="pc", description="Steps."),
        )
        return entry.id


def account(account_id: int) -> Account:
    with session_scope() as db:
        return repo.get_account(db, account_id)


@pytest.mark.parametrize(
    "points,tier",
    [
        (0, Tier.BRONZE),
        (99, Tier.BRONZE),
        (100, Tier.SILVER),
        (499, Tier.SILVER),
        (500, Tier.GOLD),
        (1499, Tier.GOLD),
        (1500, Tier.PLATINUM),
        (4999, Tier.PLATINUM),
        (5000, Tier.DIAMOND),
        (14999, Tier.DIAMOND),
        (15000, Tier.LEGENDARY),
        (10**9, Tier.LEGENDARY),
    ],
)
def test_tier_boundaries(points, tier):
    assert tier_of(points) is tier


def test_tier_ranges_are_contiguous():
    assert tier_range(Tier.BRONZE) == (0, 99)
    assert tier_range(Tier.DIAMOND) == (5000, 14999)
    assert tier_range(Tier.LEGENDARY) == (15000, None)


def test_progress_to_next_tier():
    progress = progress_to_next_tier(300)
    assert progress.current_tier is Tier.SILVER
    assert progress.next_tier is Tier.GOLD
    assert progress.points_for_next_tier == 500
    assert progress.progress == pytest.approx(50.0)
    top = progress_to_next_tier(20000)
    assert top.next_tier is None
    assert top.progress == 100.0


def test_compute_points_includes_one_time_bonus():
    assert compute_points(0, 0, 0) == 0
    assert compute_points(1, 0, 0) == 60
    assert compute_points(3, 5, 2) == 30 + 10 + 50 + 50


def test_add_points_moves_tier(stampid_db):
    account_id = new_account(1)
    with session_scope() as db:
        update = reputation.add_points(db, account_id, 120)
    assert update.points == 120
    assert update.tier is Tier.SILVER
    assert update.previous_tier is Tier.BRONZE
    assert update.tier_changed
    stored = account(account_id)
    assert stored.reputation_points == 120
    assert stored.tier == "SILVER"


def test_points_never_negative(stampid_db):
    account_id = new_account(1, points=10)
    with session_scope() as db:
        update = reputation.add_points(db, account_id, -50)
    assert update.points == 0
    assert update.tier is Tier.BRONZE


def test_add_points_unknown_account(stampid_db):
    with session_scope() as db, pytest.raises(NotFoundError):
        reputation.add_points(db, 404, 5)


def test_submission_and_vote_events(stampid_db):
    entry_id = submit(1)
    submit(1)
    author_id = new_account(1)
    assert account(author_id).reputation_points == 60 + 10

    with session_scope() as db:
        votes = cast_vote(db, entry_id, wallet(2))
    assert votes == 1
    stored = account(author_id)
    assert stored.reputation_points == 72
    assert stored.total_submissions == 2
    assert stored.total_votes_received == 1


def test_vote_rules(stampid_db):
    entry_id = submit(1)
    with session_scope() as db, pytest.raises(ValidationError, match="own entry"):
        cast_vote(db, entry_id, wallet(1))
    with session_scope() as db:
        cast_vote(db, entry_id, wallet(2))
    with session_scope() as db, pytest.raises(ValidationError, match="Already voted"):
        cast_vote(db, entry_id, wallet(2))
    with session_scope() as db, pytest.raises(NotFoundError):
        cast_vote(db, 999, wallet(2))


def test_recalculate_fixes_drift_and_is_idempotent(stampid_db):
    entry_id = submit(1)
    with session_scope() as db:
        cast_vote(db, entry_id, wallet(2))
    author_id = new_account(1)
    with session_scope() as db:
        reputation.add_points(db, author_id, 1000)

    with session_scope() as db:
        first = reputation.recalculate(db, author_id)
    with session_scope() as db:
        second = reputation.recalculate(db, author_id)

    assert first.points == second.points == 62
    assert first.tier is second.tier is Tier.BRONZE
    assert first.tier_changed
    assert not second.tier_changed


def test_global_leaderboard_ranks_and_ties(stampid_db):
    a = new_account(1, points=200)
    b = new_account(2, points=500)
    c = new_account(3, points=200)

    with session_scope() as db:
        rows = run_leaderboard(db, GlobalLeaderboardQuery())
    assert [r["id"] for r in rows] == [b, a, c]
    assert [r["rank"] for r in rows] == [1, 2, 3]
    assert rows[0]["tier"] == "GOLD"

    with session_scope() as db:
        page = run_leaderboard(db, GlobalLeaderboardQuery(limit=1, offset=1))
    assert [(r["rank"], r["id"]) for r in page] == [(2, a)]


def test_category_leaderboard_counts_entries(stampid_db):
    submit(1, category="Halo 3")
    submit(2, category="halo 3")
    submit(2, category="Halo 3")
    submit(3, category="Skyrim")

    with session_scope() as db:
        rows = run_leaderboard(db, CategoryLeaderboardQuery(category="HALO 3"))
    assert [r["entryCount"] for r in rows] == [2, 1]
    assert rows[0]["walletAddress"] == wallet(2)


def test_leaderboard_query_parsing():
    assert parse_leaderboard_query({"kind": "global", "limit": 500}).limit == 100
    q = parse_leaderboard_query({"kind": "category", "category": "  Skyrim "})
    assert isinstance(q, CategoryLeaderboardQuery)
    assert q.category == "Skyrim"
    with pytest.raises(PydanticValidationError):
        parse_leaderboard_query({"kind": "category", "category": "   "})
    with pytest.raises(PydanticValidationError):
        parse_leaderboard_query({"kind": "global", "offset": -1})
    with pytest.raises(PydanticValidationError):
        parse_leaderboard_query({"kind": "weekly"})
