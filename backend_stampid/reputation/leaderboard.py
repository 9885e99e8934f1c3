"""
Ranked leaderboards.

Query criteria are a tagged union validated at the API boundary: `global` ranks
by reputation points, `category` ranks by number of entries in one category.
Rank is offset + position (1-based). Equal scores are ordered by ascending
account id so pages are stable.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator
from sqlalchemy.orm import Session

from backend_stampid.database import repositories as repo
from backend_stampid.stampid_logging import get_logger

logger = get_logger(__name__)

MAX_LIMIT = 100
DEFAULT_LIMIT = 50


class _Page(BaseModel):
    limit: int = Field(DEFAULT_LIMIT, ge=1)
    offset: int = Field(0, ge=0)

    @field_validator("limit")
    @classmethod
    def _cap_limit(cls, v: int) -> int:
        return min(v, MAX_LIMIT)


class GlobalLeaderboardQuery(_Page):
    kind: Literal["global"] = "global"


class CategoryLeaderboardQuery(_Page):
    kind: Literal["category"] = "category"
    category: str = Field(..., min_length=1, max_length=128)

    @field_validator("category")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("category must be non-empty")
        return v


LeaderboardQuery = Annotated[
    Union[GlobalLeaderboardQuery, CategoryLeaderboardQuery],
    Field(discriminator="kind"),
]

_query_adapter: TypeAdapter = TypeAdapter(LeaderboardQuery)


def parse_leaderboard_query(raw: dict[str, Any]) -> GlobalLeaderboardQuery | CategoryLeaderboardQuery:
    """Validate raw criteria; raises pydantic.ValidationError on bad input."""
    return _query_adapter.validate_python(raw)


def leaderboard(db: Session, limit: int = DEFAULT_LIMIT, offset: int = 0) -> list[dict[str, Any]]:
    accounts = repo.list_accounts_by_points(db, limit=limit, offset=offset)
    return [
        {
            "rank": offset + i + 1,
            "id": a.id,
            "displayName": a.display_name,
            "walletAddress": a.wallet_address,
            "avatarUrl": a.avatar_url,
            "tier": a.tier,
            "reputationPoints": a.reputation_points,
            "totalSubmissions": a.total_submissions,
        }
        for i, a in enumerate(accounts)
    ]


def leaderboard_for_category(
    db: Session,
    category: str,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> list[dict[str, Any]]:
    rows = repo.list_accounts_by_category_submissions(db, category, limit=limit, offset=offset)
    return [
        {
            "rank": offset + i + 1,
            "id": a.id,
            "displayName": a.display_name,
            "walletAddress": a.wallet_address,
            "tier": a.tier,
            "entryCount": count,
        }
        for i, (a, count) in enumerate(rows)
    ]


def run_leaderboard(db: Session, query: GlobalLeaderboardQuery | CategoryLeaderboardQuery) -> list[dict[str, Any]]:
    if isinstance(query, CategoryLeaderboardQuery):
        entries = leaderboard_for_category(db, query.category, query.limit, query.offset)
    else:
        entries = leaderboard(db, query.limit, query.offset)
    logger.debug("leaderboard_served", kind=query.kind, limit=query.limit, offset=query.offset, count=len(entries))
    return entries
