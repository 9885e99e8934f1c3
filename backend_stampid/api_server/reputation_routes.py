"""
FastAPI router: GET /leaderboard, POST /reputation/{id}/recalculate.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Path, Query
from pydantic import ValidationError as PydanticValidationError

from backend_stampid.api_server.middleware import rate_limited, require_admin
from backend_stampid.core.exceptions import ValidationError
from backend_stampid.database import MAX_ROW_ID, session_scope
from backend_stampid.reputation import engine as reputation
from backend_stampid.reputation.leaderboard import DEFAULT_LIMIT, parse_leaderboard_query, run_leaderboard
from backend_stampid.stampid_logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["reputation"])


@router.get("/leaderboard", dependencies=[Depends(rate_limited("general"))])
def get_leaderboard(
    limit: int = Query(DEFAULT_LIMIT),
    offset: int = Query(0),
    category: str | None = Query(None),
) -> dict[str, Any]:
    """Global ranking by points, or by entry count when `category` is given. limit is capped at 100."""
    raw: dict[str, Any] = {"kind": "global", "limit": limit, "offset": offset}
    if category is not None:
        raw.update(kind="category", category=category)
    try:
        query = parse_leaderboard_query(raw)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"][1:]) or "query"
        raise ValidationError(f"Invalid {field}: {first['msg']}") from e

    with session_scope() as db:
        entries = run_leaderboard(db, query)
    out: dict[str, Any] = {"entries": entries, "limit": query.limit, "offset": query.offset}
    if query.kind == "category":
        out["category"] = query.category
    return out


@router.post("/reputation/{account_id}/recalculate", dependencies=[Depends(require_admin)])
def recalculate_reputation(account_id: int = Path(..., ge=1, le=MAX_ROW_ID)) -> dict[str, Any]:
    """Rebuild an account's counters and points from stored rows."""
    with session_scope() as db:
        update = reputation.recalculate(db, account_id)
    return update.to_dict()
