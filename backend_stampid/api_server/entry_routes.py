"""
FastAPI router: POST /entries, GET /entries/{id}, POST /entries/{id}/votes.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, ConfigDict, Field

from backend_stampid.api_server.middleware import rate_limited
from backend_stampid.core.exceptions import NotFoundError
from backend_stampid.database import repositories as repo
from backend_stampid.database import MAX_ROW_ID, session_scope
from backend_stampid.entries import EntrySubmission, cast_vote, submit_entry
from backend_stampid.stampid_logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/entries", tags=["entries"])


class CreateEntryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    author_address: str = Field(..., alias="authorAddress", min_length=1, max_length=64)
    title: str = Field(..., max_length=200)
    category: str = Field(..., max_length=128)
    platform: str = Field(..., max_length=64)
    description: str = Field(..., max_length=10_000)
    media_url: str = Field("", alias="mediaUrl", max_length=1024)
    tags: str = Field("", max_length=512)
    metadata: dict[str, Any] = Field(default_factory=dict)
    fingerprint: str | None = None


class VoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    voter_address: str = Field(..., alias="voterAddress", min_length=1, max_length=64)


@router.post("", status_code=201, dependencies=[Depends(rate_limited("entry_submit"))])
def create_entry(body: CreateEntryRequest) -> dict[str, Any]:
    """Store the entry with its server-computed fingerprint and credit the author."""
    submission = EntrySubmission(
        title=body.title,
        category=body.category,
        platform=body.platform,
        description=body.description,
        media_url=body.media_url,
        tags=body.tags,
        metadata=body.metadata,
        fingerprint=body.fingerprint,
    )
    with session_scope() as db:
        entry = submit_entry(db, body.author_address, submission)
        logger.info("entry_created", entry_id=entry.id, category=entry.category)
        return entry.to_dict()


@router.get("/{entry_id}")
def get_entry(entry_id: int = Path(..., ge=1, le=MAX_ROW_ID)) -> dict[str, Any]:
    with session_scope() as db:
        entry = repo.get_entry(db, entry_id)
        if entry is None:
            raise NotFoundError(f"Entry {entry_id} not found")
        out = entry.to_dict()
        out["votes"] = repo.count_votes_for_entry(db, entry_id)
        return out


@router.post("/{entry_id}/votes", dependencies=[Depends(rate_limited("general"))])
def vote(body: VoteRequest, entry_id: int = Path(..., ge=1, le=MAX_ROW_ID)) -> dict[str, Any]:
    with session_scope() as db:
        votes = cast_vote(db, entry_id, body.voter_address)
    return {"entryId": entry_id, "votes": votes}
