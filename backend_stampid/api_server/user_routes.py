"""
FastAPI router: auth challenge nonce, sign-in callback, public profiles, signed profile updates.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, ConfigDict, Field

from backend_stampid.accounts import account_profile, update_profile
from backend_stampid.api_server.middleware import get_auth_verifier, rate_limited
from backend_stampid.auth import AuthChallengeVerifier, generate_nonce
from backend_stampid.core.exceptions import AuthenticationError, NotFoundError
from backend_stampid.database import repositories as repo
from backend_stampid.database import MAX_ROW_ID, session_scope
from backend_stampid.entries import validate_address
from backend_stampid.stampid_logging import bind_account, get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["users"])


class AuthCallbackRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    wallet_address: str = Field(..., alias="walletAddress", min_length=1, max_length=64)


class ProfileUpdateRequest(BaseModel):
    """PATCH /users/me body. Only fields present in the request are changed."""

    model_config = ConfigDict(populate_by_name=True)

    wallet_address: str = Field(..., alias="walletAddress", min_length=1, max_length=64)
    message: str | None = None
    signature: str | None = None
    display_name: str | None = Field(None, alias="displayName", max_length=64)
    bio: str | None = Field(None, max_length=500)
    avatar_url: str | None = Field(None, alias="avatarUrl", max_length=512)


@router.get("/auth/nonce")
def auth_nonce() -> dict[str, str]:
    return {"nonce": generate_nonce()}


@router.post("/auth/callback", dependencies=[Depends(rate_limited("auth"))])
def auth_callback(body: AuthCallbackRequest) -> dict[str, Any]:
    """Create the account on first sign-in; return its summary either way."""
    address = validate_address(body.wallet_address)
    log = bind_account(address)
    with session_scope() as db:
        account = repo.get_or_create_account(db, address)
        log.info("auth_callback", account_id=account.id)
        return account.to_dict()


@router.get("/users/{account_id}")
def get_user(account_id: int = Path(..., ge=1, le=MAX_ROW_ID)) -> dict[str, Any]:
    with session_scope() as db:
        account = repo.get_account(db, account_id)
        if account is None:
            raise NotFoundError(f"User {account_id} not found")
        return account_profile(account)


@router.patch("/users/me", dependencies=[Depends(rate_limited("profile_update"))])
def update_me(
    body: ProfileUpdateRequest,
    verifier: AuthChallengeVerifier = Depends(get_auth_verifier),
) -> dict[str, Any]:
    address = validate_address(body.wallet_address)
    log = bind_account(address)
    if not body.message or not body.signature:
        raise AuthenticationError("Signature required for profile updates")
    auth = verifier.verify(body.message, body.signature, address)
    if not auth.valid:
        log.info("profile_update_rejected", reason=auth.error)
        raise AuthenticationError(auth.error or "Authentication failed")

    # model_fields_set holds field names, not aliases
    changes = {
        name: getattr(body, name)
        for name in ("display_name", "bio", "avatar_url")
        if name in body.model_fields_set
    }
    with session_scope() as db:
        account = update_profile(db, address, changes)
        return account_profile(account)
