"""
Account profile reads and signed profile updates.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from backend_stampid.database import repositories as repo
from backend_stampid.database.models import Account
from backend_stampid.entries.service import validate_address
from backend_stampid.reputation.engine import progress_to_next_tier
from backend_stampid.stampid_logging import get_logger, short_ref

logger = get_logger(__name__)

PROFILE_FIELDS = ("display_name", "bio", "avatar_url")


def update_profile(db: Session, wallet_address: str, changes: dict[str, Any]) -> Account:
    """Apply only the supplied profile fields. Caller has already verified the wallet signature."""
    wallet_address = validate_address(wallet_address)
    account = repo.get_or_create_account(db, wallet_address)
    applied = []
    for name in PROFILE_FIELDS:
        if name in changes:
            setattr(account, name, changes[name])
            applied.append(name)
    db.flush()
    logger.info("profile_updated", address=short_ref(wallet_address), fields=applied)
    return account


def account_profile(account: Account) -> dict[str, Any]:
    """Public profile with reputation and tier progress."""
    out = account.to_dict()
    out["tierProgress"] = progress_to_next_tier(account.reputation_points or 0).to_dict()
    return out
