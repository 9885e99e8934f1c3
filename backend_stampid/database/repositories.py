"""
Repository functions over an open Session: the get / create / update operations
the stamp verifier, reputation engine and API routes need. Callers own the
transaction (session_scope); nothing here commits.
"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from backend_stampid.database.models import Account, Entry, Vote
from backend_stampid.stampid_logging import get_logger, short_ref

logger = get_logger(__name__)


def short_display_name(address: str) -> str:
    """0x1234...abcd style default display name."""
    return f"{address[:6]}...{address[-4:]}"


# -----------------------------------------------------------------------------
# Accounts
# -----------------------------------------------------------------------------


def get_account(session: Session, account_id: int, *, for_update: bool = False) -> Account | None:
    q = session.query(Account).filter(Account.id == account_id)
    if for_update:
        q = q.with_for_update()
    return q.first()


def get_account_by_wallet(session: Session, wallet_address: str) -> Account | None:
    wallet_address = (wallet_address or "").strip().lower()
    if not wallet_address:
        return None
    return session.query(Account).filter(Account.wallet_address == wallet_address).first()


def get_or_create_account(session: Session, wallet_address: str) -> Account:
    """Return the account for a wallet, creating it (BRONZE, 0 points) on first sight."""
    wallet_address = wallet_address.strip().lower()
    account = get_account_by_wallet(session, wallet_address)
    if account is not None:
        return account
    account = Account(
        wallet_address=wallet_address,
        display_name=short_display_name(wallet_address),
        reputation_points=0,
        tier="BRONZE",
        total_submissions=0,
        total_votes_received=0,
        total_stamps=0,
    )
    session.add(account)
    session.flush()
    logger.info("account_created", account_id=account.id, address=short_ref(wallet_address))
    return account


def list_accounts_by_points(session: Session, *, limit: int, offset: int) -> list[Account]:
    """Accounts by descending points; equal points ordered by ascending id."""
    return (
        session.query(Account)
        .order_by(Account.reputation_points.desc(), Account.id.asc())
        .limit(limit)
        .offset(offset)
        .all()
    )


def list_accounts_by_category_submissions(
    session: Session,
    category: str,
    *,
    limit: int,
    offset: int,
) -> list[tuple[Account, int]]:
    """(account, entry_count) for entries in `category` (case-insensitive), most entries first, ties by id."""
    entry_count = func.count(Entry.id).label("entry_count")
    rows = (
        session.query(Account, entry_count)
        .join(Entry, Entry.author_id == Account.id)
        .filter(func.lower(Entry.category) == category.strip().lower())
        .group_by(Account.id)
        .order_by(entry_count.desc(), Account.id.asc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return [(account, int(count)) for account, count in rows]


# -----------------------------------------------------------------------------
# Entries
# -----------------------------------------------------------------------------


def get_entry(session: Session, entry_id: int, *, for_update: bool = False) -> Entry | None:
    q = session.query(Entry).filter(Entry.id == entry_id)
    if for_update:
        q = q.with_for_update()
    return q.first()


def create_entry(session: Session, entry: Entry) -> Entry:
    session.add(entry)
    session.flush()
    logger.info("entry_created", entry_id=entry.id, fingerprint=short_ref(entry.fingerprint, 18))
    return entry


def count_submissions(session: Session, account_id: int) -> int:
    return session.query(func.count(Entry.id)).filter(Entry.author_id == account_id).scalar() or 0


def count_stamps(session: Session, account_id: int) -> int:
    """Entries of this author whose anchor has been verified."""
    return (
        session.query(func.count(Entry.id))
        .filter(Entry.author_id == account_id, Entry.anchor_confirmed_at.isnot(None))
        .scalar()
        or 0
    )


# -----------------------------------------------------------------------------
# Votes
# -----------------------------------------------------------------------------


def has_voted(session: Session, entry_id: int, voter_id: int) -> bool:
    return (
        session.query(Vote.id).filter(Vote.entry_id == entry_id, Vote.voter_id == voter_id).first()
        is not None
    )


def add_vote(session: Session, entry_id: int, voter_id: int) -> Vote:
    vote = Vote(entry_id=entry_id, voter_id=voter_id)
    session.add(vote)
    session.flush()
    return vote


def count_votes_for_entry(session: Session, entry_id: int) -> int:
    return session.query(func.count(Vote.id)).filter(Vote.entry_id == entry_id).scalar() or 0


def count_votes_received(session: Session, account_id: int) -> int:
    """Votes on all entries authored by this account."""
    return (
        session.query(func.count(Vote.id))
        .join(Entry, Entry.id == Vote.entry_id)
        .filter(Entry.author_id == account_id)
        .scalar()
        or 0
    )
