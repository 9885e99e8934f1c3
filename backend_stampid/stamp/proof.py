"""
Stamp confirmation: decide from the ledger, not from the client, whether an
entry's fingerprint was anchored by the expected contract.

Flow per confirm_stamp(entry_id, tx_ref):
1. Validate inputs (no I/O before this).
2. Load the entry. No stored fingerprint: record tx_ref, unverified (legacy entries).
3. Read the receipt logs from the ledger outside any DB transaction. Transport
   failures become DEPENDENCY_UNAVAILABLE; an unknown tx becomes UNVERIFIED.
4. Keep logs from the anchoring contract (case-insensitive), decode Stamped,
   first log whose fingerprint equals the entry's wins.
5. Re-load the entry under a row lock and write tx_ref / confirmed_at in one
   transaction. A confirmation already recorded for the same tx_ref is never
   cleared by a non-verified outcome, so a stale concurrent call cannot downgrade it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ContextManager

from sqlalchemy.orm import Session

from backend_stampid.core.exceptions import LedgerUnavailableError, NotFoundError, ValidationError
from backend_stampid.database import repositories as repo
from backend_stampid.database.database import session_scope
from backend_stampid.database.models import MAX_ROW_ID, Entry
from backend_stampid.reputation import engine as reputation
from backend_stampid.stamp.ledger import LedgerLog, LedgerReader, StampedEvent, decode_stamped_event
from backend_stampid.stampid_logging import get_logger, short_ref

logger = get_logger(__name__)

TX_REF_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


class StampStatus(str, Enum):
    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    DEPENDENCY_UNAVAILABLE = "dependency_unavailable"


@dataclass
class StampConfirmation:
    entry_id: int
    tx_ref: str
    status: StampStatus
    anchored_at: int | None = None
    reason: str | None = None
    accepted: bool = True

    @property
    def verified(self) -> bool:
        return self.status is StampStatus.VERIFIED

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "accepted": self.accepted,
            "verified": self.verified,
            "status": self.status.value,
        }
        if self.reason:
            out["reason"] = self.reason
        return out


def validate_confirm_request(entry_id: Any, tx_ref: Any) -> tuple[int, str]:
    """Return (entry_id, tx_ref) or raise ValidationError. Accepts numeric strings for entry_id."""
    if isinstance(entry_id, bool):
        raise ValidationError("Invalid entryId")
    if isinstance(entry_id, str) and entry_id.strip().isdigit():
        entry_id = int(entry_id.strip())
    if not isinstance(entry_id, int) or not 0 < entry_id <= MAX_ROW_ID:
        raise ValidationError("Invalid entryId")
    if not isinstance(tx_ref, str) or not TX_REF_RE.match(tx_ref):
        raise ValidationError("Invalid txRef")
    return entry_id, tx_ref


def find_anchor(logs: list[LedgerLog], fingerprint: str, contract_address: str) -> StampedEvent | None:
    """First Stamped event from `contract_address` whose fingerprint equals `fingerprint`."""
    expected_contract = (contract_address or "").strip().lower()
    expected_fp = fingerprint.strip().lower()
    if not expected_contract:
        logger.warning("stamp_contract_not_configured")
        return None
    for log in logs:
        if (log.address or "").lower() != expected_contract:
            continue
        try:
            event = decode_stamped_event(log)
        except ValueError:
            continue
        if event.fingerprint.lower() == expected_fp:
            return event
    return None


class ProofVerifier:
    """Confirms stamps against the ledger and persists the outcome."""

    def __init__(
        self,
        ledger: LedgerReader,
        contract_address: str,
        *,
        session_factory: Callable[[], ContextManager[Session]] = session_scope,
    ) -> None:
        self._ledger = ledger
        self._contract_address = (contract_address or "").strip()
        self._session_factory = session_factory

    def check_ledger(self, tx_ref: str, fingerprint: str) -> tuple[StampStatus, StampedEvent | None]:
        try:
            logs = self._ledger.get_transaction_logs(tx_ref)
        except LedgerUnavailableError:
            return StampStatus.DEPENDENCY_UNAVAILABLE, None
        if logs is None:
            return StampStatus.UNVERIFIED, None
        event = find_anchor(logs, fingerprint, self._contract_address)
        if event is None:
            return StampStatus.UNVERIFIED, None
        return StampStatus.VERIFIED, event

    def confirm_stamp(self, entry_id: Any, tx_ref: Any) -> StampConfirmation:
        entry_id, tx_ref = validate_confirm_request(entry_id, tx_ref)

        with self._session_factory() as session:
            entry = repo.get_entry(session, entry_id)
            if entry is None:
                raise NotFoundError(f"Entry {entry_id} not found")
            fingerprint = (entry.fingerprint or "").strip()
            if not fingerprint:
                self._write_anchor(session, entry, tx_ref, None)
                logger.info("stamp_recorded_without_fingerprint", entry_id=entry_id, tx_ref=short_ref(tx_ref))
                return StampConfirmation(entry_id, tx_ref, StampStatus.UNVERIFIED, reason="fingerprint_missing")

        status, event = self.check_ledger(tx_ref, fingerprint)

        with self._session_factory() as session:
            entry = repo.get_entry(session, entry_id, for_update=True)
            if entry is None:
                raise NotFoundError(f"Entry {entry_id} not found")
            already_confirmed = entry.anchor_tx_ref == tx_ref and entry.anchor_confirmed_at is not None
            if status is StampStatus.VERIFIED:
                self._write_anchor(session, entry, tx_ref, event.timestamp)
            elif already_confirmed:
                logger.info(
                    "stamp_confirmation_kept",
                    entry_id=entry_id,
                    tx_ref=short_ref(tx_ref),
                    status=status.value,
                )
            else:
                self._write_anchor(session, entry, tx_ref, None)

        logger.info(
            "stamp_confirmed",
            entry_id=entry_id,
            tx_ref=short_ref(tx_ref),
            status=status.value,
            anchored_at=event.timestamp if event else None,
        )
        return StampConfirmation(
            entry_id,
            tx_ref,
            status,
            anchored_at=event.timestamp if event else None,
        )

    def _write_anchor(self, session: Session, entry: Entry, tx_ref: str, confirmed_at: int | None) -> None:
        was_confirmed = entry.anchor_confirmed_at is not None
        entry.anchor_tx_ref = tx_ref
        entry.anchor_confirmed_at = confirmed_at
        session.flush()
        if entry.author_id is None:
            return
        if confirmed_at is not None and not was_confirmed:
            reputation.record_stamp_received(session, entry.author_id)
        elif confirmed_at is None and was_confirmed:
            reputation.recalculate(session, entry.author_id)
