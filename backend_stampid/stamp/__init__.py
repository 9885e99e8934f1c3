"""
Stamp package — content fingerprints and on-chain anchor verification.
"""

from backend_stampid.stamp.canonical import (
    STAMP_VERSION,
    StampPayloadInput,
    canonicalize,
    compute_fingerprint,
    fingerprint,
    format_created_at,
    is_fingerprint,
)
from backend_stampid.stamp.ledger import (
    STAMPED_TOPIC,
    LedgerLog,
    LedgerReader,
    StampedEvent,
    Web3LedgerReader,
    decode_stamped_event,
)
from backend_stampid.stamp.proof import (
    ProofVerifier,
    StampConfirmation,
    StampStatus,
    find_anchor,
    validate_confirm_request,
)

__all__ = [
    "STAMP_VERSION",
    "STAMPED_TOPIC",
    "LedgerLog",
    "LedgerReader",
    "ProofVerifier",
    "StampConfirmation",
    "StampPayloadInput",
    "StampStatus",
    "StampedEvent",
    "Web3LedgerReader",
    "canonicalize",
    "compute_fingerprint",
    "decode_stamped_event",
    "find_anchor",
    "fingerprint",
    "format_created_at",
    "is_fingerprint",
    "validate_confirm_request",
]
