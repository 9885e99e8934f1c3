"""
FastAPI router: POST /stamp/confirm.

The client reports the transaction that anchored an entry's fingerprint; the
server reads the ledger itself and only records what it can verify.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from backend_stampid.api_server.middleware import get_proof_verifier, rate_limited
from backend_stampid.stamp.proof import ProofVerifier
from backend_stampid.stampid_logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/stamp", tags=["stamp"])


class ConfirmStampRequest(BaseModel):
    """Fields stay untyped here; validate_confirm_request owns the entryId / txRef error messages."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    entry_id: Any = Field(None, alias="entryId")
    tx_ref: Any = Field(None, alias="txRef")


@router.post("/confirm", dependencies=[Depends(rate_limited("general"))])
def confirm_stamp(
    body: ConfirmStampRequest,
    verifier: ProofVerifier = Depends(get_proof_verifier),
) -> dict[str, Any]:
    """
    Verify the anchoring transaction and record the outcome on the entry.

    Returns {accepted, verified, status} where status is VERIFIED, UNVERIFIED or
    DEPENDENCY_UNAVAILABLE. A ledger outage never erases an earlier confirmation.
    """
    result = verifier.confirm_stamp(body.entry_id, body.tx_ref)
    return result.to_dict()
