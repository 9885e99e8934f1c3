"""
Ledger read collaborator and anchoring-event decoding.

Reads a transaction receipt over JSON-RPC (web3.py HTTPProvider with an explicit
request timeout) and normalizes its logs to LedgerLog. The anchoring contract
emits Stamped(bytes32 indexed hash, address indexed author, uint256 timestamp,
string uri); decode_stamped_event also accepts the same fields un-indexed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import requests
from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak, to_checksum_address
from web3 import Web3
from web3.exceptions import TransactionNotFound, Web3Exception

from backend_stampid.core.exceptions import LedgerUnavailableError
from backend_stampid.stampid_logging import get_logger, short_ref

logger = get_logger(__name__)

STAMPED_EVENT_SIGNATURE = "Stamped(bytes32,address,uint256,string)"
STAMPED_TOPIC = keccak(text=STAMPED_EVENT_SIGNATURE)


@dataclass(frozen=True)
class LedgerLog:
    """One event log from a transaction receipt."""

    address: str
    topics: tuple[bytes, ...]
    data: bytes


@dataclass(frozen=True)
class StampedEvent:
    fingerprint: str
    """0x-prefixed lowercase hex of the anchored bytes32."""
    submitter: str
    timestamp: int
    """Unix seconds as recorded by the contract."""
    reference: str


class LedgerReader(Protocol):
    def get_transaction_logs(self, tx_ref: str) -> list[LedgerLog] | None:
        """
        Return the logs of a mined transaction, or None if the ledger does not know it.
        Raises LedgerUnavailableError when the ledger cannot be reached.
        """
        ...


def _as_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        raw = value[2:] if value.startswith(("0x", "0X")) else value
        return bytes.fromhex(raw)
    raise TypeError(f"cannot convert {type(value).__name__} to bytes")


def logs_from_receipt(receipt: Any) -> list[LedgerLog]:
    """Normalize web3 receipt logs (AttributeDict / HexBytes / hex str) to LedgerLog."""
    out: list[LedgerLog] = []
    for log in receipt.get("logs") or []:
        try:
            out.append(
                LedgerLog(
                    address=str(log["address"]),
                    topics=tuple(_as_bytes(t) for t in log.get("topics") or []),
                    data=_as_bytes(log.get("data") or b""),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.debug("ledger_log_skipped", error=str(e))
    return out


def decode_stamped_event(log: LedgerLog) -> StampedEvent:
    """
    Decode a Stamped log. Raises ValueError when the log has a different shape
    (other events emitted in the same transaction).
    """
    if not log.topics or log.topics[0] != STAMPED_TOPIC:
        raise ValueError("not a Stamped event")
    try:
        if len(log.topics) == 3:
            hash_bytes = log.topics[1]
            submitter = to_checksum_address(log.topics[2][-20:])
            timestamp, reference = abi_decode(["uint256", "string"], log.data)
        elif len(log.topics) == 1:
            hash_bytes, submitter, timestamp, reference = abi_decode(
                ["bytes32", "address", "uint256", "string"], log.data
            )
        else:
            raise ValueError(f"unexpected topic count {len(log.topics)}")
    except DecodingError as e:
        raise ValueError(f"Stamped decode failed: {e}") from e
    if len(hash_bytes) != 32:
        raise ValueError("fingerprint topic is not 32 bytes")
    return StampedEvent(
        fingerprint="0x" + bytes(hash_bytes).hex(),
        submitter=str(submitter),
        timestamp=int(timestamp),
        reference=str(reference),
    )


class Web3LedgerReader:
    """
    JSON-RPC ledger reader. One HTTP request per call (eth_getTransactionReceipt),
    bounded by `timeout_sec`; no retries here, confirmation is retried by the caller.
    """

    def __init__(self, rpc_url: str, *, timeout_sec: float = 10.0) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if timeout_sec <= 0:
            raise ValueError("timeout_sec must be positive")
        self._rpc_url = rpc_url.strip()
        self._timeout_sec = timeout_sec
        self._w3 = Web3(Web3.HTTPProvider(self._rpc_url, request_kwargs={"timeout": timeout_sec}))

    def get_transaction_logs(self, tx_ref: str) -> list[LedgerLog] | None:
        try:
            receipt = self._w3.eth.get_transaction_receipt(tx_ref)
        except TransactionNotFound:
            logger.info("ledger_tx_not_found", tx_ref=short_ref(tx_ref))
            return None
        except (requests.RequestException, Web3Exception, OSError, ValueError) as e:
            logger.warning(
                "ledger_read_failed",
                tx_ref=short_ref(tx_ref),
                timeout_sec=self._timeout_sec,
                error=str(e),
            )
            raise LedgerUnavailableError(str(e)) from e
        logs = logs_from_receipt(receipt)
        logger.debug("ledger_receipt_read", tx_ref=short_ref(tx_ref), log_count=len(logs))
        return logs
