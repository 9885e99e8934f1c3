"""
Sign-in-with-wallet challenge messages: build, parse, verify.

Message layout (plain text, LF separated):

    <domain> wants you to sign in with your <chain> account:
    <address>

    <statement>

    URI: <uri>
    Version: <version>
    Chain ID: <chain id>
    Nonce: <nonce>
    Issued At: <ISO-8601>
    Expiration Time: <ISO-8601>        (optional)

A message is accepted only if it parses, is not expired, was issued within
max_age_sec and no later than now plus a small clock skew, names the expected
domain when one is configured, carries a valid personal_sign signature by the
claimed address, names that same address, and its nonce has not been used
before. A consumed nonce is remembered until the message could no longer pass
the time checks.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys.exceptions import BadSignature
from eth_keys.exceptions import ValidationError as KeyValidationError
from eth_utils import is_address

from backend_stampid.ratelimit.store import TTLStore
from backend_stampid.stampid_logging import get_logger, short_ref

logger = get_logger(__name__)

DEFAULT_MAX_AGE_SEC = 5 * 60
CHALLENGE_TTL_SEC = 5 * 60
CLOCK_SKEW_SEC = 60

ERR_FORMAT = "Invalid SIWE message format"
ERR_EXPIRED = "Signature expired"
ERR_TOO_OLD = "Signature too old"
ERR_SIGNATURE = "Invalid signature"
ERR_ADDRESS_MISMATCH = "Address mismatch"
ERR_NONCE_REUSED = "Nonce already used"
ERR_ISSUED_IN_FUTURE = "Signature issued in the future"
ERR_DOMAIN_MISMATCH = "Domain mismatch"

_HEADER_RE = re.compile(r"^(?P<domain>.+) wants you to sign in with your (?P<chain>.+) account:$")


@dataclass(frozen=True)
class ChallengeMessage:
    domain: str
    chain: str
    address: str
    statement: str
    uri: str
    version: str
    chain_id: int
    nonce: str
    issued_at: datetime
    expiration_time: datetime | None = None


@dataclass(frozen=True)
class AuthResult:
    valid: bool
    address: str | None = None
    error: str | None = None


def _parse_time(value: str) -> datetime:
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _iso_ms(dt: datetime) -> str:
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_challenge_message(message: str) -> ChallengeMessage | None:
    """Parse the message; None when any required field is missing or malformed."""
    if not isinstance(message, str) or not message:
        return None
    lines = message.split("\n")
    header = _HEADER_RE.match(lines[0].strip())
    if header is None or len(lines) < 2:
        return None
    address = lines[1].strip()

    fields: dict[str, str] = {}
    uri_index = -1
    for i, line in enumerate(lines):
        for key in ("URI", "Version", "Chain ID", "Nonce", "Issued At", "Expiration Time"):
            prefix = f"{key}:"
            if line.startswith(prefix) and key not in fields:
                fields[key] = line[len(prefix):].strip()
                if key == "URI":
                    uri_index = i
    statement = ""
    if uri_index > 2:
        statement = "\n".join(lines[3:uri_index]).strip()

    required = ("URI", "Version", "Chain ID", "Nonce", "Issued At")
    if not address or any(not fields.get(k) for k in required):
        return None
    try:
        chain_id = int(fields["Chain ID"])
        issued_at = _parse_time(fields["Issued At"])
        expiration = _parse_time(fields["Expiration Time"]) if fields.get("Expiration Time") else None
    except ValueError:
        return None
    return ChallengeMessage(
        domain=header.group("domain"),
        chain=header.group("chain"),
        address=address,
        statement=statement,
        uri=fields["URI"],
        version=fields["Version"],
        chain_id=chain_id,
        nonce=fields["Nonce"],
        issued_at=issued_at,
        expiration_time=expiration,
    )


def generate_nonce() -> str:
    """16 random bytes as 32 lowercase hex chars."""
    return secrets.token_hex(16)


def create_challenge_message(
    *,
    domain: str,
    address: str,
    statement: str,
    uri: str,
    chain_id: int,
    nonce: str,
    chain: str = "Ethereum",
    now: datetime | None = None,
    ttl_sec: int = CHALLENGE_TTL_SEC,
) -> str:
    issued = now or datetime.now(timezone.utc)
    expires = issued + timedelta(seconds=ttl_sec)
    return (
        f"{domain} wants you to sign in with your {chain} account:\n"
        f"{address}\n"
        "\n"
        f"{statement}\n"
        "\n"
        f"URI: {uri}\n"
        "Version: 1\n"
        f"Chain ID: {chain_id}\n"
        f"Nonce: {nonce}\n"
        f"Issued At: {_iso_ms(issued)}\n"
        f"Expiration Time: {_iso_ms(expires)}"
    )


def recover_signer(message: str, signature: str) -> str:
    """Address that produced `signature` over the EIP-191 personal message. Raises on malformed input."""
    return Account.recover_message(encode_defunct(text=message), signature=signature)


class AuthChallengeVerifier:
    def __init__(
        self,
        *,
        nonce_store: TTLStore | None = None,
        max_age_sec: int = DEFAULT_MAX_AGE_SEC,
        expected_domain: str | None = None,
        clock_skew_sec: int = CLOCK_SKEW_SEC,
    ) -> None:
        self._nonce_store = nonce_store
        self._max_age = timedelta(seconds=max_age_sec)
        self._expected_domain = (expected_domain or "").strip() or None
        self._clock_skew = timedelta(seconds=clock_skew_sec)

    def verify(
        self,
        message: str,
        signature: str,
        claimed_address: str,
        *,
        now: datetime | None = None,
    ) -> AuthResult:
        now = now or datetime.now(timezone.utc)
        parsed = parse_challenge_message(message)
        if parsed is None:
            return self._reject(ERR_FORMAT, claimed_address)

        if parsed.expiration_time is not None and parsed.expiration_time < now:
            return self._reject(ERR_EXPIRED, claimed_address)
        if parsed.issued_at < now - self._max_age:
            return self._reject(ERR_TOO_OLD, claimed_address)
        if parsed.issued_at > now + self._clock_skew:
            return self._reject(ERR_ISSUED_IN_FUTURE, claimed_address)
        if self._expected_domain is not None and parsed.domain != self._expected_domain:
            return self._reject(ERR_DOMAIN_MISMATCH, claimed_address)

        if not isinstance(claimed_address, str) or not is_address(claimed_address):
            return self._reject(ERR_SIGNATURE, claimed_address)
        try:
            signer = recover_signer(message, signature)
        except (ValueError, TypeError, BadSignature, KeyValidationError) as e:
            logger.info("auth_signature_malformed", error=str(e))
            return self._reject(ERR_SIGNATURE, claimed_address)
        if signer.lower() != claimed_address.lower():
            return self._reject(ERR_SIGNATURE, claimed_address)

        if parsed.address.lower() != claimed_address.lower():
            return self._reject(ERR_ADDRESS_MISMATCH, claimed_address)

        if self._nonce_store is not None:
            ttl = self._nonce_ttl(parsed, now)
            if not self._nonce_store.add_if_absent(f"auth-nonce:{parsed.nonce}", ttl):
                return self._reject(ERR_NONCE_REUSED, claimed_address)

        logger.info("auth_challenge_verified", address=short_ref(claimed_address))
        return AuthResult(valid=True, address=parsed.address)

    def _nonce_ttl(self, parsed: ChallengeMessage, now: datetime) -> float:
        """Seconds until the message can no longer pass the time checks; the nonce is kept that long."""
        valid_until = parsed.issued_at + self._max_age
        if parsed.expiration_time is not None and parsed.expiration_time < valid_until:
            valid_until = parsed.expiration_time
        return max(1.0, (valid_until - now).total_seconds())

    @staticmethod
    def _reject(reason: str, claimed_address: str | None) -> AuthResult:
        logger.info("auth_challenge_rejected", reason=reason, address=short_ref(str(claimed_address or "")))
        return AuthResult(valid=False, error=reason)
