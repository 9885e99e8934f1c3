"""
Application-level exceptions.

Each domain exception carries a stable `code` and the HTTP status the API
returns for it, so routes raise and the server's handlers translate once.
LedgerUnavailableError never reaches a caller: the proof verifier absorbs it
into a DEPENDENCY_UNAVAILABLE result.
"""

from __future__ import annotations


class StampIdError(Exception):
    """Base for all StampID errors."""

    code = "internal_error"
    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationError(StampIdError):
    """Malformed identifier, missing field or bad format. Raised before any side effect."""

    code = "validation_error"
    status_code = 400


class NotFoundError(StampIdError):
    """Referenced entry or account does not exist."""

    code = "not_found"
    status_code = 404


class AuthenticationError(StampIdError):
    """Challenge message rejected; `message` is the reason (e.g. "Signature expired")."""

    code = "authentication_failed"
    status_code = 401


class RateLimitExceeded(StampIdError):
    """Fixed-window throttle rejected the request."""

    code = "rate_limited"
    status_code = 429

    def __init__(self, limit: int, remaining: int, reset_at: float) -> None:
        super().__init__("Too many requests. Please try again later.")
        self.limit = limit
        self.remaining = remaining
        self.reset_at = reset_at


class LedgerUnavailableError(StampIdError):
    """Ledger read failed (network, timeout, RPC error)."""

    code = "ledger_unavailable"
    status_code = 503
