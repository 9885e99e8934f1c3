"""
Fixed-window request throttle keyed by client identity + purpose.

Advisory only; not a security boundary on its own. The count increments even
on rejected requests, so a client that keeps hammering stays throttled until
the window resets.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_stampid.ratelimit.store import TTLStore, get_ttl_store
from backend_stampid.stampid_logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    """Unix seconds when the current window ends."""

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }


class RateLimiter:
    def __init__(self, store: TTLStore | None = None) -> None:
        self._store = store

    @property
    def store(self) -> TTLStore:
        if self._store is None:
            self._store = get_ttl_store()
        return self._store

    def check(self, key: str, limit: int, window_sec: float) -> RateLimitResult:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_sec <= 0:
            raise ValueError("window_sec must be positive")
        count, reset_at = self.store.incr(f"ratelimit:{key}", window_sec)
        if count > limit:
            logger.info("rate_limited", key=key, limit=limit, count=count)
            return RateLimitResult(False, limit, 0, reset_at)
        return RateLimitResult(True, limit, limit - count, reset_at)


def rate_limit_key(forwarded_for: str | None, client_host: str | None, prefix: str = "") -> str:
    """First X-Forwarded-For hop, else the socket peer, else 'unknown'; optionally prefixed."""
    ip = ""
    if forwarded_for:
        ip = forwarded_for.split(",")[0].strip()
    ip = ip or (client_host or "").strip() or "unknown"
    return f"{prefix}:{ip}" if prefix else ip
