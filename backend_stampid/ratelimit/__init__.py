"""
Rate limiting — fixed-window counters over a TTL key-value store.
"""

from backend_stampid.ratelimit.limiter import RateLimiter, RateLimitResult, rate_limit_key
from backend_stampid.ratelimit.store import (
    InMemoryTTLStore,
    RedisTTLStore,
    TTLStore,
    get_ttl_store,
    reset_ttl_store_for_test,
)

__all__ = [
    "InMemoryTTLStore",
    "RateLimitResult",
    "RateLimiter",
    "RedisTTLStore",
    "TTLStore",
    "get_ttl_store",
    "rate_limit_key",
    "reset_ttl_store_for_test",
]
