"""
Application settings and environment configuration.

Loads configuration from environment variables and the project .env file,
validates numeric values, and exposes one cached Settings object shared by
the stamp verifier, auth verifier, rate limiter, database layer and API server.
"""

from __future__ import annotations

import functools
import os
from dataclasses import dataclass, field

from backend_stampid.config.env import (
    get_chain_id,
    get_database_url,
    get_ledger_network,
    get_ledger_rpc_url,
    get_stamp_contract_address,
    load_stampid_env,
)

HOUR_SEC = 60 * 60
MINUTE_SEC = 60


@dataclass(frozen=True)
class RateLimitPreset:
    """Fixed-window limit: at most `limit` requests per `window_sec`."""

    limit: int
    window_sec: float


def _default_presets() -> dict[str, RateLimitPreset]:
    return {
        "entry_submit": RateLimitPreset(limit=10, window_sec=HOUR_SEC),
        "profile_update": RateLimitPreset(limit=20, window_sec=HOUR_SEC),
        "general": RateLimitPreset(limit=100, window_sec=MINUTE_SEC),
        "auth": RateLimitPreset(limit=30, window_sec=MINUTE_SEC),
    }


@dataclass(frozen=True)
class Settings:
    ledger_network: str
    ledger_rpc_url: str
    chain_id: int
    stamp_contract_address: str
    ledger_timeout_sec: float
    auth_domain: str
    auth_max_age_sec: int
    database_url: str
    redis_url: str | None
    admin_token: str | None = None
    rate_limits: dict[str, RateLimitPreset] = field(default_factory=_default_presets)

    def rate_limit(self, name: str) -> RateLimitPreset:
        """Return the named preset; unknown names fall back to `general`."""
        return self.rate_limits.get(name) or self.rate_limits["general"]


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return the current application settings (cached for the process).

    Call get_settings.cache_clear() after changing the environment in tests.
    """
    load_stampid_env()
    return Settings(
        ledger_network=get_ledger_network(),
        ledger_rpc_url=get_ledger_rpc_url(),
        chain_id=get_chain_id(),
        stamp_contract_address=get_stamp_contract_address(),
        ledger_timeout_sec=_env_float("LEDGER_TIMEOUT_SEC", 10.0),
        auth_domain=(os.getenv("AUTH_DOMAIN") or "localhost:3000").strip(),
        auth_max_age_sec=int(_env_float("AUTH_MAX_AGE_SEC", 300)),
        database_url=get_database_url(),
        redis_url=(os.getenv("REDIS_URL") or "").strip() or None,
        admin_token=(os.getenv("STAMPID_ADMIN_TOKEN") or "").strip() or None,
    )
