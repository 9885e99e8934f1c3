"""
HTTP plumbing shared by all routers: error handlers and request dependencies.

- Domain exceptions map to {"error", "code"} JSON with their own status codes.
- Throttled responses carry X-RateLimit-* and Retry-After headers.
- Anything unexpected becomes a generic 500; details go to the log only.
"""

from __future__ import annotations

import functools
import math
import secrets
import time
from typing import Callable

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend_stampid.auth.challenge import AuthChallengeVerifier
from backend_stampid.config import get_settings
from backend_stampid.core.exceptions import AuthenticationError, RateLimitExceeded, StampIdError
from backend_stampid.ratelimit import RateLimiter, RateLimitResult, get_ttl_store, rate_limit_key
from backend_stampid.stamp.ledger import LedgerReader, Web3LedgerReader
from backend_stampid.stamp.proof import ProofVerifier
from backend_stampid.stampid_logging import get_logger

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Dependencies (overridden in tests via app.dependency_overrides)
# -----------------------------------------------------------------------------


@functools.lru_cache(maxsize=1)
def get_ledger_reader() -> LedgerReader:
    settings = get_settings()
    return Web3LedgerReader(settings.ledger_rpc_url, timeout_sec=settings.ledger_timeout_sec)


def get_proof_verifier(ledger: LedgerReader = Depends(get_ledger_reader)) -> ProofVerifier:
    return ProofVerifier(ledger, get_settings().stamp_contract_address)


def get_auth_verifier() -> AuthChallengeVerifier:
    settings = get_settings()
    return AuthChallengeVerifier(
        nonce_store=get_ttl_store(),
        max_age_sec=settings.auth_max_age_sec,
        expected_domain=settings.auth_domain,
    )


def get_rate_limiter() -> RateLimiter:
    return RateLimiter(get_ttl_store())


def rate_limited(preset_name: str) -> Callable[..., RateLimitResult]:
    """Dependency factory: check the named preset for the calling client, raise when over."""

    def _check(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> RateLimitResult:
        preset = get_settings().rate_limit(preset_name)
        key = rate_limit_key(
            request.headers.get("x-forwarded-for"),
            request.client.host if request.client else None,
            preset_name,
        )
        result = limiter.check(key, preset.limit, preset.window_sec)
        if not result.allowed:
            raise RateLimitExceeded(result.limit, result.remaining, result.reset_at)
        return result

    return _check


def require_admin(x_admin_token: str | None = Header(None)) -> None:
    """Gate maintenance endpoints behind STAMPID_ADMIN_TOKEN when it is configured."""
    expected = get_settings().admin_token
    if expected is None:
        return
    if not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        raise AuthenticationError("Admin token required")


# -----------------------------------------------------------------------------
# Exception handlers
# -----------------------------------------------------------------------------


def _error(status_code: int, message: str, code: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "code": code}, headers=headers)


async def _stampid_error_handler(request: Request, exc: StampIdError) -> JSONResponse:
    logger.info("request_rejected", path=request.url.path, code=exc.code, error=exc.message)
    return _error(exc.status_code, exc.message, exc.code)


async def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    retry_after = max(0, math.ceil(exc.reset_at - time.time()))
    headers = RateLimitResult(False, exc.limit, exc.remaining, exc.reset_at).headers()
    headers["Retry-After"] = str(retry_after)
    return _error(exc.status_code, exc.message, exc.code, headers)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:]) or "request"
    message = f"Invalid {field}: {first.get('msg', 'invalid value')}"
    return _error(400, message, "validation_error")


async def _unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request_failed", path=request.url.path, error=str(exc))
    return _error(500, "Internal server error", "internal_error")


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)
    app.add_exception_handler(StampIdError, _stampid_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_handler)
