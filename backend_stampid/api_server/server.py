"""
FastAPI server for entries, stamp confirmation, profiles and reputation.

Routers live beside this module; error translation, rate limiting and shared
dependencies live in middleware. Config via env (see backend_stampid.config).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from backend_stampid import __version__
from backend_stampid.api_server.entry_routes import router as entry_router
from backend_stampid.api_server.middleware import install_error_handlers
from backend_stampid.api_server.reputation_routes import router as reputation_router
from backend_stampid.api_server.stamp_routes import router as stamp_router
from backend_stampid.api_server.user_routes import router as user_router
from backend_stampid.config import get_settings
from backend_stampid.config.env import mask_url
from backend_stampid.database import init_db
from backend_stampid.ratelimit import InMemoryTTLStore, get_ttl_store
from backend_stampid.stampid_logging import get_logger

logger = get_logger(__name__)

TTL_SWEEP_INTERVAL_SEC = 5 * 60


# -----------------------------------------------------------------------------
# Lifespan: create tables, run the TTL sweeper for the in-process store
# -----------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    init_db()
    if not settings.stamp_contract_address:
        logger.warning("stamp_contract_not_configured", network=settings.ledger_network)

    store = get_ttl_store()
    sweeper = isinstance(store, InMemoryTTLStore)
    if sweeper:
        store.start_sweeper(TTL_SWEEP_INTERVAL_SEC)
    logger.info(
        "api_started",
        network=settings.ledger_network,
        chain_id=settings.chain_id,
        rpc=mask_url(settings.ledger_rpc_url),
        ttl_store=type(store).__name__,
    )

    yield

    if sweeper:
        store.stop_sweeper()
    logger.info("api_stopped")


# -----------------------------------------------------------------------------
# App and routes
# -----------------------------------------------------------------------------

app = FastAPI(
    title="Backend StampID API",
    description="Entries, ledger-anchored stamps, wallet-signed profiles and reputation.",
    version=__version__,
    lifespan=lifespan,
)

install_error_handlers(app)

app.include_router(user_router, prefix="/api", tags=["Users"])
app.include_router(entry_router, prefix="/api", tags=["Entries"])
app.include_router(stamp_router, prefix="/api", tags=["Stamp"])
app.include_router(reputation_router, prefix="/api", tags=["Reputation"])


@app.get("/health")
def health() -> dict[str, Any]:
    return {"status": "ok", "version": __version__}
