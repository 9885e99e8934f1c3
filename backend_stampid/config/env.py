"""
Environment variable loading and validation for StampID.

- LEDGER_NETWORK: mainnet | sepolia (default: mainnet)
- LEDGER_RPC_URL: JSON-RPC endpoint of the ledger (read from .env)
- ALCHEMY_API_KEY: fallback for the RPC URL when LEDGER_RPC_URL is unset
- STAMP_CONTRACT_ADDRESS: deployed anchoring contract
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_stampid/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

MAINNET_RPC_URL = "https://mainnet.base.org"
SEPOLIA_RPC_URL = "https://sepolia.base.org"
ALCHEMY_MAINNET_URL_TEMPLATE = "https://base-mainnet.g.alchemy.com/v2/{key}"
ALCHEMY_SEPOLIA_URL_TEMPLATE = "https://base-sepolia.g.alchemy.com/v2/{key}"

MAINNET_CHAIN_ID = 8453
SEPOLIA_CHAIN_ID = 84532


def load_stampid_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides real env."""
    load_dotenv(_ENV_PATH, override=False)


def get_ledger_network() -> str:
    """
    Return LEDGER_NETWORK from env: mainnet | sepolia.
    Default: mainnet.
    """
    load_stampid_env()
    raw = (os.getenv("LEDGER_NETWORK") or "mainnet").strip().lower()
    if raw in ("sepolia", "testnet", "base-sepolia"):
        return "sepolia"
    return "mainnet"


def get_ledger_rpc_url() -> str:
    """
    Resolve ledger RPC URL from env.
    Order: LEDGER_RPC_URL > ALCHEMY_API_KEY (network-specific) > public default.
    """
    load_stampid_env()
    url = (os.getenv("LEDGER_RPC_URL") or "").strip()
    if url:
        return url
    network = get_ledger_network()
    key = (os.getenv("ALCHEMY_API_KEY") or "").strip()
    if key:
        if network == "sepolia":
            return ALCHEMY_SEPOLIA_URL_TEMPLATE.format(key=key)
        return ALCHEMY_MAINNET_URL_TEMPLATE.format(key=key)
    return SEPOLIA_RPC_URL if network == "sepolia" else MAINNET_RPC_URL


def get_stamp_contract_address() -> str:
    """
    Return STAMP_CONTRACT_ADDRESS from env, or the network-specific
    STAMP_CONTRACT_ADDRESS_MAINNET / STAMP_CONTRACT_ADDRESS_SEPOLIA. Empty when not deployed.
    """
    load_stampid_env()
    addr = (os.getenv("STAMP_CONTRACT_ADDRESS") or "").strip()
    if addr:
        return addr
    suffix = get_ledger_network().upper()
    return (os.getenv(f"STAMP_CONTRACT_ADDRESS_{suffix}") or "").strip()


def get_chain_id() -> int:
    """Chain id matching the configured network."""
    return SEPOLIA_CHAIN_ID if get_ledger_network() == "sepolia" else MAINNET_CHAIN_ID


def get_database_url() -> str:
    """Return STAMPID_DB_URL or DATABASE_URL if set; else SQLite from STAMPID_DB_PATH or stampid.db."""
    load_stampid_env()
    url = (os.getenv("STAMPID_DB_URL") or os.getenv("DATABASE_URL") or "").strip()
    if url:
        return url
    path = (os.getenv("STAMPID_DB_PATH") or "").strip() or "stampid.db"
    return f"sqlite:///{path}"


def mask_url(url: str) -> str:
    """Hide API keys embedded in RPC URLs before logging."""
    if "/v2/" in url:
        return url.split("/v2/")[0] + "/v2/***"
    return url
