"""
Main entrypoint: FastAPI server in the main thread.

Creates tables on startup and, when REDIS_URL is unset, runs the in-process
TTL sweeper for rate-limit windows and consumed auth nonces. On SIGINT/SIGTERM
the server shuts down and the sweeper is stopped.

Env: LEDGER_NETWORK, LEDGER_RPC_URL, STAMP_CONTRACT_ADDRESS, STAMPID_DB_URL / DATABASE_URL,
REDIS_URL, API_HOST, API_PORT, LOG_LEVEL.

Equivalent: uvicorn backend_stampid.api_server.app:app --host 0.0.0.0 --port 8000
"""

import os

# Configure structured JSON logging before other imports that may log
from backend_stampid.stampid_logging import get_logger

logger = get_logger("main")


def main() -> None:
    api_host = os.getenv("API_HOST", "0.0.0.0").strip()
    api_port = int(os.getenv("API_PORT", "8000").strip() or "8000")

    from backend_stampid.api_server.app import app
    import uvicorn

    logger.info("main_server_starting", host=api_host, port=api_port)
    uvicorn.run(app, host=api_host, port=api_port, log_level=os.getenv("LOG_LEVEL", "info").lower())


if __name__ == "__main__":
    main()
