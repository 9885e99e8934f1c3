"""
Structured logging for Backend StampID.

JSON logs with timestamp, event_type and request context (entry_id, address, tx_ref).
Use get_logger() in every module for aggregation-friendly output.
"""

from backend_stampid.stampid_logging.logger import bind_account, get_logger, short_ref

__all__ = ["bind_account", "get_logger", "short_ref"]
