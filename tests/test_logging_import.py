"""
Logging helpers: importable from any package module, and records come out keyed by event_type.
"""

from __future__ import annotations


def test_get_logger_usable_from_fresh_import():
    from backend_stampid.stampid_logging import get_logger

    log = get_logger("tests.logging")
    for level in ("debug", "info", "warning", "error"):
        assert callable(getattr(log, level))
    log.info("logging_ready", entry_id=1, tx_ref="0xabc")


def test_event_renamed_to_event_type():
    from backend_stampid.stampid_logging.logger import _event_to_event_type

    record = _event_to_event_type(None, "info", {"event": "stamp_confirmed", "entry_id": 3})
    assert record == {"event_type": "stamp_confirmed", "message": "stamp_confirmed", "entry_id": 3}

    kept = _event_to_event_type(None, "info", {"event_type": "x", "message": "custom"})
    assert kept == {"event_type": "x", "message": "custom"}


def test_short_ref_truncates_long_values():
    from backend_stampid.stampid_logging import short_ref

    assert short_ref("0x" + "ab" * 32) == "0xabababab..."
    assert short_ref("0x1234") == "0x1234"
    assert short_ref(None) == ""


def test_bind_account_returns_bound_logger():
    from backend_stampid.stampid_logging import bind_account

    log = bind_account("0x2222222222222222222222222222222222222222")
    log.info("bound_message")
