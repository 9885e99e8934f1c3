"""
API server package — HTTP/REST interface.

Exposes entries, stamp confirmation, profiles and leaderboards to clients.
Handles signed-request authentication and rate limiting, and delegates to the
domain packages for everything else.
"""
from __future__ import annotations
