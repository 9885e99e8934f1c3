"""
Configuration management for Backend StampID.

Loads and validates settings from environment variables and the optional
.env file. Exposes a single source of truth for all service configuration.
"""

from backend_stampid.config.settings import RateLimitPreset, Settings, get_settings  # noqa: F401

__all__ = ["RateLimitPreset", "Settings", "get_settings"]
