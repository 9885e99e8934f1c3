"""
Accounts package — wallet-identified profiles.
"""

from backend_stampid.accounts.service import account_profile, update_profile

__all__ = ["account_profile", "update_profile"]
