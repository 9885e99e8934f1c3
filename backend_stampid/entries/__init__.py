"""
Entries package — submissions and votes.
"""

from backend_stampid.entries.service import EntrySubmission, cast_vote, submit_entry, validate_address

__all__ = ["EntrySubmission", "cast_vote", "submit_entry", "validate_address"]
