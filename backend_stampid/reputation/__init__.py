"""
Reputation package — points, tiers and leaderboards.
"""

from backend_stampid.reputation.engine import (
    POINTS_FIRST_SUBMISSION_BONUS,
    POINTS_STAMP_RECEIVED,
    POINTS_SUBMISSION,
    POINTS_VOTE_RECEIVED,
    TIER_THRESHOLDS,
    PointsUpdate,
    Tier,
    TierProgress,
    add_points,
    compute_points,
    progress_to_next_tier,
    recalculate,
    record_stamp_received,
    record_submission,
    record_vote_received,
    tier_of,
    tier_range,
)
from backend_stampid.reputation.leaderboard import (
    CategoryLeaderboardQuery,
    GlobalLeaderboardQuery,
    leaderboard,
    leaderboard_for_category,
    parse_leaderboard_query,
    run_leaderboard,
)

__all__ = [
    "POINTS_FIRST_SUBMISSION_BONUS",
    "POINTS_STAMP_RECEIVED",
    "POINTS_SUBMISSION",
    "POINTS_VOTE_RECEIVED",
    "TIER_THRESHOLDS",
    "CategoryLeaderboardQuery",
    "GlobalLeaderboardQuery",
    "PointsUpdate",
    "Tier",
    "TierProgress",
    "add_points",
    "compute_points",
    "leaderboard",
    "leaderboard_for_category",
    "parse_leaderboard_query",
    "progress_to_next_tier",
    "recalculate",
    "record_stamp_received",
    "record_submission",
    "record_vote_received",
    "run_leaderboard",
    "tier_of",
    "tier_range",
]
