"""Constants for the matching module.

Algorithm tuning constants for game identity matching.
"""

# =============================================================================
# CONFIDENCE THRESHOLDS
# =============================================================================

# Best combined score must reach this for a candidate to be accepted
CONFIDENCE_FLOOR = 0.7

# Both sides scoring above this earn the both-sides bonus
BOTH_SIDES_THRESHOLD = 0.7

# Flat bonus when home and away both clear BOTH_SIDES_THRESHOLD
BOTH_SIDES_BONUS = 0.1

# Manual mappings are always stored with full confidence
MANUAL_CONFIDENCE = 1.0

# Placeholder team name for manual mappings without metadata
UNKNOWN_TEAM = "Unknown"
