"""Fuzzy string matching for team names.

Uses rapidfuzz for edit distance and unidecode for accent folding.
Every score in the codebase goes through similarity() so the rules for
normalization, substring credit and empty names live in one place.
"""

import re
from dataclasses import dataclass

from rapidfuzz.distance import Levenshtein
from unidecode import unidecode

# Whole-name abbreviations. Expansions must never be keys themselves so
# normalize_team_name stays idempotent.
TEAM_ABBREVIATIONS = {
    "unc": "north carolina",
    "usc": "southern california",
    "lsu": "louisiana state",
    "tcu": "texas christian",
    "smu": "southern methodist",
    "byu": "brigham young",
    "vcu": "virginia commonwealth",
    "ucf": "central florida",
    "uconn": "connecticut",
    "unlv": "nevada las vegas",
    "utep": "texas el paso",
    "utsa": "texas san antonio",
    "uab": "alabama birmingham",
    "ole miss": "mississippi",
    "pitt": "pittsburgh",
}

# "Michigan St." -> "michigan state". Must run before punctuation is stripped.
_TRAILING_ST = re.compile(r"\s+st\.\s*$")
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")

# Substring matches score in [SUBSTRING_BASE, SUBSTRING_BASE + SUBSTRING_BONUS)
SUBSTRING_BASE = 0.85
SUBSTRING_BONUS = 0.15


def normalize_team_name(name: str | None) -> str:
    """Canonical form of a team name for comparison.

    "Michigan St." -> "michigan state"
    "UConn" -> "connecticut"
    "Saint Mary's (CA)" -> "saint marys ca"
    """
    if not name:
        return ""

    normalized = unidecode(name).lower()
    normalized = _TRAILING_ST.sub(" state", normalized)
    normalized = _NON_ALNUM.sub("", normalized)
    normalized = " ".join(normalized.split())

    return TEAM_ABBREVIATIONS.get(normalized, normalized)


def similarity(a: str | None, b: str | None) -> float:
    """Score two team names in [0, 1].

    Identical normalized names (including two empty names) score 1.0.
    One empty name scores 0.0. A name contained in the other scores
    0.85 plus a bonus scaled by the length ratio, always below 1.0.
    Anything else falls back to normalized Levenshtein similarity.
    """
    left = normalize_team_name(a)
    right = normalize_team_name(b)

    if left == right:
        return 1.0
    if not left or not right:
        return 0.0

    shorter, longer = (left, right) if len(left) <= len(right) else (right, left)
    if shorter in longer:
        return SUBSTRING_BASE + SUBSTRING_BONUS * (len(shorter) / len(longer))

    distance = Levenshtein.distance(left, right)
    return max(0.0, 1.0 - distance / max(len(left), len(right)))


@dataclass
class FuzzyMatchResult:
    """Result of a fuzzy match."""

    matched: bool
    score: float
    candidate: str | None = None


class TeamNameMatcher:
    """Picks the closest name from a list.

    Used for directory lookups (team name -> archive team) where there is
    one name on each side rather than a home/away pair.
    """

    def __init__(self, threshold: float = 0.8):
        """Initialize matcher.

        Args:
            threshold: Minimum similarity to accept (0-1)
        """
        self.threshold = threshold

    def best_match(self, name: str, candidates: list[str]) -> FuzzyMatchResult:
        """Find the best matching candidate for a name.

        First candidate wins ties.

        Args:
            name: Name to look up
            candidates: Candidate names

        Returns:
            FuzzyMatchResult, matched=False if nothing reaches the threshold
        """
        best_candidate = None
        best_score = 0.0

        if not normalize_team_name(name):
            return FuzzyMatchResult(matched=False, score=0.0)

        for candidate in candidates:
            score = similarity(name, candidate)
            if score > best_score:
                best_score = score
                best_candidate = candidate

        if best_candidate is not None and best_score >= self.threshold:
            return FuzzyMatchResult(matched=True, score=best_score, candidate=best_candidate)

        return FuzzyMatchResult(matched=False, score=best_score)


# Default singleton for convenience
_default_matcher: TeamNameMatcher | None = None


def get_matcher() -> TeamNameMatcher:
    """Get the default TeamNameMatcher instance."""
    global _default_matcher
    if _default_matcher is None:
        _default_matcher = TeamNameMatcher()
    return _default_matcher
