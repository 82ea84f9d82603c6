"""Game identity matcher.

Scores archive candidates against a primary-feed game by team names and
picks the best one above the confidence floor.

Scoring per candidate:
    home = similarity(game.home, candidate.home)
    away = similarity(game.away, candidate.away)
    combined = (home + away) / 2, +0.1 if both > 0.7, capped at 1.0

Orientation matters: a candidate with the teams swapped scores low on
both sides and is rejected.
"""

import logging
from dataclasses import dataclass, field

from gamerecon.consumers.matching.constants import (
    BOTH_SIDES_BONUS,
    BOTH_SIDES_THRESHOLD,
    CONFIDENCE_FLOOR,
)
from gamerecon.core.types import ArchiveCandidate, ExternalGame, MatchResult
from gamerecon.utilities.fuzzy_match import normalize_team_name, similarity

logger = logging.getLogger(__name__)


@dataclass
class MatchReport:
    """Summary of pairing two game lists."""

    matched: list[tuple[ExternalGame, MatchResult]] = field(default_factory=list)
    unmatched: list[ExternalGame] = field(default_factory=list)
    unused_candidates: list[ArchiveCandidate] = field(default_factory=list)

    @property
    def match_rate(self) -> float:
        total = len(self.matched) + len(self.unmatched)
        return round(len(self.matched) / total * 100, 2) if total else 0.0

    def to_dict(self) -> dict:
        return {
            "matched": len(self.matched),
            "unmatched": len(self.unmatched),
            "unused_candidates": len(self.unused_candidates),
            "match_rate": self.match_rate,
            "low_confidence": [
                {
                    "primary_id": game.id,
                    "candidate_id": result.candidate_id,
                    "confidence": result.confidence,
                }
                for game, result in self.matched
                if result.confidence < 0.9
            ],
            "unmatched_games": [
                {
                    "primary_id": game.id,
                    "home_team": game.home_team.name,
                    "away_team": game.away_team.name,
                    "date": game.date,
                }
                for game in self.unmatched
            ],
        }


class IdentityMatcher:
    """Matches one primary game to the best archive candidate."""

    def __init__(
        self,
        confidence_floor: float = CONFIDENCE_FLOOR,
        both_sides_threshold: float = BOTH_SIDES_THRESHOLD,
        both_sides_bonus: float = BOTH_SIDES_BONUS,
    ):
        """Initialize matcher.

        Args:
            confidence_floor: Minimum combined score to accept (0-1)
            both_sides_threshold: Per-side score required for the bonus
            both_sides_bonus: Added when both sides clear the threshold
        """
        self.confidence_floor = confidence_floor
        self.both_sides_threshold = both_sides_threshold
        self.both_sides_bonus = both_sides_bonus

    def score(self, game: ExternalGame, candidate: ArchiveCandidate) -> MatchResult:
        """Score one candidate without applying the floor."""
        home = similarity(game.home_team.name, candidate.home_team)
        away = similarity(game.away_team.name, candidate.away_team)

        combined = (home + away) / 2
        if home > self.both_sides_threshold and away > self.both_sides_threshold:
            combined += self.both_sides_bonus

        return MatchResult(
            candidate_id=candidate.id,
            confidence=min(1.0, combined),
            home_score=home,
            away_score=away,
        )

    def match(
        self, game: ExternalGame, candidates: list[ArchiveCandidate]
    ) -> MatchResult | None:
        """Best candidate for a game, or None below the floor.

        The first candidate wins exact ties. Games or candidates whose team
        names normalize to nothing are never matched.
        """
        if not _has_names(game.home_team.name, game.away_team.name):
            logger.debug("[MATCH] Game %s has no usable team names", game.id)
            return None

        best: MatchResult | None = None
        for candidate in candidates:
            if not _has_names(candidate.home_team, candidate.away_team):
                continue
            result = self.score(game, candidate)
            if best is None or result.confidence > best.confidence:
                best = result

        if best is None or best.confidence < self.confidence_floor:
            logger.debug(
                "[MATCH] Game %s: no candidate above %.2f (best %.2f of %d)",
                game.id,
                self.confidence_floor,
                best.confidence if best else 0.0,
                len(candidates),
            )
            return None

        logger.debug(
            "[MATCH] Game %s -> %s (%.3f: home %.3f, away %.3f)",
            game.id,
            best.candidate_id,
            best.confidence,
            best.home_score,
            best.away_score,
        )
        return best

    def match_many(
        self, games: list[ExternalGame], candidates: list[ArchiveCandidate]
    ) -> MatchReport:
        """Pair games with candidates one-to-one.

        Candidates are restricted to the game's date when both carry one. Each
        candidate is consumed by the first game (in list order) it is
        accepted for.
        """
        report = MatchReport()
        remaining = list(candidates)

        for game in games:
            pool = [c for c in remaining if not c.date or not game.date or c.date == game.date]
            result = self.match(game, pool)
            if result is None:
                report.unmatched.append(game)
                continue
            report.matched.append((game, result))
            remaining = [c for c in remaining if c.id != result.candidate_id]

        report.unused_candidates = remaining
        logger.info(
            "[MATCH] Paired %d/%d games (%d candidates unused)",
            len(report.matched),
            len(games),
            len(remaining),
        )
        return report


def _has_names(home: str | None, away: str | None) -> bool:
    return bool(normalize_team_name(home)) and bool(normalize_team_name(away))
