"""Game id discovery.

Resolves a primary-feed game to an archive game id in tiers:

1. Cache: an existing mapping is returned as-is, no network.
2. Discovery: search the archive for the game's date and teams, score the
   candidates, and persist the accepted one.
3. Manual: set_manual_mapping() stores an operator-chosen id at full
   confidence, replacing whatever was there. Later lookups hit tier 1.

Only tier 2 successes and tier 3 calls write to the mapping store.
"""

import logging
from collections.abc import Callable
from datetime import date
from typing import Protocol

from gamerecon.consumers.matching.constants import MANUAL_CONFIDENCE, UNKNOWN_TEAM
from gamerecon.consumers.matching.identity_matcher import IdentityMatcher
from gamerecon.core.types import (
    ArchiveCandidate,
    DiscoveryResult,
    DiscoverySource,
    ExternalGame,
    GameIdMapping,
)
from gamerecon.database import mappings
from gamerecon.utilities.fuzzy_match import normalize_team_name

logger = logging.getLogger(__name__)


class ArchiveSearch(Protocol):
    def search_games(
        self,
        date: str,
        home_team: str,
        away_team: str,
        home_team_id: str | None = None,
        away_team_id: str | None = None,
    ) -> list[ArchiveCandidate]: ...


class DiscoveryService:
    """Tiered primary id -> archive id resolution."""

    def __init__(
        self,
        archive: ArchiveSearch,
        db_factory: Callable,
        matcher: IdentityMatcher | None = None,
    ):
        """Initialize service.

        Args:
            archive: Anything with search_games() (StatBroadcastClient)
            db_factory: Returns a connection context manager
            matcher: Identity matcher, default thresholds if omitted
        """
        self._archive = archive
        self._db = db_factory
        self._matcher = matcher or IdentityMatcher()

    def discover(self, game: ExternalGame) -> DiscoveryResult | None:
        """Find the archive id for a game.

        Returns:
            DiscoveryResult, or None when no candidate clears the floor

        Archive search errors propagate to the caller.
        """
        cached = self._check_cache(game)
        if cached:
            return cached

        return self._discover(game)

    def _check_cache(self, game: ExternalGame) -> DiscoveryResult | None:
        with self._db() as conn:
            mapping = mappings.get_mapping(conn, game.id)
        if not mapping:
            return None

        logger.debug(
            "[DISCOVERY] Cache hit %s -> %s (%s)",
            game.id,
            mapping.archive_id,
            mapping.match_method,
        )
        return DiscoveryResult(
            archive_id=mapping.archive_id,
            confidence=mapping.confidence,
            source=DiscoverySource.CACHE,
        )

    def _discover(self, game: ExternalGame) -> DiscoveryResult | None:
        home = normalize_team_name(game.home_team.name)
        away = normalize_team_name(game.away_team.name)

        candidates = self._archive.search_games(
            game.date,
            home,
            away,
            home_team_id=game.home_team.id or None,
            away_team_id=game.away_team.id or None,
        )
        if not candidates:
            logger.info(
                "[DISCOVERY] No archive games for %s (%s vs %s on %s)",
                game.id,
                game.away_team.name,
                game.home_team.name,
                game.date,
            )
            return None

        result = self._matcher.match(game, candidates)
        if result is None:
            logger.info(
                "[DISCOVERY] %d candidates for %s, none confident enough",
                len(candidates),
                game.id,
            )
            return None

        with self._db() as conn:
            mappings.save_mapping(
                conn,
                GameIdMapping(
                    primary_id=game.id,
                    archive_id=result.candidate_id,
                    home_team=game.home_team.name,
                    away_team=game.away_team.name,
                    game_date=game.date,
                    confidence=result.confidence,
                    match_method="discovery",
                ),
            )

        logger.info(
            "[DISCOVERY] %s -> %s (confidence %.3f)",
            game.id,
            result.candidate_id,
            result.confidence,
        )
        return DiscoveryResult(
            archive_id=result.candidate_id,
            confidence=result.confidence,
            source=DiscoverySource.DISCOVERY,
        )

    def set_manual_mapping(
        self,
        primary_id: str,
        archive_id: str,
        metadata: dict | None = None,
    ) -> GameIdMapping:
        """Store an operator-chosen archive id.

        Args:
            primary_id: Primary game id
            archive_id: Archive game id
            metadata: Optional home_team, away_team, game_date

        Returns:
            Stored mapping (confidence 1.0, match_method 'manual')
        """
        if not primary_id or not archive_id:
            raise ValueError("primary_id and archive_id are required")

        metadata = metadata or {}
        with self._db() as conn:
            mapping = mappings.save_mapping(
                conn,
                GameIdMapping(
                    primary_id=str(primary_id),
                    archive_id=str(archive_id),
                    home_team=metadata.get("home_team") or UNKNOWN_TEAM,
                    away_team=metadata.get("away_team") or UNKNOWN_TEAM,
                    game_date=metadata.get("game_date") or date.today().isoformat(),
                    confidence=MANUAL_CONFIDENCE,
                    match_method="manual",
                ),
            )

        logger.info("[DISCOVERY] Manual mapping %s -> %s", primary_id, archive_id)
        return mapping

    def get_mapping(self, primary_id: str) -> GameIdMapping | None:
        with self._db() as conn:
            return mappings.get_mapping(conn, primary_id)

    def get_low_confidence_mappings(
        self, threshold: float = mappings.LOW_CONFIDENCE_THRESHOLD
    ) -> list[GameIdMapping]:
        """Discovered mappings worth a manual look."""
        with self._db() as conn:
            return mappings.get_low_confidence_mappings(conn, threshold)
