"""Game reconciliation.

Finds primary-feed games in a date range that are missing from the
historical store and backfills them from the archive:

    primary feed ─┐
                  ├─ missing ids ─> discover ─> fetch ─> parse ─> save
    history ──────┘

Games are processed one at a time with a fixed delay between them. Every
per-game problem (no archive id, fetch failure, bad document, duplicate
row) becomes a BackfillOutcome and the run continues. Only infrastructure
failures end a run; the run log row is then marked failed and the error
re-raised.
"""

import logging
import sqlite3
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Protocol

from gamerecon.consumers.matching.discovery import DiscoveryService
from gamerecon.core.errors import (
    FetchFailedError,
    FetchTerminalError,
    InfrastructureError,
    MalformedDocumentError,
    ReconciliationCancelledError,
)
from gamerecon.core.types import (
    BackfillOutcome,
    BackfillStatus,
    ExternalGame,
    HistoricalGame,
    ParsedGame,
    ReconciliationResult,
    SaveOutcome,
)
from gamerecon.database import historical_games, mappings, reconciliation_log
from gamerecon.providers.statbroadcast.parser import StatBroadcastParser, assess_data_quality
from gamerecon.utilities.batching import BatchBuffer

logger = logging.getLogger(__name__)

DEFAULT_BATCH_DELAY = 1.0
DEFAULT_LOOKBACK_DAYS = 7
DEFAULT_UPDATE_BATCH_SIZE = 10

# Bulk backfills outside a run may overlap this many games
MAX_CONCURRENT_BACKFILLS = 3

DATA_SOURCES = "ESPN,StatBroadcast"


class ScheduleFeed(Protocol):
    def get_games_by_date_range(self, start: date, end: date) -> list[ExternalGame]: ...


class DocumentSource(Protocol):
    def fetch_document(self, archive_id: str) -> str: ...


@dataclass
class GameUpdate:
    """A freshly backfilled game handed to downstream consumers."""

    primary_id: str
    archive_id: str
    game_date: str
    sport: str
    season: int | None
    home_team_id: str | None
    away_team_id: str | None
    is_neutral_site: bool
    parsed: ParsedGame = field(repr=False)


def build_historical_game(
    game: ExternalGame, archive_id: str, parsed: ParsedGame
) -> HistoricalGame:
    """Project a parsed document onto the historical_games row."""
    now = datetime.now()
    home = parsed.home
    visitor = parsed.visitor
    return HistoricalGame(
        id=game.id,
        archive_game_id=archive_id,
        sport=game.sport,
        season=_season(game.date),
        game_date=game.date,
        home_team_id=game.home_team.id or parsed.metadata.home_id,
        away_team_id=game.away_team.id or parsed.metadata.visitor_id,
        home_score=home.score if home else 0,
        away_score=visitor.score if visitor else 0,
        is_neutral_site=parsed.metadata.is_neutral_site,
        home_fg_pct=home.stats.fg_pct if home else None,
        away_fg_pct=visitor.stats.fg_pct if visitor else None,
        home_3pt_pct=home.stats.fg3_pct if home else None,
        away_3pt_pct=visitor.stats.fg3_pct if visitor else None,
        home_ft_pct=home.stats.ft_pct if home else None,
        away_ft_pct=visitor.stats.ft_pct if visitor else None,
        home_rebounds=home.stats.rebounds if home else None,
        away_rebounds=visitor.stats.rebounds if visitor else None,
        home_turnovers=home.stats.turnovers if home else None,
        away_turnovers=visitor.stats.turnovers if visitor else None,
        home_assists=home.stats.assists if home else None,
        away_assists=visitor.stats.assists if visitor else None,
        data_source="statbroadcast",
        has_play_by_play=parsed.has_play_by_play,
        processed_at=now,
        backfilled=True,
        backfill_date=now,
    )


def _season(game_date: str) -> int | None:
    try:
        return int(game_date[:4])
    except (TypeError, ValueError):
        return None


class GameReconciliationService:
    """Reconciles the primary feed against the historical store.

    Usage:
        service = GameReconciliationService(feed, archive, discovery, db_factory=get_db)
        result = service.reconcile(date(2024, 11, 4), date(2024, 11, 10))
    """

    def __init__(
        self,
        feed: ScheduleFeed,
        archive: DocumentSource,
        discovery: DiscoveryService,
        db_factory: Callable,
        parser: StatBroadcastParser | None = None,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        update_consumer: Callable[[list[GameUpdate]], None] | None = None,
        update_batch_size: int = DEFAULT_UPDATE_BATCH_SIZE,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize service.

        Args:
            feed: Primary schedule feed
            archive: Archive document source (StatBroadcastClient)
            discovery: Game id discovery service
            db_factory: Returns a connection context manager
            parser: Document parser
            batch_delay: Seconds between games in a run
            update_consumer: Receives backfilled games in batches
            update_batch_size: Games per update batch
            sleep: Sleep used between games when no cancel event is given
        """
        self._feed = feed
        self._archive = archive
        self._discovery = discovery
        self._db = db_factory
        self._parser = parser or StatBroadcastParser()
        self._batch_delay = batch_delay
        self._sleep = sleep
        self._update_consumer = update_consumer
        self._updates_enabled = update_consumer is not None
        self._updates: BatchBuffer[GameUpdate] | None = None
        if update_consumer is not None:
            self._updates = BatchBuffer(update_consumer, capacity=update_batch_size)

    # =========================================================================
    # Runs
    # =========================================================================

    def reconcile(
        self,
        start: date,
        end: date,
        triggered_by: str = "manual",
        cancel_event: threading.Event | None = None,
    ) -> ReconciliationResult:
        """Backfill every primary game in [start, end] missing from history.

        Raises:
            ReconciliationCancelledError: cancel_event was set mid-run
            InfrastructureError: primary feed unavailable
            sqlite3.Error: historical store or run log unavailable
        """
        if end < start:
            raise ValueError(f"end date {end} is before start date {start}")

        with self._db() as conn:
            run = reconciliation_log.start_reconciliation(
                conn, start.isoformat(), end.isoformat(), triggered_by
            )

        logger.info(
            "[RECONCILE] Run %s started: %s to %s (by %s)",
            run.id,
            start.isoformat(),
            end.isoformat(),
            triggered_by,
        )

        try:
            primary_games = self._feed.get_games_by_date_range(start, end)
            with self._db() as conn:
                stored = historical_games.get_games_by_date_range(
                    conn, start.isoformat(), end.isoformat()
                )

            missing = self.identify_missing_games(primary_games, stored)
            logger.info(
                "[RECONCILE] Run %s: %d primary games, %d stored, %d missing",
                run.id,
                len(primary_games),
                len(stored),
                len(missing),
            )

            outcomes = self.backfill_batch(missing, cancel_event)
            self.flush_updates()

            processed = sum(1 for o in outcomes if o.success)
            failed = len(outcomes) - processed

            with self._db() as conn:
                reconciliation_log.complete_reconciliation(
                    conn,
                    run.id,
                    games_found=len(primary_games),
                    games_processed=processed,
                    games_failed=failed,
                    data_sources=DATA_SOURCES,
                )
        except Exception as e:
            if isinstance(e, ReconciliationCancelledError):
                logger.warning("[RECONCILE] Run %s cancelled: %s", run.id, e)
            else:
                logger.exception("[RECONCILE] Run %s failed: %s", run.id, e)
            self._record_failure(run.id, str(e))
            raise

        result = ReconciliationResult(
            reconciliation_id=run.id,
            games_found=len(primary_games),
            missing_games=len(missing),
            processed=processed,
            failed=failed,
            details=outcomes,
        )
        logger.info(
            "[RECONCILE] Run %s completed: found=%d missing=%d processed=%d failed=%d",
            run.id,
            result.games_found,
            result.missing_games,
            result.processed,
            result.failed,
        )
        return result

    def reconcile_recent(
        self,
        days: int = DEFAULT_LOOKBACK_DAYS,
        triggered_by: str = "startup",
        cancel_event: threading.Event | None = None,
    ) -> ReconciliationResult:
        """Reconcile the last `days` days up to today."""
        end = date.today()
        start = end - timedelta(days=days)
        return self.reconcile(start, end, triggered_by, cancel_event)

    def _record_failure(self, run_id: str, message: str) -> None:
        try:
            with self._db() as conn:
                reconciliation_log.fail_reconciliation(conn, run_id, message)
        except sqlite3.Error as log_error:
            logger.error("[RECONCILE] Could not mark run %s failed: %s", run_id, log_error)

    @staticmethod
    def identify_missing_games(
        primary_games: list[ExternalGame], stored_games: list[HistoricalGame]
    ) -> list[ExternalGame]:
        """Primary games whose id is not stored, in feed order."""
        stored_ids = {g.id for g in stored_games}
        return [g for g in primary_games if g.id not in stored_ids]

    # =========================================================================
    # Backfill
    # =========================================================================

    def backfill_batch(
        self,
        games: list[ExternalGame],
        cancel_event: threading.Event | None = None,
    ) -> list[BackfillOutcome]:
        """Backfill games one at a time with batch_delay between them.

        Raises:
            ReconciliationCancelledError: cancel_event set before or between games
        """
        outcomes: list[BackfillOutcome] = []

        for index, game in enumerate(games):
            if cancel_event is not None and cancel_event.is_set():
                raise ReconciliationCancelledError(
                    f"Cancelled after {index} of {len(games)} games"
                )

            outcomes.append(self.backfill_game(game))

            if index < len(games) - 1 and self._batch_delay > 0:
                if cancel_event is not None:
                    if cancel_event.wait(self._batch_delay):
                        raise ReconciliationCancelledError(
                            f"Cancelled after {index + 1} of {len(games)} games"
                        )
                else:
                    self._sleep(self._batch_delay)

        processed = sum(1 for o in outcomes if o.success)
        logger.info(
            "[RECONCILE] Batch done: %d games, %d processed, %d failed",
            len(games),
            processed,
            len(outcomes) - processed,
        )
        return outcomes

    def backfill_game(self, game: ExternalGame, document: str | None = None) -> BackfillOutcome:
        """Discover, fetch, parse and store one game.

        A pre-fetched document skips the archive fetch. Never raises for
        per-game problems; infrastructure failures propagate.
        """
        logger.info(
            "[RECONCILE] Backfilling %s: %s @ %s on %s",
            game.id,
            game.away_team.name,
            game.home_team.name,
            game.date,
        )
        try:
            return self._backfill_game(game, document)
        except (InfrastructureError, sqlite3.OperationalError):
            raise
        except Exception as e:
            logger.exception("[RECONCILE] Unexpected error backfilling %s: %s", game.id, e)
            return BackfillOutcome.failed(
                game.id, BackfillStatus.ERROR, f"Unexpected error: {e}"
            )

    def _backfill_game(self, game: ExternalGame, document: str | None) -> BackfillOutcome:
        # Discovery
        try:
            discovery = self._discovery.discover(game)
        except FetchTerminalError as e:
            return self._fetch_failure(game, None, BackfillStatus.FETCH_TERMINAL, e)
        except FetchFailedError as e:
            return self._fetch_failure(game, None, BackfillStatus.FETCH_FAILED, e)

        if discovery is None:
            logger.warning("[RECONCILE] Archive id not found for %s", game.id)
            return BackfillOutcome.failed(
                game.id, BackfillStatus.NOT_FOUND, "Archive id not found"
            )
        archive_id = discovery.archive_id

        # Fetch
        if document is None:
            try:
                document = self._archive.fetch_document(archive_id)
            except FetchTerminalError as e:
                return self._fetch_failure(game, archive_id, BackfillStatus.FETCH_TERMINAL, e)
            except FetchFailedError as e:
                return self._fetch_failure(game, archive_id, BackfillStatus.FETCH_FAILED, e)

        # Parse
        try:
            parsed = self._parser.parse(document)
        except MalformedDocumentError as e:
            logger.warning("[RECONCILE] Bad document %s for %s: %s", archive_id, game.id, e)
            with self._db() as conn:
                mappings.update_data_quality(conn, game.id, "none")
            return BackfillOutcome.failed(
                game.id,
                BackfillStatus.MALFORMED_DOCUMENT,
                f"Failed to parse document: {e}",
                archive_id,
            )

        # Save
        historical = build_historical_game(game, archive_id, parsed)
        with self._db() as conn:
            mappings.update_last_fetched(conn, game.id)
            mappings.update_data_quality(conn, game.id, assess_data_quality(parsed))
            saved = historical_games.save_game(conn, historical)

        if saved == SaveOutcome.DUPLICATE:
            return BackfillOutcome.failed(
                game.id,
                BackfillStatus.DUPLICATE,
                "Duplicate game (already in database)",
                archive_id,
            )

        self._queue_update(game, archive_id, historical, parsed)

        logger.info(
            "[RECONCILE] Backfilled %s from %s: %d-%d (confidence %.2f)",
            game.id,
            archive_id,
            historical.home_score,
            historical.away_score,
            discovery.confidence,
        )
        return BackfillOutcome.processed(game.id, archive_id, discovery.confidence)

    def _fetch_failure(
        self,
        game: ExternalGame,
        archive_id: str | None,
        status: BackfillStatus,
        error: Exception,
    ) -> BackfillOutcome:
        logger.warning("[RECONCILE] Fetch failed for %s (%s): %s", game.id, status.value, error)
        return BackfillOutcome.failed(game.id, status, f"Failed to fetch: {error}", archive_id)

    def backfill_concurrently(
        self,
        games: list[ExternalGame],
        max_workers: int = MAX_CONCURRENT_BACKFILLS,
    ) -> list[BackfillOutcome]:
        """Backfill independent games a few at a time.

        Archive requests still pass through the shared rate limiter, so this
        overlaps parsing and database work, not network pacing. Outcomes are
        returned in input order.
        """
        results: dict[str, BackfillOutcome] = {}
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(self.backfill_game, game): game for game in games}
            for future in as_completed(futures):
                game = futures[future]
                try:
                    results[game.id] = future.result()
                except Exception as e:
                    logger.error("[RECONCILE] Backfill of %s aborted: %s", game.id, e)
                    results[game.id] = BackfillOutcome.failed(
                        game.id, BackfillStatus.ERROR, f"Unexpected error: {e}"
                    )
        self.flush_updates()
        return [results[game.id] for game in games]

    # =========================================================================
    # Downstream updates
    # =========================================================================

    def _queue_update(
        self,
        game: ExternalGame,
        archive_id: str,
        historical: HistoricalGame,
        parsed: ParsedGame,
    ) -> None:
        if not self._updates_enabled or self._updates is None:
            return
        self._updates.push(
            GameUpdate(
                primary_id=game.id,
                archive_id=archive_id,
                game_date=game.date,
                sport=game.sport,
                season=historical.season,
                home_team_id=historical.home_team_id,
                away_team_id=historical.away_team_id,
                is_neutral_site=historical.is_neutral_site,
                parsed=parsed,
            )
        )

    def flush_updates(self) -> int:
        """Hand any buffered games to the update consumer."""
        if self._updates is None:
            return 0
        count = self._updates.flush()
        if count:
            logger.info("[RECONCILE] Flushed %d game updates", count)
        return count

    def configure_updates(
        self,
        enabled: bool | None = None,
        batch_size: int | None = None,
    ) -> None:
        """Change downstream update settings; pending updates are flushed first."""
        if batch_size is not None and self._update_consumer is not None:
            self.flush_updates()
            self._updates = BatchBuffer(self._update_consumer, capacity=batch_size)
        if enabled is not None:
            self._updates_enabled = enabled and self._update_consumer is not None
        logger.info(
            "[RECONCILE] Updates enabled=%s batch_size=%s",
            self._updates_enabled,
            self._updates.capacity if self._updates else None,
        )
