"""Historical game operations.

The historical_games table holds one row per backfilled primary game id.
A second insert for an id already present is reported as a duplicate,
never merged.
"""

import logging
import sqlite3
from sqlite3 import Connection

from gamerecon.core.types import HistoricalGame, SaveOutcome

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id",
    "archive_game_id",
    "sport",
    "season",
    "game_date",
    "home_team_id",
    "away_team_id",
    "home_score",
    "away_score",
    "is_neutral_site",
    "home_fg_pct",
    "away_fg_pct",
    "home_3pt_pct",
    "away_3pt_pct",
    "home_ft_pct",
    "away_ft_pct",
    "home_rebounds",
    "away_rebounds",
    "home_turnovers",
    "away_turnovers",
    "home_assists",
    "away_assists",
    "data_source",
    "has_play_by_play",
    "processed_at",
    "backfilled",
    "backfill_date",
)


def get_game(conn: Connection, game_id: str) -> HistoricalGame | None:
    cursor = conn.execute("SELECT * FROM historical_games WHERE id = ?", (game_id,))
    row = cursor.fetchone()
    return HistoricalGame.from_row(row) if row else None


def get_games_by_date_range(conn: Connection, start: str, end: str) -> list[HistoricalGame]:
    """Get games with start <= game_date <= end (YYYY-MM-DD, inclusive)."""
    cursor = conn.execute(
        """SELECT * FROM historical_games
           WHERE game_date >= ? AND game_date <= ?
           ORDER BY game_date, id""",
        (start, end),
    )
    return [HistoricalGame.from_row(row) for row in cursor.fetchall()]


def save_game(conn: Connection, game: HistoricalGame) -> SaveOutcome:
    """Insert a backfilled game.

    Returns:
        SaveOutcome.DUPLICATE if the primary id is already stored
    """
    values = []
    for column in _COLUMNS:
        value = getattr(game, column)
        if hasattr(value, "isoformat"):
            value = value.isoformat()
        values.append(value)

    placeholders = ", ".join("?" for _ in _COLUMNS)
    try:
        conn.execute(
            f"INSERT INTO historical_games ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
            values,
        )
    except sqlite3.IntegrityError as e:
        if "UNIQUE" not in str(e) and "PRIMARY KEY" not in str(e):
            raise
        logger.info("[HISTORY] Game %s already stored, skipping", game.id)
        return SaveOutcome.DUPLICATE

    logger.debug("[HISTORY] Saved game %s (archive %s)", game.id, game.archive_game_id)
    return SaveOutcome.SAVED


def count_games(conn: Connection) -> int:
    cursor = conn.execute("SELECT COUNT(*) FROM historical_games")
    return cursor.fetchone()[0]
