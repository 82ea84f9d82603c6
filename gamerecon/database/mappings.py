"""Game id mapping operations.

CRUD operations for the game_id_mappings table. One row per primary game
id; saving the same primary id again updates the row in place.
"""

import logging
from datetime import datetime
from sqlite3 import Connection

from gamerecon.core.types import DATA_QUALITY_VALUES, MATCH_METHODS, GameIdMapping

logger = logging.getLogger(__name__)

# Mappings below this confidence are surfaced for operator review
LOW_CONFIDENCE_THRESHOLD = 0.8


def get_mapping(conn: Connection, primary_id: str) -> GameIdMapping | None:
    """Get the mapping for a primary game id."""
    cursor = conn.execute(
        "SELECT * FROM game_id_mappings WHERE primary_id = ?",
        (primary_id,),
    )
    row = cursor.fetchone()
    return GameIdMapping.from_row(row) if row else None


def get_mapping_by_archive_id(conn: Connection, archive_id: str) -> GameIdMapping | None:
    """Reverse lookup. Returns the oldest mapping if several share an archive id."""
    cursor = conn.execute(
        """SELECT * FROM game_id_mappings
           WHERE archive_id = ?
           ORDER BY discovered_at ASC
           LIMIT 1""",
        (archive_id,),
    )
    row = cursor.fetchone()
    return GameIdMapping.from_row(row) if row else None


def get_mappings_by_date(conn: Connection, game_date: str) -> list[GameIdMapping]:
    """Get all mappings for a game date (YYYY-MM-DD)."""
    cursor = conn.execute(
        """SELECT * FROM game_id_mappings
           WHERE game_date = ?
           ORDER BY primary_id""",
        (game_date,),
    )
    return [GameIdMapping.from_row(row) for row in cursor.fetchall()]


def get_low_confidence_mappings(
    conn: Connection,
    threshold: float = LOW_CONFIDENCE_THRESHOLD,
    limit: int = 100,
) -> list[GameIdMapping]:
    """Get discovered mappings that should be reviewed by hand.

    Manual mappings are never returned.

    Args:
        conn: Database connection
        threshold: Confidence strictly below this is considered low
        limit: Maximum rows to return

    Returns:
        Mappings ordered by confidence, weakest first
    """
    cursor = conn.execute(
        """SELECT * FROM game_id_mappings
           WHERE confidence < ? AND match_method != 'manual'
           ORDER BY confidence ASC, game_date DESC
           LIMIT ?""",
        (threshold, limit),
    )
    return [GameIdMapping.from_row(row) for row in cursor.fetchall()]


def save_mapping(conn: Connection, mapping: GameIdMapping) -> GameIdMapping:
    """Insert or update a mapping.

    A new row gets discovered_at; an existing row keeps its discovered_at
    and gets last_fetched stamped.

    Returns:
        The stored mapping
    """
    if mapping.match_method not in MATCH_METHODS:
        raise ValueError(f"Invalid match method: {mapping.match_method}")
    if not 0.0 <= mapping.confidence <= 1.0:
        raise ValueError(f"Confidence out of range: {mapping.confidence}")

    now = datetime.now().isoformat()
    existing = get_mapping(conn, mapping.primary_id)

    if existing:
        conn.execute(
            """UPDATE game_id_mappings
               SET archive_id = ?, home_team = ?, away_team = ?, game_date = ?,
                   confidence = ?, match_method = ?, last_fetched = ?
               WHERE primary_id = ?""",
            (
                mapping.archive_id,
                mapping.home_team,
                mapping.away_team,
                mapping.game_date,
                mapping.confidence,
                mapping.match_method,
                now,
                mapping.primary_id,
            ),
        )
        logger.debug(
            "[MAPPING] Updated %s -> %s (%s, %.2f)",
            mapping.primary_id,
            mapping.archive_id,
            mapping.match_method,
            mapping.confidence,
        )
    else:
        conn.execute(
            """INSERT INTO game_id_mappings
               (primary_id, archive_id, home_team, away_team, game_date,
                confidence, match_method, data_quality, discovered_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                mapping.primary_id,
                mapping.archive_id,
                mapping.home_team,
                mapping.away_team,
                mapping.game_date,
                mapping.confidence,
                mapping.match_method,
                mapping.data_quality,
                now,
            ),
        )
        logger.debug(
            "[MAPPING] Created %s -> %s (%s, %.2f)",
            mapping.primary_id,
            mapping.archive_id,
            mapping.match_method,
            mapping.confidence,
        )

    return get_mapping(conn, mapping.primary_id)


def update_last_fetched(conn: Connection, primary_id: str) -> bool:
    """Stamp the time the archive document was last fetched."""
    cursor = conn.execute(
        "UPDATE game_id_mappings SET last_fetched = ? WHERE primary_id = ?",
        (datetime.now().isoformat(), primary_id),
    )
    return cursor.rowcount > 0


def update_data_quality(conn: Connection, primary_id: str, quality: str) -> bool:
    """Record how complete the fetched document was.

    Args:
        conn: Database connection
        primary_id: Primary game id
        quality: One of 'full', 'partial', 'none'

    Returns:
        True if a mapping was updated
    """
    if quality not in DATA_QUALITY_VALUES:
        raise ValueError(f"Invalid data quality: {quality}")

    cursor = conn.execute(
        "UPDATE game_id_mappings SET data_quality = ? WHERE primary_id = ?",
        (quality, primary_id),
    )
    if cursor.rowcount:
        logger.debug("[MAPPING] %s data quality=%s", primary_id, quality)
    return cursor.rowcount > 0


def count_mappings(conn: Connection) -> dict:
    """Mapping counts by match method."""
    cursor = conn.execute(
        """SELECT match_method, COUNT(*) AS count
           FROM game_id_mappings GROUP BY match_method"""
    )
    counts = {method: 0 for method in MATCH_METHODS}
    for row in cursor.fetchall():
        counts[row["match_method"]] = row["count"]
    counts["total"] = sum(counts.values())
    return counts
