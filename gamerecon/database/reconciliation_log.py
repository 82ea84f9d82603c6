"""Reconciliation run log.

CRUD operations for the reconciliation_log table. A run row is created in
'running' state and updated exactly once when it completes or fails.
"""

import logging
import uuid
from datetime import datetime
from sqlite3 import Connection

from gamerecon.core.types import ReconciliationRun, RunStatus

logger = logging.getLogger(__name__)

DEFAULT_DATA_SOURCES = "ESPN,StatBroadcast"


def start_reconciliation(
    conn: Connection,
    date_range_start: str,
    date_range_end: str,
    triggered_by: str = "manual",
) -> ReconciliationRun:
    """Create a run in 'running' state."""
    run = ReconciliationRun(
        id=str(uuid.uuid4()),
        started_at=datetime.now(),
        date_range_start=date_range_start,
        date_range_end=date_range_end,
        triggered_by=triggered_by,
    )
    conn.execute(
        """INSERT INTO reconciliation_log
           (id, started_at, date_range_start, date_range_end, triggered_by, status)
           VALUES (?, ?, ?, ?, ?, ?)""",
        (
            run.id,
            run.started_at.isoformat(),
            run.date_range_start,
            run.date_range_end,
            run.triggered_by,
            RunStatus.RUNNING.value,
        ),
    )
    logger.debug(
        "[RUNLOG] Started %s (%s to %s, by %s)",
        run.id,
        date_range_start,
        date_range_end,
        triggered_by,
    )
    return run


def complete_reconciliation(
    conn: Connection,
    run_id: str,
    games_found: int,
    games_processed: int,
    games_failed: int,
    data_sources: str = DEFAULT_DATA_SOURCES,
) -> bool:
    """Mark a running run completed with its counts."""
    cursor = conn.execute(
        """UPDATE reconciliation_log
           SET status = ?, completed_at = ?, games_found = ?, games_processed = ?,
               games_failed = ?, data_sources = ?
           WHERE id = ? AND status = ?""",
        (
            RunStatus.COMPLETED.value,
            datetime.now().isoformat(),
            games_found,
            games_processed,
            games_failed,
            data_sources,
            run_id,
            RunStatus.RUNNING.value,
        ),
    )
    if cursor.rowcount == 0:
        logger.warning("[RUNLOG] Run %s not running, completion ignored", run_id)
        return False
    return True


def fail_reconciliation(conn: Connection, run_id: str, error_message: str) -> bool:
    """Mark a running run failed."""
    cursor = conn.execute(
        """UPDATE reconciliation_log
           SET status = ?, completed_at = ?, error_message = ?
           WHERE id = ? AND status = ?""",
        (
            RunStatus.FAILED.value,
            datetime.now().isoformat(),
            error_message,
            run_id,
            RunStatus.RUNNING.value,
        ),
    )
    if cursor.rowcount == 0:
        logger.warning("[RUNLOG] Run %s not running, failure ignored", run_id)
        return False
    return True


def get_reconciliation(conn: Connection, run_id: str) -> ReconciliationRun | None:
    cursor = conn.execute("SELECT * FROM reconciliation_log WHERE id = ?", (run_id,))
    row = cursor.fetchone()
    return ReconciliationRun.from_row(row) if row else None


def get_recent_reconciliations(conn: Connection, limit: int = 10) -> list[ReconciliationRun]:
    """Newest runs first."""
    cursor = conn.execute(
        "SELECT * FROM reconciliation_log ORDER BY started_at DESC LIMIT ?",
        (limit,),
    )
    return [ReconciliationRun.from_row(row) for row in cursor.fetchall()]


def get_reconciliations_by_status(
    conn: Connection, status: RunStatus | str, limit: int = 50
) -> list[ReconciliationRun]:
    status_value = RunStatus(status).value
    cursor = conn.execute(
        """SELECT * FROM reconciliation_log
           WHERE status = ?
           ORDER BY started_at DESC
           LIMIT ?""",
        (status_value, limit),
    )
    return [ReconciliationRun.from_row(row) for row in cursor.fetchall()]


def get_reconciliation_stats(conn: Connection) -> dict:
    """Aggregate counts across all runs.

    Returns:
        Dict with total/completed/failed/running runs, game totals and
        success_rate (percent of attempted games processed, 0 when none)
    """
    cursor = conn.execute(
        """SELECT
               COUNT(*) AS total_runs,
               SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) AS completed_runs,
               SUM(CASE WHEN status = 'failed' THEN 1 ELSE 0 END) AS failed_runs,
               SUM(CASE WHEN status = 'running' THEN 1 ELSE 0 END) AS running_runs,
               COALESCE(SUM(games_found), 0) AS total_games_found,
               COALESCE(SUM(games_processed), 0) AS total_games_processed,
               COALESCE(SUM(games_failed), 0) AS total_games_failed
           FROM reconciliation_log"""
    )
    row = cursor.fetchone()
    stats = {key: (row[key] or 0) for key in row.keys()}

    attempted = stats["total_games_processed"] + stats["total_games_failed"]
    stats["success_rate"] = (
        round(stats["total_games_processed"] / attempted * 100, 2) if attempted else 0.0
    )
    return stats
