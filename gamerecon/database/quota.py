"""SQLite-backed request quota counts."""

from collections.abc import Callable
from datetime import date


class SqliteQuotaStore:
    """QuotaStore persisted in the request_quota table.

    Opens a short-lived connection per call so it can be shared across
    threads.
    """

    def __init__(self, db_factory: Callable):
        self._db = db_factory

    def get_count(self, source: str, day: date) -> int:
        with self._db() as conn:
            cursor = conn.execute(
                "SELECT request_count FROM request_quota WHERE source = ? AND day = ?",
                (source, day.isoformat()),
            )
            row = cursor.fetchone()
            return row["request_count"] if row else 0

    def increment(self, source: str, day: date) -> int:
        with self._db() as conn:
            conn.execute(
                """INSERT INTO request_quota (source, day, request_count)
                   VALUES (?, ?, 1)
                   ON CONFLICT(source, day) DO UPDATE SET
                       request_count = request_count + 1""",
                (source, day.isoformat()),
            )
            cursor = conn.execute(
                "SELECT request_count FROM request_quota WHERE source = ? AND day = ?",
                (source, day.isoformat()),
            )
            return cursor.fetchone()["request_count"]
