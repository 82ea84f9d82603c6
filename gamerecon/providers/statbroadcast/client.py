"""StatBroadcast archive client.

Two operations, both paced and retried by RateLimitedFetcher:
- search_games(): find archive games on a date for a pair of teams by
  scraping the schedule page of whichever team the directory knows
- fetch_document(): download the archived bbgame XML for a game id

Configuration via environment variables:
    STATBROADCAST_BASE_URL: Schedule site (default: https://www.statbroadcast.com)
    STATBROADCAST_ARCHIVE_URL: Document archive (default: http://archive.statbroadcast.com)
"""

import logging
import os
from collections.abc import Callable

from gamerecon.core.errors import FetchTerminalError
from gamerecon.core.types import ArchiveCandidate
from gamerecon.database.archive_teams import find_team_gid
from gamerecon.providers.fetcher import RateLimitedFetcher
from gamerecon.providers.statbroadcast.schedule import ScheduleEntry, parse_schedule_html

logger = logging.getLogger(__name__)

STATBROADCAST_BASE_URL = os.environ.get(
    "STATBROADCAST_BASE_URL", "https://www.statbroadcast.com"
).rstrip("/")
STATBROADCAST_ARCHIVE_URL = os.environ.get(
    "STATBROADCAST_ARCHIVE_URL", "http://archive.statbroadcast.com"
).rstrip("/")

SCHEDULE_PATH = "/events/schedule.php"


class StatBroadcastClient:
    """Archive source client.

    Usage:
        client = StatBroadcastClient(fetcher, db_factory=get_db)
        candidates = client.search_games("2024-11-15", "Kansas", "Duke")
        xml = client.fetch_document(candidates[0].id)
    """

    def __init__(
        self,
        fetcher: RateLimitedFetcher,
        db_factory: Callable | None = None,
        sport: str = "mens-college-basketball",
        base_url: str = STATBROADCAST_BASE_URL,
        archive_url: str = STATBROADCAST_ARCHIVE_URL,
    ):
        """Initialize client.

        Args:
            fetcher: Shared rate-limited fetcher
            db_factory: Returns a connection context manager for the team
                directory; without it search_games() finds nothing
            sport: Directory sport key
            base_url: Schedule site root
            archive_url: Document archive root
        """
        self._fetcher = fetcher
        self._db = db_factory
        self._sport = sport
        self._base_url = base_url.rstrip("/")
        self._archive_url = archive_url.rstrip("/")

    def document_url(self, archive_id: str) -> str:
        return f"{self._archive_url}/{archive_id}.xml"

    def fetch_document(self, archive_id: str) -> str:
        """Fetch the bbgame XML for an archive game id.

        Raises:
            FetchTerminalError: id is not numeric, unknown (404/redirect) or quota exhausted
            FetchFailedError: transient failure on every attempt
        """
        archive_id = str(archive_id).strip()
        if not archive_id.isdigit():
            raise FetchTerminalError(f"Invalid archive game id: {archive_id!r}")

        xml = self._fetcher.fetch(self.document_url(archive_id))
        logger.debug("[STATBROADCAST] Fetched game %s (%d chars)", archive_id, len(xml))
        return xml

    def get_team_schedule(
        self,
        gid: str,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[ScheduleEntry]:
        """Games on a team's schedule page, optionally limited to a date range.

        An unknown gid (404 or redirect) yields an empty schedule.
        """
        url = f"{self._base_url}{SCHEDULE_PATH}"
        try:
            html = self._fetcher.fetch(url, params={"gid": gid})
        except FetchTerminalError as e:
            logger.warning("[STATBROADCAST] Schedule unavailable for gid=%s: %s", gid, e)
            return []

        entries = parse_schedule_html(html)
        if start_date or end_date:
            entries = [
                e
                for e in entries
                if e.date
                and (not start_date or e.date >= start_date)
                and (not end_date or e.date <= end_date)
            ]

        logger.info("[STATBROADCAST] gid=%s schedule: %d games", gid, len(entries))
        return entries

    def search_games(
        self,
        date: str,
        home_team: str,
        away_team: str,
        home_team_id: str | None = None,
        away_team_id: str | None = None,
    ) -> list[ArchiveCandidate]:
        """Archive games on a date that may be home_team vs away_team.

        Looks up the home team in the directory first, then the away team,
        and reads that team's schedule. Candidates carry the archive's own
        spellings; scoring them is the matcher's job.
        """
        if self._db is None:
            logger.debug("[STATBROADCAST] No team directory configured")
            return []

        for team_name, team_id in ((home_team, home_team_id), (away_team, away_team_id)):
            with self._db() as conn:
                gid = find_team_gid(conn, team_name, team_id, sport=self._sport)
                directory_name = self._directory_name(conn, gid) if gid else None
            if not gid:
                continue

            entries = self.get_team_schedule(gid, start_date=date, end_date=date)
            candidates = self._to_candidates(entries, directory_name or team_name, date)
            logger.debug(
                "[STATBROADCAST] %s vs %s on %s: %d candidates via gid=%s",
                away_team,
                home_team,
                date,
                len(candidates),
                gid,
            )
            return candidates

        logger.info(
            "[STATBROADCAST] Neither %s nor %s is in the team directory", home_team, away_team
        )
        return []

    def _directory_name(self, conn, gid: str) -> str | None:
        cursor = conn.execute("SELECT team_name FROM archive_teams WHERE gid = ?", (gid,))
        row = cursor.fetchone()
        return row["team_name"] if row else None

    def _to_candidates(
        self, entries: list[ScheduleEntry], team_name: str, date: str
    ) -> list[ArchiveCandidate]:
        candidates = []
        for entry in entries:
            if entry.date != date or not entry.opponent or entry.is_home is None:
                continue
            if entry.is_home:
                home, away = team_name, entry.opponent
            else:
                home, away = entry.opponent, team_name
            candidates.append(
                ArchiveCandidate(id=entry.game_id, home_team=home, away_team=away, date=entry.date)
            )
        return candidates
