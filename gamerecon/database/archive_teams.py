"""Archive team directory.

Maps team names (and optionally primary-feed team ids) to the archive's
schedule gid. Populated by operators or an import job; read when
searching the archive for a game.
"""

import logging
from dataclasses import dataclass
from sqlite3 import Connection

from gamerecon.utilities.fuzzy_match import TeamNameMatcher

logger = logging.getLogger(__name__)


@dataclass
class ArchiveTeam:
    gid: str
    team_name: str
    primary_team_id: str | None = None
    sport: str = "mens-college-basketball"


def upsert_team(conn: Connection, team: ArchiveTeam) -> None:
    conn.execute(
        """INSERT INTO archive_teams (gid, team_name, primary_team_id, sport, updated_at)
           VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
           ON CONFLICT(gid) DO UPDATE SET
               team_name = excluded.team_name,
               primary_team_id = COALESCE(excluded.primary_team_id, archive_teams.primary_team_id),
               sport = excluded.sport,
               updated_at = CURRENT_TIMESTAMP""",
        (team.gid, team.team_name, team.primary_team_id, team.sport),
    )


def get_all_teams(conn: Connection, sport: str = "mens-college-basketball") -> list[ArchiveTeam]:
    cursor = conn.execute(
        "SELECT gid, team_name, primary_team_id, sport FROM archive_teams WHERE sport = ?",
        (sport,),
    )
    return [
        ArchiveTeam(
            gid=row["gid"],
            team_name=row["team_name"],
            primary_team_id=row["primary_team_id"],
            sport=row["sport"],
        )
        for row in cursor.fetchall()
    ]


def find_team_gid(
    conn: Connection,
    team_name: str,
    primary_team_id: str | None = None,
    sport: str = "mens-college-basketball",
    matcher: TeamNameMatcher | None = None,
) -> str | None:
    """Resolve a team to its archive gid.

    Exact primary team id wins; otherwise the closest directory name above
    the matcher threshold.
    """
    if primary_team_id:
        cursor = conn.execute(
            "SELECT gid FROM archive_teams WHERE primary_team_id = ? AND sport = ?",
            (primary_team_id, sport),
        )
        row = cursor.fetchone()
        if row:
            return row["gid"]

    teams = get_all_teams(conn, sport)
    if not teams:
        return None

    matcher = matcher or TeamNameMatcher()
    result = matcher.best_match(team_name, [t.team_name for t in teams])
    if not result.matched:
        logger.debug("[TEAMS] No archive team for '%s' (best %.2f)", team_name, result.score)
        return None

    for team in teams:
        if team.team_name == result.candidate:
            return team.gid
    return None
