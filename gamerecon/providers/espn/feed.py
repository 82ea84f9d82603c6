"""Primary schedule feed built on the ESPN scoreboard.

Turns per-day scoreboard responses into ExternalGame records. Game dates
are the US/Eastern calendar day of tipoff, which is how both ESPN's
scoreboard and the archive date games; a 9pm ET tip is stored in UTC as
the next day.
"""

import logging
from datetime import date, timedelta

from dateutil import parser
from pytz import UTC, timezone

from gamerecon.core.errors import PrimaryFeedError
from gamerecon.core.types import ExternalGame, TeamRef
from gamerecon.providers.espn.client import ESPNClient

logger = logging.getLogger(__name__)

DEFAULT_LEAGUE = "mens-college-basketball"
GAME_TIMEZONE = timezone("America/New_York")


def _daterange(start: date, end: date):
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def _local_game_date(event_date: str | None, fallback: date) -> str:
    if not event_date:
        return fallback.isoformat()
    try:
        start = parser.isoparse(event_date)
    except ValueError:
        return fallback.isoformat()
    if start.tzinfo is None:
        start = UTC.localize(start)
    return start.astimezone(GAME_TIMEZONE).date().isoformat()


def _team_ref(competitor: dict) -> TeamRef:
    team = competitor.get("team") or {}
    # "Kansas" rather than "Kansas Jayhawks"; archive names carry no mascot
    name = team.get("location") or team.get("displayName") or team.get("name") or ""
    return TeamRef(
        id=str(team.get("id", "")),
        name=name,
        abbreviation=team.get("abbreviation"),
    )


def _score(competitor: dict) -> int | None:
    value = competitor.get("score")
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_event(event: dict, league: str, fallback_date: date) -> ExternalGame | None:
    """One scoreboard event to an ExternalGame; None if it lacks two sides."""
    competitions = event.get("competitions") or []
    if not competitions or not event.get("id"):
        return None
    competition = competitions[0]

    home = away = None
    for competitor in competition.get("competitors") or []:
        if competitor.get("homeAway") == "home":
            home = competitor
        elif competitor.get("homeAway") == "away":
            away = competitor
    if home is None or away is None:
        logger.debug("[ESPN] Event %s missing home/away competitor", event.get("id"))
        return None

    status = (event.get("status") or {}).get("type") or {}
    return ExternalGame(
        id=str(event["id"]),
        sport=league,
        date=_local_game_date(event.get("date"), fallback_date),
        home_team=_team_ref(home),
        away_team=_team_ref(away),
        neutral_site=bool(competition.get("neutralSite", False)),
        completed=bool(status.get("completed", False)),
        home_score=_score(home),
        away_score=_score(away),
    )


class EspnScheduleFeed:
    """getGamesByDateRange over the ESPN scoreboard."""

    def __init__(self, client: ESPNClient | None = None, league: str = DEFAULT_LEAGUE):
        self._client = client or ESPNClient()
        self._league = league

    def get_games_for_date(self, day: date) -> list[ExternalGame]:
        """Games on one scoreboard day.

        Raises:
            PrimaryFeedError: the scoreboard could not be fetched
        """
        data = self._client.get_scoreboard(self._league, day.strftime("%Y%m%d"))
        if data is None:
            raise PrimaryFeedError(f"ESPN scoreboard unavailable for {day.isoformat()}")

        games = []
        for event in data.get("events") or []:
            game = parse_event(event, self._league, day)
            if game:
                games.append(game)
        return games

    def get_games_by_date_range(self, start: date, end: date) -> list[ExternalGame]:
        """All games from start to end inclusive, deduplicated by id.

        Raises:
            PrimaryFeedError: any day in the range could not be fetched
        """
        games: list[ExternalGame] = []
        seen: set[str] = set()
        for day in _daterange(start, end):
            for game in self.get_games_for_date(day):
                if game.id not in seen:
                    seen.add(game.id)
                    games.append(game)

        logger.info(
            "[ESPN] %d %s games from %s to %s",
            len(games),
            self._league,
            start.isoformat(),
            end.isoformat(),
        )
        return games
