"""StatBroadcast "bbgame" XML parser.

Turns one archived basketball game document into a ParsedGame. Pure
transformation: no network, no retries, same bytes in gives an equal
ParsedGame out.

Document shape (attributes elided):
    <bbgame>
      <venue gameid=".." date=".." homeid=".." visid=".." neutralgame="N">
        <officials text=".."/>
      </venue>
      <status complete="Y" period="2" clock="00:00"/>
      <team vh="V|H" id=".." name="..">
        <linescore score=".."><lineprd prd="1" score=".."/>...</linescore>
        <totals><stats fgm=".." .../><special pts_paint=".." .../></totals>
        <player uni=".." code=".." name="..."><stats tp=".." .../></player>
      </team>
      <plays>
        <period number="1">
          <play action="GOOD" type="3PTR" .../>
          <comment text=".."/>
        </period>
      </plays>
    </bbgame>

Every repeated element goes through _children() so a single child and
many children look the same to the extraction code.
"""

import logging
import xml.etree.ElementTree as ET

from gamerecon.core.errors import MalformedDocumentError
from gamerecon.core.types import (
    AdvancedMetrics,
    DerivedMetrics,
    GameMetadata,
    GameStatus,
    ParsedGame,
    PeriodScore,
    Play,
    PlayerLine,
    PlayerStats,
    TeamBox,
    TeamStats,
)

logger = logging.getLogger(__name__)

ROOT_TAG = "bbgame"

# Player entries with this code are team totals, not people
TEAM_PLAYER_CODE = "TM"

# Free throw weight in possession estimates
FTA_POSSESSION_FACTOR = 0.44


def _children(elem: ET.Element | None, tag: str) -> list[ET.Element]:
    """All direct children named tag; empty when elem is missing."""
    if elem is None:
        return []
    return elem.findall(tag)


def _child(elem: ET.Element | None, tag: str) -> ET.Element | None:
    if elem is None:
        return None
    return elem.find(tag)


def _attr(elem: ET.Element | None, name: str, default: str | None = None) -> str | None:
    """Attribute value with empty strings treated as missing."""
    if elem is None:
        return default
    value = elem.get(name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _int(elem: ET.Element | None, name: str) -> int:
    """Count attribute; missing, non-numeric and negative values become 0."""
    value = _attr(elem, name)
    if value is None:
        return 0
    try:
        return max(0, int(float(value)))
    except ValueError:
        return 0


def _signed_int(elem: ET.Element | None, name: str) -> int:
    value = _attr(elem, name)
    if value is None:
        return 0
    try:
        return int(float(value))
    except ValueError:
        return 0


def _optional_int(elem: ET.Element | None, name: str) -> int | None:
    value = _attr(elem, name)
    if value is None:
        return None
    try:
        return int(float(value))
    except ValueError:
        return None


def _float(elem: ET.Element | None, name: str) -> float:
    value = _attr(elem, name)
    if value is None:
        return 0.0
    try:
        return max(0.0, float(value))
    except ValueError:
        return 0.0


def _rate(numerator: float, denominator: float) -> float:
    """Percent with a zero-denominator guard, rounded to 2 places."""
    if denominator <= 0:
        return 0.0
    return round(numerator / denominator * 100, 2)


def calculate_derived_metrics(stats: TeamStats) -> DerivedMetrics:
    """Efficiency rates from raw counts.

    eFG% = (FGM + 0.5 * 3PM) / FGA
    TS%  = PTS / (2 * (FGA + 0.44 * FTA))
    TOV% = TO / (FGA + 0.44 * FTA + TO)
    """
    possessions_used = stats.fga + FTA_POSSESSION_FACTOR * stats.fta
    return DerivedMetrics(
        effective_fg_pct=_rate(stats.fgm + 0.5 * stats.fg3m, stats.fga),
        true_shooting_pct=_rate(stats.points, 2 * possessions_used),
        turnover_rate=_rate(stats.turnovers, possessions_used + stats.turnovers),
    )


class StatBroadcastParser:
    """Parses bbgame XML documents."""

    def parse(self, document: str | bytes | None) -> ParsedGame:
        """Parse one game document.

        Raises:
            MalformedDocumentError: empty input, invalid XML or wrong root
        """
        root = self._parse_root(document)

        metadata = self._extract_metadata(root)
        status = self._extract_status(root)
        home, visitor = self._extract_teams(root)
        plays = self._extract_plays(root)

        logger.debug(
            "[PARSER] Game %s: %s %d @ %s %d, %d plays",
            metadata.game_id,
            visitor.name if visitor else None,
            visitor.score if visitor else 0,
            home.name if home else None,
            home.score if home else 0,
            len(plays),
        )

        return ParsedGame(
            metadata=metadata,
            status=status,
            home=home,
            visitor=visitor,
            plays=plays,
        )

    def _parse_root(self, document: str | bytes | None) -> ET.Element:
        if document is None:
            raise MalformedDocumentError("Invalid XML data: document is empty")
        if isinstance(document, bytes):
            if not document.strip():
                raise MalformedDocumentError("Invalid XML data: document is empty")
        elif isinstance(document, str):
            if not document.strip():
                raise MalformedDocumentError("Invalid XML data: document is empty")
            # ElementTree rejects str input that carries an encoding declaration
            document = document.encode("utf-8")
        else:
            raise MalformedDocumentError(
                f"Invalid XML data: expected str or bytes, got {type(document).__name__}"
            )

        try:
            root = ET.fromstring(document)
        except ET.ParseError as e:
            raise MalformedDocumentError(f"Invalid XML: {e}") from e

        if root.tag != ROOT_TAG:
            raise MalformedDocumentError(
                f"Invalid XML structure: expected <{ROOT_TAG}> root, got <{root.tag}>"
            )
        return root

    # =========================================================================
    # Game level
    # =========================================================================

    def _extract_metadata(self, root: ET.Element) -> GameMetadata:
        venue = _child(root, "venue")
        return GameMetadata(
            game_id=_attr(venue, "gameid"),
            archive_sbid=_attr(venue, "sbid"),
            competition_id=_attr(venue, "competitionid"),
            competition_name=_attr(venue, "competitionname"),
            date=_attr(venue, "date"),
            location=_attr(venue, "location"),
            time=_attr(venue, "time"),
            start_time=_attr(venue, "start"),
            end_time=_attr(venue, "end"),
            duration=_attr(venue, "duration"),
            attendance=_attr(venue, "attend", "0"),
            neutral_game=_attr(venue, "neutralgame", "N"),
            postseason=_attr(venue, "postseason", "N"),
            visitor_id=_attr(venue, "visid"),
            visitor_name=_attr(venue, "visname"),
            home_id=_attr(venue, "homeid"),
            home_name=_attr(venue, "homename"),
            officials=_attr(_child(venue, "officials"), "text"),
            notes=_attr(venue, "notes"),
        )

    def _extract_status(self, root: ET.Element) -> GameStatus:
        status = _child(root, "status")
        return GameStatus(
            complete=_attr(status, "complete") == "Y",
            period=_int(status, "period"),
            period_type=_attr(status, "periodtype"),
            clock=_attr(status, "clock"),
            running=_attr(status, "running"),
            game_status=_attr(status, "gamestatus"),
        )

    # =========================================================================
    # Teams
    # =========================================================================

    def _extract_teams(self, root: ET.Element) -> tuple[TeamBox | None, TeamBox | None]:
        home = visitor = None
        for team in _children(root, "team"):
            side = _attr(team, "vh")
            if side == "H" and home is None:
                home = self._extract_team(team)
            elif side == "V" and visitor is None:
                visitor = self._extract_team(team)
        return home, visitor

    def _extract_team(self, team: ET.Element) -> TeamBox:
        linescore = _child(team, "linescore")
        totals = _child(team, "totals")
        stats = self._extract_team_stats(_child(totals, "stats"))

        return TeamBox(
            id=_attr(team, "id"),
            name=_attr(team, "name"),
            record=_attr(team, "record", ""),
            score=_int(linescore, "score"),
            stats=stats,
            advanced=self._extract_advanced(_child(totals, "special")),
            derived=calculate_derived_metrics(stats),
            period_scoring=tuple(
                PeriodScore(period=_int(prd, "prd"), score=_int(prd, "score"))
                for prd in _children(linescore, "lineprd")
            ),
            players=tuple(
                self._extract_player(player)
                for player in _children(team, "player")
                if _attr(player, "code") != TEAM_PLAYER_CODE
            ),
        )

    def _extract_team_stats(self, stats: ET.Element | None) -> TeamStats:
        return TeamStats(
            fgm=_int(stats, "fgm"),
            fga=_int(stats, "fga"),
            fg_pct=_float(stats, "fgpct"),
            fg3m=_int(stats, "fgm3"),
            fg3a=_int(stats, "fga3"),
            fg3_pct=_float(stats, "fg3pct"),
            ftm=_int(stats, "ftm"),
            fta=_int(stats, "fta"),
            ft_pct=_float(stats, "ftpct"),
            points=_int(stats, "tp"),
            rebounds=_int(stats, "treb"),
            offensive_rebounds=_int(stats, "oreb"),
            defensive_rebounds=_int(stats, "dreb"),
            assists=_int(stats, "ast"),
            turnovers=_int(stats, "to"),
            steals=_int(stats, "stl"),
            blocks=_int(stats, "blk"),
            personal_fouls=_int(stats, "pf"),
            technical_fouls=_int(stats, "tf"),
            minutes=_int(stats, "min"),
        )

    def _extract_advanced(self, special: ET.Element | None) -> AdvancedMetrics:
        return AdvancedMetrics(
            points_in_paint=_int(special, "pts_paint"),
            fast_break_points=_int(special, "pts_fastb"),
            second_chance_points=_int(special, "pts_ch2"),
            points_off_turnovers=_int(special, "pts_to"),
            bench_points=_int(special, "pts_bench"),
            possession_count=_int(special, "poss_count"),
            ties=_int(special, "ties"),
            leads=_int(special, "leads"),
            largest_lead=_int(special, "large_lead"),
            largest_lead_time=_attr(special, "large_lead_t"),
            biggest_run=_int(special, "biggest_run"),
        )

    def _extract_player(self, player: ET.Element) -> PlayerLine:
        stats = _child(player, "stats")
        return PlayerLine(
            uniform=_attr(player, "uni"),
            player_number=_attr(player, "pno"),
            code=_attr(player, "code"),
            name=_attr(player, "name"),
            check_name=_attr(player, "checkname"),
            player_class=_attr(player, "class"),
            position=_attr(player, "pos"),
            games_played=_int(player, "gp"),
            games_started=_int(player, "gs"),
            on_court=_attr(player, "oncourt") == "Y",
            stats=PlayerStats(
                points=_int(stats, "tp"),
                fgm=_int(stats, "fgm"),
                fga=_int(stats, "fga"),
                fg3m=_int(stats, "fgm3"),
                fg3a=_int(stats, "fga3"),
                ftm=_int(stats, "ftm"),
                fta=_int(stats, "fta"),
                rebounds=_int(stats, "treb"),
                offensive_rebounds=_int(stats, "oreb"),
                defensive_rebounds=_int(stats, "dreb"),
                assists=_int(stats, "ast"),
                turnovers=_int(stats, "to"),
                steals=_int(stats, "stl"),
                blocks=_int(stats, "blk"),
                personal_fouls=_int(stats, "pf"),
                technical_fouls=_int(stats, "tf"),
                minutes=_int(stats, "min"),
                plus_minus=_signed_int(stats, "plusminus"),
                efficiency=_signed_int(stats, "eff"),
                points_in_paint=_int(stats, "pts_paint"),
                fast_break_points=_int(stats, "pts_fastb"),
                second_chance_points=_int(stats, "pts_ch2"),
            ),
        )

    # =========================================================================
    # Play by play
    # =========================================================================

    def _extract_plays(self, root: ET.Element) -> tuple[Play, ...]:
        periods = _children(_child(root, "plays"), "period")
        if not periods:
            logger.debug("[PARSER] No play-by-play in document")
            return ()

        plays: list[Play] = []
        skipped = 0
        for period in periods:
            number = _int(period, "number")

            # Plays and comments interleave; keep document order
            for entry in period:
                if entry.tag == "comment":
                    plays.append(self._extract_comment(entry, number))
                    continue
                if entry.tag != "play":
                    continue
                play = self._extract_play(entry, number)
                if play is None:
                    skipped += 1
                    continue
                plays.append(play)

        if skipped:
            logger.warning("[PARSER] Skipped %d plays without an action", skipped)

        return tuple(plays)

    def _extract_comment(self, entry: ET.Element, period: int) -> Play:
        return Play(
            period=period,
            action="COMMENT",
            time=_attr(entry, "time"),
            team=_attr(entry, "team"),
            vh=_attr(entry, "vh"),
            check_name=_attr(entry, "checkname"),
            text=_attr(entry, "text"),
        )

    def _extract_play(self, entry: ET.Element, period: int) -> Play | None:
        action = _attr(entry, "action")
        if action is None:
            logger.debug(
                "[PARSER] Skipping play without action in period %d at %s",
                period,
                _attr(entry, "time"),
            )
            return None

        is_foul = action == "FOUL"
        return Play(
            period=period,
            action=action,
            time=_attr(entry, "time"),
            team=_attr(entry, "team"),
            vh=_attr(entry, "vh"),
            uniform=_attr(entry, "uni"),
            sequence=_optional_int(entry, "sequence"),
            check_name=_attr(entry, "checkname"),
            type=_attr(entry, "type"),
            home_score=_optional_int(entry, "hscore"),
            visitor_score=_optional_int(entry, "vscore"),
            description=_attr(entry, "desc"),
            fast_break=_attr(entry, "fastb"),
            off_turnover=_attr(entry, "to"),
            paint=_attr(entry, "paint"),
            second_chance=_attr(entry, "ch2"),
            blocked=_attr(entry, "blocked"),
            drawn_by=_attr(entry, "drawnby") if is_foul else None,
            drawn_uniform=_attr(entry, "drawnuni") if is_foul else None,
            qualifiers=_attr(entry, "qualifiers"),
            free_throws=_attr(entry, "ft"),
            ft_sequence=_attr(entry, "seq"),
        )


def assess_data_quality(game: ParsedGame) -> str:
    """Classify how much of a document is usable.

    'full': both teams and play-by-play present
    'partial': box score without plays, or only one team
    'none': neither team present
    """
    teams = sum(1 for team in (game.home, game.visitor) if team is not None)
    if teams == 0:
        return "none"
    if teams == 2 and game.has_play_by_play:
        return "full"
    return "partial"
