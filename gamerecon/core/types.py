"""Core data types.

Plain dataclasses shared by providers, consumers and the database layer.
Parsed archive documents are frozen so two parses of the same bytes
compare equal.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

# =============================================================================
# Identity
# =============================================================================


@dataclass
class TeamRef:
    """A team as the primary feed reports it."""

    id: str
    name: str
    abbreviation: str | None = None


@dataclass
class ExternalGame:
    """A game known to the primary schedule feed."""

    id: str
    sport: str
    date: str  # YYYY-MM-DD
    home_team: TeamRef
    away_team: TeamRef
    neutral_site: bool = False
    completed: bool = False
    home_score: int | None = None
    away_score: int | None = None


@dataclass
class ArchiveCandidate:
    """A possible archive record for an external game."""

    id: str
    home_team: str
    away_team: str
    date: str | None = None


@dataclass
class MatchResult:
    """Best accepted candidate from the identity matcher."""

    candidate_id: str
    confidence: float
    home_score: float
    away_score: float


class DiscoverySource(str, Enum):
    CACHE = "cache"
    DISCOVERY = "discovery"


@dataclass
class DiscoveryResult:
    """Resolved archive id for a primary game."""

    archive_id: str
    confidence: float
    source: DiscoverySource


MATCH_METHODS = ("discovery", "manual")
DATA_QUALITY_VALUES = ("full", "partial", "none")


@dataclass
class GameIdMapping:
    """Persisted primary id -> archive id link."""

    primary_id: str
    archive_id: str
    home_team: str
    away_team: str
    game_date: str
    confidence: float
    match_method: str = "discovery"
    data_quality: str | None = None
    discovered_at: datetime | None = None
    last_fetched: datetime | None = None

    @classmethod
    def from_row(cls, row) -> "GameIdMapping":
        return cls(
            primary_id=row["primary_id"],
            archive_id=row["archive_id"],
            home_team=row["home_team"],
            away_team=row["away_team"],
            game_date=row["game_date"],
            confidence=row["confidence"],
            match_method=row["match_method"],
            data_quality=row["data_quality"],
            discovered_at=_parse_timestamp(row["discovered_at"]),
            last_fetched=_parse_timestamp(row["last_fetched"]),
        )


# =============================================================================
# Parsed archive document
# =============================================================================


@dataclass(frozen=True)
class GameMetadata:
    game_id: str | None
    archive_sbid: str | None
    competition_id: str | None
    competition_name: str | None
    date: str | None
    location: str | None
    time: str | None
    start_time: str | None
    end_time: str | None
    duration: str | None
    attendance: str
    neutral_game: str
    postseason: str
    visitor_id: str | None
    visitor_name: str | None
    home_id: str | None
    home_name: str | None
    officials: str | None
    notes: str | None

    @property
    def is_neutral_site(self) -> bool:
        return self.neutral_game == "Y"

    @property
    def is_postseason(self) -> bool:
        return self.postseason == "Y"


@dataclass(frozen=True)
class GameStatus:
    complete: bool
    period: int
    period_type: str | None
    clock: str | None
    running: str | None
    game_status: str | None


@dataclass(frozen=True)
class TeamStats:
    """Raw box-score counts for one side."""

    fgm: int = 0
    fga: int = 0
    fg_pct: float = 0.0
    fg3m: int = 0
    fg3a: int = 0
    fg3_pct: float = 0.0
    ftm: int = 0
    fta: int = 0
    ft_pct: float = 0.0
    points: int = 0
    rebounds: int = 0
    offensive_rebounds: int = 0
    defensive_rebounds: int = 0
    assists: int = 0
    turnovers: int = 0
    steals: int = 0
    blocks: int = 0
    personal_fouls: int = 0
    technical_fouls: int = 0
    minutes: int = 0


@dataclass(frozen=True)
class AdvancedMetrics:
    points_in_paint: int = 0
    fast_break_points: int = 0
    second_chance_points: int = 0
    points_off_turnovers: int = 0
    bench_points: int = 0
    possession_count: int = 0
    ties: int = 0
    leads: int = 0
    largest_lead: int = 0
    largest_lead_time: str | None = None
    biggest_run: int = 0


@dataclass(frozen=True)
class DerivedMetrics:
    """Efficiency rates on a percent scale, rounded to 2 places."""

    effective_fg_pct: float = 0.0
    true_shooting_pct: float = 0.0
    turnover_rate: float = 0.0


@dataclass(frozen=True)
class PeriodScore:
    period: int
    score: int


@dataclass(frozen=True)
class PlayerStats:
    points: int = 0
    fgm: int = 0
    fga: int = 0
    fg3m: int = 0
    fg3a: int = 0
    ftm: int = 0
    fta: int = 0
    rebounds: int = 0
    offensive_rebounds: int = 0
    defensive_rebounds: int = 0
    assists: int = 0
    turnovers: int = 0
    steals: int = 0
    blocks: int = 0
    personal_fouls: int = 0
    technical_fouls: int = 0
    minutes: int = 0
    plus_minus: int = 0
    efficiency: int = 0
    points_in_paint: int = 0
    fast_break_points: int = 0
    second_chance_points: int = 0


@dataclass(frozen=True)
class PlayerLine:
    uniform: str | None
    player_number: str | None
    code: str | None
    name: str | None
    check_name: str | None
    player_class: str | None
    position: str | None
    games_played: int
    games_started: int
    on_court: bool
    stats: PlayerStats


@dataclass(frozen=True)
class TeamBox:
    id: str | None
    name: str | None
    record: str
    score: int
    stats: TeamStats
    advanced: AdvancedMetrics
    derived: DerivedMetrics
    period_scoring: tuple[PeriodScore, ...] = ()
    players: tuple[PlayerLine, ...] = ()


@dataclass(frozen=True)
class Play:
    """One play-by-play event. Optional qualifiers are None when absent."""

    period: int
    action: str
    time: str | None = None
    team: str | None = None
    vh: str | None = None
    uniform: str | None = None
    sequence: int | None = None
    check_name: str | None = None
    type: str | None = None
    home_score: int | None = None
    visitor_score: int | None = None
    description: str | None = None
    fast_break: str | None = None
    off_turnover: str | None = None
    paint: str | None = None
    second_chance: str | None = None
    blocked: str | None = None
    drawn_by: str | None = None
    drawn_uniform: str | None = None
    qualifiers: str | None = None
    free_throws: str | None = None
    ft_sequence: str | None = None
    text: str | None = None


@dataclass(frozen=True)
class ParsedGame:
    metadata: GameMetadata
    status: GameStatus
    home: TeamBox | None
    visitor: TeamBox | None
    plays: tuple[Play, ...] = ()

    @property
    def has_play_by_play(self) -> bool:
        return len(self.plays) > 0


# =============================================================================
# Historical store and run log
# =============================================================================


@dataclass
class HistoricalGame:
    """A backfilled game row."""

    id: str
    archive_game_id: str | None
    game_date: str
    home_team_id: str | None = None
    away_team_id: str | None = None
    home_score: int = 0
    away_score: int = 0
    sport: str = "mens-college-basketball"
    season: int | None = None
    is_neutral_site: bool = False
    home_fg_pct: float | None = None
    away_fg_pct: float | None = None
    home_3pt_pct: float | None = None
    away_3pt_pct: float | None = None
    home_ft_pct: float | None = None
    away_ft_pct: float | None = None
    home_rebounds: int | None = None
    away_rebounds: int | None = None
    home_turnovers: int | None = None
    away_turnovers: int | None = None
    home_assists: int | None = None
    away_assists: int | None = None
    data_source: str = "statbroadcast"
    has_play_by_play: bool = False
    processed_at: datetime | None = None
    backfilled: bool = False
    backfill_date: datetime | None = None

    @classmethod
    def from_row(cls, row) -> "HistoricalGame":
        keys = row.keys()
        data = {k: row[k] for k in keys if k in cls.__dataclass_fields__}
        data["is_neutral_site"] = bool(data.get("is_neutral_site"))
        data["has_play_by_play"] = bool(data.get("has_play_by_play"))
        data["backfilled"] = bool(data.get("backfilled"))
        data["processed_at"] = _parse_timestamp(data.get("processed_at"))
        data["backfill_date"] = _parse_timestamp(data.get("backfill_date"))
        return cls(**data)


class SaveOutcome(str, Enum):
    SAVED = "saved"
    DUPLICATE = "duplicate"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ReconciliationRun:
    id: str
    started_at: datetime
    date_range_start: str
    date_range_end: str
    triggered_by: str
    status: RunStatus = RunStatus.RUNNING
    completed_at: datetime | None = None
    games_found: int = 0
    games_processed: int = 0
    games_failed: int = 0
    data_sources: str | None = None
    error_message: str | None = None

    @classmethod
    def from_row(cls, row) -> "ReconciliationRun":
        return cls(
            id=row["id"],
            started_at=_parse_timestamp(row["started_at"]),
            completed_at=_parse_timestamp(row["completed_at"]),
            date_range_start=row["date_range_start"],
            date_range_end=row["date_range_end"],
            triggered_by=row["triggered_by"],
            status=RunStatus(row["status"]),
            games_found=row["games_found"] or 0,
            games_processed=row["games_processed"] or 0,
            games_failed=row["games_failed"] or 0,
            data_sources=row["data_sources"],
            error_message=row["error_message"],
        )


class BackfillStatus(str, Enum):
    PROCESSED = "processed"
    NOT_FOUND = "not_found"
    FETCH_TERMINAL = "fetch_terminal"
    FETCH_FAILED = "fetch_failed"
    MALFORMED_DOCUMENT = "malformed_document"
    DUPLICATE = "duplicate"
    ERROR = "error"


@dataclass
class BackfillOutcome:
    """Per-game result of a backfill attempt.

    Use factory methods rather than the constructor so success and status
    always agree.
    """

    primary_id: str
    status: BackfillStatus
    reason: str | None = None
    archive_id: str | None = None
    confidence: float | None = None

    @property
    def success(self) -> bool:
        return self.status == BackfillStatus.PROCESSED

    @classmethod
    def processed(cls, primary_id: str, archive_id: str, confidence: float) -> "BackfillOutcome":
        return cls(primary_id, BackfillStatus.PROCESSED, None, archive_id, confidence)

    @classmethod
    def failed(
        cls,
        primary_id: str,
        status: BackfillStatus,
        reason: str,
        archive_id: str | None = None,
    ) -> "BackfillOutcome":
        return cls(primary_id, status, reason, archive_id)

    def to_dict(self) -> dict:
        return {
            "primary_id": self.primary_id,
            "success": self.success,
            "status": self.status.value,
            "reason": self.reason,
            "archive_id": self.archive_id,
            "confidence": self.confidence,
        }


@dataclass
class ReconciliationResult:
    reconciliation_id: str
    games_found: int
    missing_games: int
    processed: int
    failed: int
    details: list[BackfillOutcome] = field(default_factory=list)

    def to_dict(self, max_details: int | None = None) -> dict:
        details = self.details if max_details is None else self.details[:max_details]
        return {
            "reconciliation_id": self.reconciliation_id,
            "games_found": self.games_found,
            "missing_games": self.missing_games,
            "processed": self.processed,
            "failed": self.failed,
            "details": [d.to_dict() for d in details],
        }


def _parse_timestamp(value) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None
