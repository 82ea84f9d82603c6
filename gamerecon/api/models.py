"""Pydantic models for API requests and responses."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

# Per-game details returned inline with a run summary
MAX_DETAILS_IN_RESPONSE = 50

# =============================================================================
# Reconciliation
# =============================================================================


class ReconcileRequest(BaseModel):
    """Request body for a date-range reconciliation."""

    start_date: date
    end_date: date
    triggered_by: str = "api"
    background: bool = Field(False, description="Return immediately and run in the background.")


class ReconcileRecentRequest(BaseModel):
    days: int = Field(7, ge=1, le=60)
    background: bool = False


class BackfillDetail(BaseModel):
    primary_id: str
    success: bool
    status: str
    reason: str | None = None
    archive_id: str | None = None
    confidence: float | None = None


class ReconcileResponse(BaseModel):
    reconciliation_id: str
    games_found: int
    missing_games: int
    processed: int
    failed: int
    details: list[BackfillDetail] = []
    details_truncated: bool = False


class ReconcileStarted(BaseModel):
    status: str = "started"
    message: str


class ReconciliationRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    status: str
    triggered_by: str
    date_range_start: str
    date_range_end: str
    started_at: datetime | None = None
    completed_at: datetime | None = None
    games_found: int = 0
    games_processed: int = 0
    games_failed: int = 0
    data_sources: str | None = None
    error_message: str | None = None


class ReconciliationStatsResponse(BaseModel):
    total_runs: int
    completed_runs: int
    failed_runs: int
    running_runs: int
    total_games_found: int
    total_games_processed: int
    total_games_failed: int
    success_rate: float


# =============================================================================
# Backfill
# =============================================================================


class BackfillGameInput(BaseModel):
    """A primary game to backfill directly, bypassing the feed."""

    primary_id: str
    game_date: date
    home_team: str
    away_team: str
    home_team_id: str | None = None
    away_team_id: str | None = None


class BackfillRequest(BaseModel):
    games: list[BackfillGameInput] = Field(..., min_length=1, max_length=100)


class BackfillResponse(BaseModel):
    processed: int
    failed: int
    details: list[BackfillDetail]


# =============================================================================
# Mappings
# =============================================================================


class ManualMappingRequest(BaseModel):
    """Request body for an operator-chosen archive id."""

    primary_id: str = Field(..., min_length=1)
    archive_id: str = Field(..., min_length=1, pattern=r"^\d+$")
    home_team: str | None = None
    away_team: str | None = None
    game_date: date | None = None


class MappingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    primary_id: str
    archive_id: str
    home_team: str
    away_team: str
    game_date: str
    confidence: float
    match_method: str
    data_quality: str | None = None
    discovered_at: datetime | None = None
    last_fetched: datetime | None = None


# =============================================================================
# Archive team directory
# =============================================================================


class ArchiveTeamInput(BaseModel):
    gid: str = Field(..., min_length=1)
    team_name: str = Field(..., min_length=1)
    primary_team_id: str | None = None
    sport: str = "mens-college-basketball"


class ArchiveTeamResponse(ArchiveTeamInput):
    model_config = ConfigDict(from_attributes=True)
