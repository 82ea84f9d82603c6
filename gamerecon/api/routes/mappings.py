"""Game id mapping and archive team directory endpoints.

- POST /mappings/manual - Set an operator-chosen archive id
- GET /mappings/review - Low-confidence discovered mappings
- GET /mappings/{primary_id} - One mapping
- GET /teams - Archive team directory
- PUT /teams - Add or update a directory entry
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from gamerecon.api.deps import get_services
from gamerecon.api.models import (
    ArchiveTeamInput,
    ArchiveTeamResponse,
    ManualMappingRequest,
    MappingResponse,
)
from gamerecon.core.types import GameIdMapping
from gamerecon.database import archive_teams
from gamerecon.database.mappings import LOW_CONFIDENCE_THRESHOLD
from gamerecon.services import Services

logger = logging.getLogger(__name__)

router = APIRouter()


def _mapping_response(mapping: GameIdMapping) -> MappingResponse:
    return MappingResponse.model_validate(mapping)


@router.post("/mappings/manual", response_model=MappingResponse)
def set_manual_mapping(body: ManualMappingRequest, services: Services = Depends(get_services)):
    """Point a primary game at an archive game id, overriding discovery."""
    metadata = {
        "home_team": body.home_team,
        "away_team": body.away_team,
        "game_date": body.game_date.isoformat() if body.game_date else None,
    }
    try:
        mapping = services.discovery.set_manual_mapping(
            body.primary_id, body.archive_id, metadata
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return _mapping_response(mapping)


@router.get("/mappings/review", response_model=list[MappingResponse])
def review_mappings(
    threshold: float = Query(LOW_CONFIDENCE_THRESHOLD, ge=0.0, le=1.0),
    services: Services = Depends(get_services),
):
    """Discovered mappings below the confidence threshold, weakest first."""
    return [
        _mapping_response(m) for m in services.discovery.get_low_confidence_mappings(threshold)
    ]


@router.get("/mappings/{primary_id}", response_model=MappingResponse)
def get_mapping(primary_id: str, services: Services = Depends(get_services)):
    mapping = services.discovery.get_mapping(primary_id)
    if not mapping:
        raise HTTPException(status_code=404, detail=f"No mapping for {primary_id}")
    return _mapping_response(mapping)


@router.get("/teams", response_model=list[ArchiveTeamResponse])
def list_teams(
    sport: str = "mens-college-basketball",
    services: Services = Depends(get_services),
):
    with services.db_factory() as conn:
        teams = archive_teams.get_all_teams(conn, sport)
    return [ArchiveTeamResponse.model_validate(t) for t in teams]


@router.put("/teams", response_model=ArchiveTeamResponse)
def upsert_team(body: ArchiveTeamInput, services: Services = Depends(get_services)):
    team = archive_teams.ArchiveTeam(**body.model_dump())
    with services.db_factory() as conn:
        archive_teams.upsert_team(conn, team)
    logger.info("[API] Archive team %s = %s", team.gid, team.team_name)
    return ArchiveTeamResponse.model_validate(team)
