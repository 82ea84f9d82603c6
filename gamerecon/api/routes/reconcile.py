"""Reconciliation API endpoints.

- POST /reconcile - Reconcile a date range
- POST /reconcile/recent - Reconcile the last N days
- POST /backfill - Backfill specific games
- GET /reconciliations - Recent runs
- GET /reconciliations/stats - Aggregate run statistics
- GET /reconciliations/{run_id} - One run
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query

from gamerecon.api.deps import get_services
from gamerecon.api.models import (
    MAX_DETAILS_IN_RESPONSE,
    BackfillDetail,
    BackfillRequest,
    BackfillResponse,
    ReconcileRecentRequest,
    ReconcileRequest,
    ReconcileResponse,
    ReconcileStarted,
    ReconciliationRunResponse,
    ReconciliationStatsResponse,
)
from gamerecon.core.errors import InfrastructureError
from gamerecon.core.types import ExternalGame, ReconciliationResult, ReconciliationRun, TeamRef
from gamerecon.database import reconciliation_log
from gamerecon.services import Services

logger = logging.getLogger(__name__)

router = APIRouter()


def _result_response(result: ReconciliationResult) -> ReconcileResponse:
    data = result.to_dict(max_details=MAX_DETAILS_IN_RESPONSE)
    return ReconcileResponse(
        **data,
        details_truncated=len(result.details) > MAX_DETAILS_IN_RESPONSE,
    )


def _run_response(run: ReconciliationRun) -> ReconciliationRunResponse:
    return ReconciliationRunResponse(
        id=run.id,
        status=run.status.value,
        triggered_by=run.triggered_by,
        date_range_start=run.date_range_start,
        date_range_end=run.date_range_end,
        started_at=run.started_at,
        completed_at=run.completed_at,
        games_found=run.games_found,
        games_processed=run.games_processed,
        games_failed=run.games_failed,
        data_sources=run.data_sources,
        error_message=run.error_message,
    )


@router.post("/reconcile", response_model=ReconcileResponse | ReconcileStarted)
def reconcile(
    body: ReconcileRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
):
    """Reconcile a date range.

    With background=true the run starts after the response is sent; check
    /reconciliations for progress.
    """
    if body.end_date < body.start_date:
        raise HTTPException(status_code=400, detail="end_date is before start_date")

    service = services.reconciliation

    if body.background:

        def run_reconcile():
            try:
                service.reconcile(body.start_date, body.end_date, body.triggered_by)
            except Exception as e:
                logger.error("[API] Background reconciliation failed: %s", e)

        background_tasks.add_task(run_reconcile)
        return ReconcileStarted(
            message=f"Reconciliation of {body.start_date} to {body.end_date} started"
        )

    try:
        result = service.reconcile(body.start_date, body.end_date, body.triggered_by)
    except InfrastructureError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return _result_response(result)


@router.post("/reconcile/recent", response_model=ReconcileResponse | ReconcileStarted)
def reconcile_recent(
    body: ReconcileRecentRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
):
    """Reconcile the last N days up to today."""
    service = services.reconciliation

    if body.background:

        def run_recent():
            try:
                service.reconcile_recent(days=body.days, triggered_by="api")
            except Exception as e:
                logger.error("[API] Background reconciliation failed: %s", e)

        background_tasks.add_task(run_recent)
        return ReconcileStarted(message=f"Reconciliation of the last {body.days} days started")

    try:
        result = service.reconcile_recent(days=body.days, triggered_by="api")
    except InfrastructureError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return _result_response(result)


@router.post("/backfill", response_model=BackfillResponse)
def backfill_games(body: BackfillRequest, services: Services = Depends(get_services)):
    """Backfill specific games without consulting the primary feed."""
    games = [
        ExternalGame(
            id=g.primary_id,
            sport="mens-college-basketball",
            date=g.game_date.isoformat(),
            home_team=TeamRef(id=g.home_team_id or "", name=g.home_team),
            away_team=TeamRef(id=g.away_team_id or "", name=g.away_team),
        )
        for g in body.games
    ]
    outcomes = services.reconciliation.backfill_concurrently(games)
    processed = sum(1 for o in outcomes if o.success)
    return BackfillResponse(
        processed=processed,
        failed=len(outcomes) - processed,
        details=[BackfillDetail(**o.to_dict()) for o in outcomes],
    )


@router.get("/reconciliations", response_model=list[ReconciliationRunResponse])
def list_reconciliations(
    limit: int = Query(10, ge=1, le=100),
    status: str | None = Query(None, pattern="^(running|completed|failed)$"),
    services: Services = Depends(get_services),
):
    """Recent reconciliation runs, newest first."""
    with services.db_factory() as conn:
        if status:
            runs = reconciliation_log.get_reconciliations_by_status(conn, status, limit)
        else:
            runs = reconciliation_log.get_recent_reconciliations(conn, limit)
    return [_run_response(run) for run in runs]


@router.get("/reconciliations/stats", response_model=ReconciliationStatsResponse)
def reconciliation_stats(services: Services = Depends(get_services)):
    with services.db_factory() as conn:
        stats = reconciliation_log.get_reconciliation_stats(conn)
    return ReconciliationStatsResponse(**stats)


@router.get("/reconciliations/{run_id}", response_model=ReconciliationRunResponse)
def get_reconciliation(run_id: str, services: Services = Depends(get_services)):
    with services.db_factory() as conn:
        run = reconciliation_log.get_reconciliation(conn, run_id)
    if not run:
        raise HTTPException(status_code=404, detail=f"Reconciliation {run_id} not found")
    return _run_response(run)
