"""FastAPI application.

Run with:
    uvicorn gamerecon.api.app:create_app --factory
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from gamerecon import __version__
from gamerecon.api.routes import mappings, reconcile
from gamerecon.config import AppSettings, configure_logging, get_settings
from gamerecon.consumers.scheduler import ReconciliationScheduler
from gamerecon.database import init_db
from gamerecon.services import Services, create_services

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def create_app(
    settings: AppSettings | None = None,
    services: Services | None = None,
    start_scheduler: bool | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings, read from the environment if omitted
        services: Pre-built services (tests inject fakes here)
        start_scheduler: Override settings.scheduler.enabled
    """
    settings = settings or (services.settings if services else get_settings())
    run_scheduler = settings.scheduler.enabled if start_scheduler is None else start_scheduler

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        init_db(settings.db_path)
        app.state.services = services or create_services(settings)

        scheduler = None
        if run_scheduler:
            scheduler = ReconciliationScheduler(
                app.state.services.reconciliation,
                interval_minutes=settings.scheduler.interval_minutes,
                lookback_days=settings.reconcile.lookback_days,
            )
            scheduler.start()
        app.state.scheduler = scheduler

        logger.info("[APP] gamerecon %s ready (db: %s)", __version__, settings.db_path)
        yield

        if scheduler:
            scheduler.stop()
        if services is None:
            app.state.services.close()

    app = FastAPI(title="gamerecon", version=__version__, lifespan=lifespan)
    app.include_router(reconcile.router, prefix=API_PREFIX, tags=["reconciliation"])
    app.include_router(mappings.router, prefix=API_PREFIX, tags=["mappings"])

    @app.get("/health")
    def health() -> dict:
        scheduler = getattr(app.state, "scheduler", None)
        return {
            "status": "ok",
            "version": __version__,
            "scheduler_running": bool(scheduler and scheduler.is_running),
            "scheduler_last_run": (
                scheduler.last_run.isoformat() if scheduler and scheduler.last_run else None
            ),
        }

    return app
