"""Runtime configuration.

Configuration via environment variables:
    GAMERECON_DB_PATH: SQLite database file (default: ./gamerecon.db)
    GAMERECON_LOG_LEVEL: Root log level (default: INFO)
    ARCHIVE_MIN_INTERVAL: Seconds between archive requests (default: 1.0)
    ARCHIVE_TIMEOUT: Per-request timeout in seconds (default: 30)
    ARCHIVE_MAX_RETRIES: Retries after the first attempt (default: 3)
    ARCHIVE_RETRY_BASE_DELAY: First backoff delay in seconds (default: 1.0)
    ARCHIVE_RETRY_MAX_DELAY: Backoff cap in seconds (default: 30)
    ARCHIVE_DAILY_QUOTA: Max archive requests per day, 0 = unlimited (default: 0)
    RECONCILE_BATCH_DELAY: Seconds between games in a run (default: 1.0)
    RECONCILE_LOOKBACK_DAYS: Days covered by reconcile_recent (default: 7)
    RECONCILE_UPDATE_BATCH_SIZE: Parsed games per downstream flush (default: 10)
    SCHEDULER_ENABLED: Run reconcile_recent in the background (default: true)
    SCHEDULER_INTERVAL_MINUTES: Minutes between background runs (default: 360)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class FetchSettings:
    """Archive request pacing and retry settings."""

    min_interval: float = 1.0
    timeout: float = 30.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0
    daily_quota: int | None = None


@dataclass
class ReconcileSettings:
    """Reconciliation run settings."""

    batch_delay: float = 1.0
    lookback_days: int = 7
    update_batch_size: int = 10


@dataclass
class SchedulerSettings:
    """Background scheduler settings."""

    enabled: bool = True
    interval_minutes: int = 360


@dataclass
class AppSettings:
    db_path: Path = Path("./gamerecon.db")
    log_level: str = "INFO"
    fetch: FetchSettings = field(default_factory=FetchSettings)
    reconcile: ReconcileSettings = field(default_factory=ReconcileSettings)
    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)


def get_settings() -> AppSettings:
    """Build settings from the environment."""
    quota = int(os.environ.get("ARCHIVE_DAILY_QUOTA", 0))
    return AppSettings(
        db_path=Path(os.environ.get("GAMERECON_DB_PATH", "./gamerecon.db")),
        log_level=os.environ.get("GAMERECON_LOG_LEVEL", "INFO").upper(),
        fetch=FetchSettings(
            min_interval=float(os.environ.get("ARCHIVE_MIN_INTERVAL", 1.0)),
            timeout=float(os.environ.get("ARCHIVE_TIMEOUT", 30.0)),
            max_retries=int(os.environ.get("ARCHIVE_MAX_RETRIES", 3)),
            retry_base_delay=float(os.environ.get("ARCHIVE_RETRY_BASE_DELAY", 1.0)),
            retry_max_delay=float(os.environ.get("ARCHIVE_RETRY_MAX_DELAY", 30.0)),
            daily_quota=quota if quota > 0 else None,
        ),
        reconcile=ReconcileSettings(
            batch_delay=float(os.environ.get("RECONCILE_BATCH_DELAY", 1.0)),
            lookback_days=int(os.environ.get("RECONCILE_LOOKBACK_DAYS", 7)),
            update_batch_size=int(os.environ.get("RECONCILE_UPDATE_BATCH_SIZE", 10)),
        ),
        scheduler=SchedulerSettings(
            enabled=_env_bool("SCHEDULER_ENABLED", True),
            interval_minutes=int(os.environ.get("SCHEDULER_INTERVAL_MINUTES", 360)),
        ),
    )


def configure_logging(level: str = "INFO") -> None:
    """Set up root logging for the service process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
