"""Service factories.

Wires providers, stores and consumers together from AppSettings. One
RateLimiter and one QuotaTracker are shared by everything that talks to
the archive.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from gamerecon.config import AppSettings, get_settings
from gamerecon.consumers.matching.discovery import DiscoveryService
from gamerecon.consumers.reconciliation import GameReconciliationService
from gamerecon.database.connection import db_factory_for
from gamerecon.database.quota import SqliteQuotaStore
from gamerecon.providers.espn.feed import EspnScheduleFeed
from gamerecon.providers.fetcher import RateLimitedFetcher
from gamerecon.providers.statbroadcast.client import StatBroadcastClient
from gamerecon.utilities.rate_limit import QuotaTracker, RateLimiter

logger = logging.getLogger(__name__)

ARCHIVE_SOURCE = "statbroadcast"


@dataclass
class Services:
    """Everything the API and scheduler need."""

    settings: AppSettings
    db_factory: Callable
    fetcher: RateLimitedFetcher
    archive: StatBroadcastClient
    discovery: DiscoveryService
    reconciliation: GameReconciliationService

    def close(self) -> None:
        self.fetcher.close()


def create_services(settings: AppSettings | None = None) -> Services:
    settings = settings or get_settings()
    db_factory = db_factory_for(settings.db_path)

    fetch = settings.fetch
    quota = QuotaTracker(
        ARCHIVE_SOURCE,
        daily_limit=fetch.daily_quota,
        store=SqliteQuotaStore(db_factory),
    )
    fetcher = RateLimitedFetcher(
        RateLimiter(min_interval=fetch.min_interval),
        quota=quota,
        timeout=fetch.timeout,
        max_retries=fetch.max_retries,
        retry_base_delay=fetch.retry_base_delay,
        retry_max_delay=fetch.retry_max_delay,
    )
    archive = StatBroadcastClient(fetcher, db_factory=db_factory)
    discovery = DiscoveryService(archive, db_factory)
    reconciliation = GameReconciliationService(
        feed=EspnScheduleFeed(),
        archive=archive,
        discovery=discovery,
        db_factory=db_factory,
        batch_delay=settings.reconcile.batch_delay,
        update_batch_size=settings.reconcile.update_batch_size,
    )

    logger.debug("[SERVICES] Created services for %s", settings.db_path)
    return Services(
        settings=settings,
        db_factory=db_factory,
        fetcher=fetcher,
        archive=archive,
        discovery=discovery,
        reconciliation=reconciliation,
    )
