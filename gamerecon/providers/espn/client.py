"""ESPN API HTTP client.

Handles raw HTTP requests to ESPN endpoints.
No data transformation - just fetch and return JSON.

Configuration via environment variables:
    ESPN_MAX_CONNECTIONS: Max concurrent connections (default: 20)
    ESPN_TIMEOUT: Request timeout in seconds (default: 10)
    ESPN_RETRY_COUNT: Number of attempts per request (default: 3)
"""

import logging
import os
import threading
import time
from collections.abc import Callable

import httpx

from gamerecon.providers.fetcher import calculate_backoff, retry_after_delay

logger = logging.getLogger(__name__)

ESPN_MAX_CONNECTIONS = int(os.environ.get("ESPN_MAX_CONNECTIONS", 20))
ESPN_TIMEOUT = float(os.environ.get("ESPN_TIMEOUT", 10.0))
ESPN_RETRY_COUNT = int(os.environ.get("ESPN_RETRY_COUNT", 3))

# Scoreboard retries start at 500ms, spread ±30%
SCOREBOARD_BACKOFF = {"base_delay": 0.5, "max_delay": 10.0, "jitter": 0.3}

# 429 waits start at 5s unless Retry-After says otherwise
THROTTLE_BACKOFF = {"base_delay": 5.0, "max_delay": 60.0}
MAX_THROTTLE_RETRIES = 3

ESPN_BASE_URL = "https://site.api.espn.com/apis/site/v2/sports"

# Canonical league -> (sport, espn league) path segments
SPORT_LEAGUES = {
    "mens-college-basketball": ("basketball", "mens-college-basketball"),
    "womens-college-basketball": ("basketball", "womens-college-basketball"),
}

# Without groups=50 the college scoreboard returns only ranked/featured games
COLLEGE_SCOREBOARD_GROUPS = {
    "mens-college-basketball": "50",
    "womens-college-basketball": "50",
}


class ESPNClient:
    """Low-level ESPN API client.

    Methods return None when a request fails after all retries; callers
    decide whether that is fatal.
    """

    def __init__(
        self,
        timeout: float | None = None,
        retry_count: int | None = None,
        max_connections: int | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._timeout = timeout if timeout is not None else ESPN_TIMEOUT
        self._retry_count = max(1, retry_count if retry_count is not None else ESPN_RETRY_COUNT)
        self._max_connections = (
            max_connections if max_connections is not None else ESPN_MAX_CONNECTIONS
        )
        self._transport = transport
        self._sleep = sleep
        self._client: httpx.Client | None = None
        self._lock = threading.Lock()

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            with self._lock:
                # Double-check after acquiring lock
                if self._client is None:
                    self._client = httpx.Client(
                        timeout=self._timeout,
                        limits=httpx.Limits(
                            max_connections=self._max_connections,
                            max_keepalive_connections=self._max_connections,
                        ),
                        transport=self._transport,
                    )
        return self._client

    def _request(self, url: str, params: dict | None = None) -> dict | None:
        """Make HTTP request with retry logic.

        429 responses use a separate, longer backoff honoring Retry-After and
        do not consume normal attempts.
        """
        throttle_retries = 0
        attempt = 0

        while attempt < self._retry_count:
            try:
                response = self._get_client().get(url, params=params)

                if response.status_code == 429:
                    if throttle_retries >= MAX_THROTTLE_RETRIES:
                        logger.error(
                            "[ESPN] Rate limit (429) persisted after %d retries for %s",
                            MAX_THROTTLE_RETRIES,
                            url,
                        )
                        return None

                    delay = retry_after_delay(response)
                    if delay is None:
                        delay = calculate_backoff(throttle_retries, **THROTTLE_BACKOFF)
                    throttle_retries += 1

                    logger.warning(
                        "[ESPN] Rate limited (429). Retry %d/%d in %.1fs for %s",
                        throttle_retries,
                        MAX_THROTTLE_RETRIES,
                        delay,
                        url,
                    )
                    self._sleep(delay)
                    continue

                response.raise_for_status()
                logger.debug("[ESPN] %s %s", url.split("/sports/")[-1], params or "")
                return response.json()

            except httpx.HTTPStatusError as e:
                logger.warning("[ESPN] HTTP %d for %s", e.response.status_code, url)
            except (httpx.RequestError, ValueError) as e:
                # ValueError: body was not JSON
                logger.warning("[ESPN] Request failed for %s: %s", url, e)

            attempt += 1
            if attempt < self._retry_count:
                self._sleep(calculate_backoff(attempt - 1, **SCOREBOARD_BACKOFF))

        return None

    def get_sport_league(self, league: str) -> tuple[str, str]:
        """Convert canonical league to ESPN sport/league pair."""
        if league not in SPORT_LEAGUES:
            raise ValueError(f"Unsupported league: {league}")
        return SPORT_LEAGUES[league]

    def get_scoreboard(self, league: str, date_str: str) -> dict | None:
        """Fetch scoreboard for a league on a given date.

        Args:
            league: Canonical league code (e.g., 'mens-college-basketball')
            date_str: Date in YYYYMMDD format

        Returns:
            Raw ESPN response or None on error
        """
        sport, espn_league = self.get_sport_league(league)
        url = f"{ESPN_BASE_URL}/{sport}/{espn_league}/scoreboard"
        params = {"dates": date_str, "limit": "500"}

        if league in COLLEGE_SCOREBOARD_GROUPS:
            params["groups"] = COLLEGE_SCOREBOARD_GROUPS[league]

        return self._request(url, params)

    def close(self) -> None:
        with self._lock:
            if self._client:
                self._client.close()
                self._client = None
