"""Rate-limited, retrying HTTP fetcher for the archive source.

Every request waits on the injected RateLimiter, counts against the
optional QuotaTracker, and is retried with exponential backoff when the
failure is transient.

Failure classes:
- Terminal (raised immediately, one network attempt): HTTP 404, any 3xx
  redirect, invalid URL, exhausted quota. The archive answers an unknown
  game id with a redirect, so redirects are never followed.
- Transient (retried): timeouts, connection errors, 5xx, 429 and any other
  non-success status. After the last attempt the error is raised as
  FetchFailedError.
"""

import logging
import random
import threading
import time
from collections.abc import Callable

import httpx

from gamerecon.core.errors import FetchFailedError, FetchTerminalError
from gamerecon.utilities.rate_limit import QuotaTracker, RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3
RETRY_BASE_DELAY = 1.0
RETRY_MAX_DELAY = 30.0

# Retry-After values above this are clamped
RATE_LIMIT_MAX_DELAY = 60.0

USER_AGENT = "gamerecon/0.1 (+reconciliation backfill)"


def calculate_backoff(
    attempt: int,
    base_delay: float = RETRY_BASE_DELAY,
    max_delay: float = RETRY_MAX_DELAY,
    jitter: float = 0.0,
) -> float:
    """Delay before retrying after a failed attempt.

    Formula: min(max_delay, base_delay * 2^attempt), optionally spread by
    ±jitter (fraction of the delay).

    Args:
        attempt: Zero-based attempt that just failed
        base_delay: Delay after the first failure
        max_delay: Cap in seconds
        jitter: 0.3 means ±30%

    Example delays (base 1.0, no jitter):
        Attempt 0: 1s
        Attempt 1: 2s
        Attempt 2: 4s
    """
    delay = min(max_delay, base_delay * (2**attempt))
    if jitter:
        delay *= 1 + jitter * (2 * random.random() - 1)
    return max(0.0, delay)


def retry_after_delay(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return min(float(value), RATE_LIMIT_MAX_DELAY)
    except ValueError:
        return None


class RateLimitedFetcher:
    """HTTP GET with pacing, quota and retry.

    Usage:
        limiter = RateLimiter(min_interval=1.0)
        with RateLimitedFetcher(limiter) as fetcher:
            body = fetcher.fetch("http://archive.statbroadcast.com/123456.xml")
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        quota: QuotaTracker | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = RETRY_BASE_DELAY,
        retry_max_delay: float = RETRY_MAX_DELAY,
        jitter: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize fetcher.

        Args:
            rate_limiter: Shared pacing gate
            quota: Optional daily request budget
            timeout: Per-request timeout in seconds
            max_retries: Retries after the first attempt for transient errors
            retry_base_delay: Backoff delay after the first failure
            retry_max_delay: Backoff cap
            jitter: Backoff spread as a fraction, 0 for exact delays
            sleep: Sleep function used between retries
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self._rate_limiter = rate_limiter
        self._quota = quota
        self._timeout = timeout
        self._max_retries = max(0, max_retries)
        self._retry_base_delay = retry_base_delay
        self._retry_max_delay = retry_max_delay
        self._jitter = jitter
        self._sleep = sleep
        self._transport = transport
        self._client: httpx.Client | None = None
        self._lock = threading.Lock()

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = httpx.Client(
                        timeout=self._timeout,
                        follow_redirects=False,
                        headers={"User-Agent": USER_AGENT},
                        transport=self._transport,
                    )
        return self._client

    def fetch(self, url: str, params: dict | None = None) -> str:
        """GET a URL and return the response body as text.

        Raises:
            FetchTerminalError: 404, redirect, invalid URL or quota exhausted
            FetchFailedError: transient failure on every attempt
        """
        last_error: str = "no attempts made"
        last_status: int | None = None

        for attempt in range(self._max_retries + 1):
            if self._quota is not None:
                self._quota.consume()
            self._rate_limiter.acquire()

            delay: float | None = None
            try:
                response = self._get_client().get(url, params=params)
            except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
                logger.warning("[FETCH] Invalid URL %s: %s", url, e)
                raise FetchTerminalError(f"Invalid URL: {url}", url=url) from e
            except httpx.TimeoutException as e:
                last_error = f"Timeout: {e}"
                last_status = None
            except (httpx.TransportError, OSError) as e:
                last_error = f"{type(e).__name__}: {e}"
                last_status = None
            else:
                status = response.status_code

                if response.is_success:
                    logger.debug("[FETCH] %s (%d bytes)", url, len(response.content))
                    return response.text

                if status == 404:
                    logger.info("[FETCH] Not found: %s", url)
                    raise FetchTerminalError(f"HTTP 404: {url}", url=url, status_code=status)

                if response.is_redirect or 300 <= status < 400:
                    logger.info("[FETCH] Redirect %d treated as invalid resource: %s", status, url)
                    raise FetchTerminalError(
                        f"Invalid resource (redirect {status}): {url}",
                        url=url,
                        status_code=status,
                    )

                last_error = f"HTTP {status}"
                last_status = status
                if status == 429:
                    delay = retry_after_delay(response)

            if attempt >= self._max_retries:
                break

            if delay is None:
                delay = calculate_backoff(
                    attempt, self._retry_base_delay, self._retry_max_delay, self._jitter
                )
            logger.warning(
                "[FETCH] %s for %s, retry %d/%d after %.1fs",
                last_error,
                url,
                attempt + 1,
                self._max_retries,
                delay,
            )
            self._sleep(delay)

        logger.error(
            "[FETCH] Giving up on %s after %d attempts: %s",
            url,
            self._max_retries + 1,
            last_error,
        )
        raise FetchFailedError(
            f"{last_error} after {self._max_retries + 1} attempts: {url}",
            url=url,
            status_code=last_status,
        )

    def close(self) -> None:
        """Close HTTP client."""
        with self._lock:
            if self._client:
                self._client.close()
                self._client = None

    def __enter__(self) -> "RateLimitedFetcher":
        """Context manager entry."""
        return self

    def __exit__(self, *args) -> None:
        """Context manager exit."""
        self.close()
