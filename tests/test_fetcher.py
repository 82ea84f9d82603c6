"""Tests for the rate-limited retrying fetcher."""

from unittest.mock import MagicMock

import httpx
import pytest

from gamerecon.core.errors import FetchFailedError, FetchTerminalError, QuotaExceededError
from gamerecon.providers.fetcher import RateLimitedFetcher, calculate_backoff
from gamerecon.utilities.rate_limit import QuotaTracker, RateLimiter

URL = "http://archive.statbroadcast.com/555001.xml"


def make_fetcher(handler, max_retries=3, quota=None):
    """Fetcher over a MockTransport. Returns (fetcher, calls, sleeps)."""
    calls = []
    sleeps = []

    def recording_handler(request):
        calls.append(request)
        return handler(request)

    fetcher = RateLimitedFetcher(
        RateLimiter(0.0),
        quota=quota,
        max_retries=max_retries,
        sleep=sleeps.append,
        transport=httpx.MockTransport(recording_handler),
    )
    return fetcher, calls, sleeps


class TestBackoff:
    def test_exponential(self):
        assert [calculate_backoff(a) for a in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped(self):
        assert calculate_backoff(10, base_delay=1.0, max_delay=30.0) == 30.0

    def test_jitter_bounds(self):
        for _ in range(20):
            assert 0.7 <= calculate_backoff(0, jitter=0.3) <= 1.3


class TestFetchSuccess:
    def test_returns_body(self):
        fetcher, calls, sleeps = make_fetcher(lambda r: httpx.Response(200, text="<bbgame/>"))
        assert fetcher.fetch(URL) == "<bbgame/>"
        assert len(calls) == 1
        assert sleeps == []

    def test_params_forwarded(self):
        fetcher, calls, _ = make_fetcher(lambda r: httpx.Response(200, text="ok"))
        fetcher.fetch(URL, params={"id": "5"})
        assert calls[0].url.params["id"] == "5"

    def test_recovers_after_transient_error(self):
        responses = iter([httpx.Response(503), httpx.Response(200, text="ok")])
        fetcher, calls, sleeps = make_fetcher(lambda r: next(responses))
        assert fetcher.fetch(URL) == "ok"
        assert len(calls) == 2
        assert sleeps == [1.0]


class TestFetchTerminal:
    def test_404_single_attempt(self):
        fetcher, calls, sleeps = make_fetcher(lambda r: httpx.Response(404))
        with pytest.raises(FetchTerminalError) as exc:
            fetcher.fetch(URL)
        assert exc.value.status_code == 404
        assert len(calls) == 1
        assert sleeps == []

    def test_redirect_not_followed(self):
        """Unknown archive ids answer with a redirect to the home page."""
        fetcher, calls, sleeps = make_fetcher(
            lambda r: httpx.Response(302, headers={"Location": "http://statbroadcast.com/"})
        )
        with pytest.raises(FetchTerminalError) as exc:
            fetcher.fetch(URL)
        assert exc.value.status_code == 302
        assert len(calls) == 1
        assert sleeps == []

    def test_unsupported_protocol(self):
        with RateLimitedFetcher(RateLimiter(0.0), sleep=MagicMock()) as fetcher:
            with pytest.raises(FetchTerminalError):
                fetcher.fetch("ftp://archive.statbroadcast.com/1.xml")

    def test_quota_exhausted_before_request(self):
        quota = QuotaTracker("statbroadcast", daily_limit=1)
        fetcher, calls, _ = make_fetcher(lambda r: httpx.Response(200, text="ok"), quota=quota)
        fetcher.fetch(URL)
        with pytest.raises(QuotaExceededError):
            fetcher.fetch(URL)
        assert len(calls) == 1


class TestFetchRetry:
    def test_5xx_exhausts_retries(self):
        fetcher, calls, sleeps = make_fetcher(lambda r: httpx.Response(500), max_retries=3)
        with pytest.raises(FetchFailedError) as exc:
            fetcher.fetch(URL)
        assert len(calls) == 4
        assert sleeps == [1.0, 2.0, 4.0]
        assert exc.value.status_code == 500

    def test_zero_retries(self):
        fetcher, calls, sleeps = make_fetcher(lambda r: httpx.Response(500), max_retries=0)
        with pytest.raises(FetchFailedError):
            fetcher.fetch(URL)
        assert len(calls) == 1
        assert sleeps == []

    def test_timeout_retried(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        fetcher, calls, _ = make_fetcher(handler, max_retries=2)
        with pytest.raises(FetchFailedError) as exc:
            fetcher.fetch(URL)
        assert len(calls) == 3
        assert exc.value.status_code is None

    def test_connect_error_retried(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        fetcher, calls, _ = make_fetcher(handler, max_retries=1)
        with pytest.raises(FetchFailedError):
            fetcher.fetch(URL)
        assert len(calls) == 2

    def test_429_uses_retry_after(self):
        responses = iter(
            [
                httpx.Response(429, headers={"Retry-After": "7"}),
                httpx.Response(429, headers={"Retry-After": "600"}),
                httpx.Response(200, text="ok"),
            ]
        )
        fetcher, _, sleeps = make_fetcher(lambda r: next(responses))
        assert fetcher.fetch(URL) == "ok"
        assert sleeps == [7.0, 60.0]

    def test_429_without_header_uses_backoff(self):
        responses = iter([httpx.Response(429), httpx.Response(200, text="ok")])
        fetcher, _, sleeps = make_fetcher(lambda r: next(responses))
        fetcher.fetch(URL)
        assert sleeps == [1.0]

    def test_every_attempt_paced(self):
        limiter = MagicMock(spec=RateLimiter)
        fetcher = RateLimitedFetcher(
            limiter,
            max_retries=2,
            sleep=MagicMock(),
            transport=httpx.MockTransport(lambda r: httpx.Response(500)),
        )
        with pytest.raises(FetchFailedError):
            fetcher.fetch(URL)
        assert limiter.acquire.call_count == 3
