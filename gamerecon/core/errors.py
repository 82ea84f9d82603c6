"""Exception hierarchy.

Expected per-game outcomes (no match, duplicate row) are result values,
not exceptions. These cover fetch/parse failures and run-level faults.
"""


class GameReconError(Exception):
    """Base class for gamerecon errors."""


class FetchError(GameReconError):
    """Archive or feed request failed."""

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class FetchTerminalError(FetchError):
    """404, redirect or invalid identifier. Never retried."""


class QuotaExceededError(FetchTerminalError):
    """Daily request quota for a source is used up."""


class FetchFailedError(FetchError):
    """Transient failure that persisted through every retry."""


class MalformedDocumentError(GameReconError):
    """Archive document is missing or has the wrong root structure."""


class InfrastructureError(GameReconError):
    """A dependency the whole run relies on is unavailable."""


class PrimaryFeedError(InfrastructureError):
    """The primary schedule feed could not be read."""


class ReconciliationCancelledError(GameReconError):
    """A run was cancelled between games."""
