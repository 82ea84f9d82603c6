"""Core types and errors."""

from gamerecon.core.errors import (
    FetchError,
    FetchFailedError,
    FetchTerminalError,
    GameReconError,
    InfrastructureError,
    MalformedDocumentError,
    PrimaryFeedError,
    QuotaExceededError,
    ReconciliationCancelledError,
)
from gamerecon.core.types import (
    ArchiveCandidate,
    BackfillOutcome,
    BackfillStatus,
    DiscoveryResult,
    DiscoverySource,
    ExternalGame,
    GameIdMapping,
    HistoricalGame,
    MatchResult,
    ParsedGame,
    ReconciliationResult,
    ReconciliationRun,
    RunStatus,
    SaveOutcome,
    TeamRef,
)

__all__ = [
    "ArchiveCandidate",
    "BackfillOutcome",
    "BackfillStatus",
    "DiscoveryResult",
    "DiscoverySource",
    "ExternalGame",
    "FetchError",
    "FetchFailedError",
    "FetchTerminalError",
    "GameIdMapping",
    "GameReconError",
    "HistoricalGame",
    "InfrastructureError",
    "MalformedDocumentError",
    "MatchResult",
    "ParsedGame",
    "PrimaryFeedError",
    "QuotaExceededError",
    "ReconciliationCancelledError",
    "ReconciliationResult",
    "ReconciliationRun",
    "RunStatus",
    "SaveOutcome",
    "TeamRef",
]
