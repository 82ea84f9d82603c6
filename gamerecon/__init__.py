"""Game reconciliation between a primary schedule feed and a play-by-play archive."""

__version__ = "0.1.0"
