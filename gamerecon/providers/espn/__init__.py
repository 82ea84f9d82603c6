"""ESPN primary feed."""

from gamerecon.providers.espn.client import ESPNClient
from gamerecon.providers.espn.feed import EspnScheduleFeed

__all__ = ["ESPNClient", "EspnScheduleFeed"]
