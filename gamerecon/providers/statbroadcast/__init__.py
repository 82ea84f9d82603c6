"""StatBroadcast archive provider."""

from gamerecon.providers.statbroadcast.client import StatBroadcastClient
from gamerecon.providers.statbroadcast.parser import StatBroadcastParser

__all__ = ["StatBroadcastClient", "StatBroadcastParser"]
