"""Game identity matching and discovery."""

from gamerecon.consumers.matching.discovery import DiscoveryService
from gamerecon.consumers.matching.identity_matcher import IdentityMatcher, MatchReport

__all__ = ["DiscoveryService", "IdentityMatcher", "MatchReport"]
