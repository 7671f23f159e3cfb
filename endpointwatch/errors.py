"""Error types shared across endpointwatch components."""

from __future__ import annotations


class EndpointWatchError(Exception):
    """Base error of the endpointwatch package."""


class ConfigError(EndpointWatchError):
    """Configuration is missing or invalid; fatal at startup."""


class StoreError(EndpointWatchError):
    """Persistence store operation failed."""


class DiscoveryError(EndpointWatchError):
    """Discovery fetch failed or returned an unusable response."""

    def __init__(self, locality: int, reason: str) -> None:
        self.locality = locality
        self.reason = reason
        super().__init__(f"Discovery failed for locality {locality}: {reason}")
