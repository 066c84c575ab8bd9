"""Portal services: discovery, reachability, status, registry and proxy."""

from portal.services.reachability import ReachabilityCache, ReachabilityProber
from portal.services.registry import ProjectRegistry
from portal.services.status import StatusAggregator
from portal.services.url_deriver import NetworkConfig, UrlDeriver

__all__ = [
    "ReachabilityCache",
    "ReachabilityProber",
    "ProjectRegistry",
    "StatusAggregator",
    "NetworkConfig",
    "UrlDeriver",
]
