"""Labor insights: time-partitioned record cache and peer analytics."""

from .analytics.engine import PeerAnalyticsEngine, compute_peer_analytics
from .core.container import DIContainer
from .core.service import InsightsService

__all__ = [
    "DIContainer",
    "InsightsService",
    "PeerAnalyticsEngine",
    "compute_peer_analytics",
    "domain",
    "cache",
    "query",
    "analytics",
    "sync",
    "fetchers",
    "core",
    "utils",
]
