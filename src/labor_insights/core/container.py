"""Dependency injection container for building fully-wired services."""

from __future__ import annotations

from typing import Callable, Optional

import httpx

from labor_insights.analytics.engine import PeerAnalyticsEngine
from labor_insights.cache.base import BasePartitionStore
from labor_insights.cache.memory_store import InMemoryPartitionStore
from labor_insights.cache.sqlite_store import SQLitePartitionStore
from labor_insights.cache.staleness import StalenessPolicy
from labor_insights.core.config import InsightsConfig
from labor_insights.core.service import InsightsService
from labor_insights.domain.interfaces import Clock, IPartitionFetcher
from labor_insights.fetchers.http_fetcher import FetcherConfig, HttpPartitionFetcher
from labor_insights.query.engine import RangeQueryEngine
from labor_insights.sync.synchronizer import CacheSynchronizer
from labor_insights.utils.dates import local_now


class DIContainer:
    """Factory helpers that assemble an InsightsService with default wiring."""

    @staticmethod
    def create_service(
        *,
        config: Optional[InsightsConfig] = None,
        fetcher: Optional[IPartitionFetcher] = None,
        clock: Optional[Clock] = None,
    ) -> InsightsService:
        """Build and open the store, then wire every collaborator around it.

        Without an explicit ``fetcher`` an HTTP fetcher is created when
        ``fetch_base_url`` is configured; otherwise refresh is unavailable.
        """

        cfg = config or InsightsConfig.from_env()
        now = clock or local_now

        store = DIContainer._build_store(cfg, now)
        store.open()

        resolved_fetcher = fetcher or DIContainer._build_http_fetcher(cfg)
        synchronizer = (
            DIContainer._build_synchronizer(cfg, store, resolved_fetcher, now)
            if resolved_fetcher is not None
            else None
        )
        query_engine = RangeQueryEngine(
            store, schedule=cfg.shift_schedule, clock=now
        )
        return InsightsService(
            cfg,
            store,
            query_engine,
            PeerAnalyticsEngine(),
            synchronizer=synchronizer,
            clock=now,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _build_store(config: InsightsConfig, clock: Clock) -> BasePartitionStore:
        factories: dict[str, Callable[[], BasePartitionStore]] = {
            "sqlite": lambda: SQLitePartitionStore(config.db_path, clock=clock),
            "memory": lambda: InMemoryPartitionStore(clock=clock),
        }
        try:
            return factories[config.store_backend]()
        except KeyError as exc:
            raise ValueError(f"Unknown store backend '{config.store_backend}'") from exc

    @staticmethod
    def _build_synchronizer(
        config: InsightsConfig,
        store: BasePartitionStore,
        fetcher: IPartitionFetcher,
        clock: Clock,
    ) -> CacheSynchronizer:
        policy = StalenessPolicy(store, config.refresh_interval, clock=clock)
        return CacheSynchronizer(
            store,
            policy,
            fetcher,
            parallel_fetches=config.parallel_fetches,
            store_retry_attempts=config.store_retry_attempts,
            store_retry_delay=config.store_retry_delay,
            clock=clock,
        )

    @staticmethod
    def _build_http_fetcher(config: InsightsConfig) -> Optional[HttpPartitionFetcher]:
        if not config.fetch_base_url:
            return None
        fetcher_config = FetcherConfig(
            base_url=config.fetch_base_url, timeout=config.fetch_timeout_seconds
        )
        return HttpPartitionFetcher(
            httpx.Client(timeout=fetcher_config.timeout), fetcher_config
        )
