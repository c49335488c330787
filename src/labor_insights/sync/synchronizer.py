"""Keeps the partition cache warm by fetching only what the policy marks stale."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from labor_insights.domain.exceptions import FetchError
from labor_insights.domain.interfaces import (
    Clock,
    IPartitionFetcher,
    IPartitionStore,
    IStalenessPolicy,
)
from labor_insights.domain.models import PartitionKey, ShiftTag
from labor_insights.utils.dates import DateLike, local_now, normalize_date
from labor_insights.utils.retry import retry


def dates_to_cache(days: int, today: date) -> List[str]:
    """The last ``days`` calendar days ending today, newest first."""

    if days <= 0:
        raise ValueError("days must be greater than zero")
    return [(today - timedelta(days=offset)).isoformat() for offset in range(days)]


class SyncProgress(BaseModel):
    """Running counters for the latest sync of a scope."""

    model_config = ConfigDict(frozen=True)

    entity_scope: str
    total: int = 0
    completed: int = 0
    failed: int = 0
    updated_at: datetime


class SyncReport(BaseModel):
    """Which keys a sync fetched, left alone, or failed to fetch."""

    model_config = ConfigDict(frozen=True)

    entity_scope: str
    fetched: List[str] = Field(default_factory=list)
    up_to_date: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)


class CacheSynchronizer:
    """Fetches stale partitions with bounded parallelism and stores the results.

    A failed fetch is logged and the partition is left as it was; the next
    sync asks the policy again, so no retry bookkeeping is kept here. Store
    writes that hit ``StoreUnavailableError`` are retried with backoff.
    """

    def __init__(
        self,
        store: IPartitionStore,
        policy: IStalenessPolicy,
        fetcher: IPartitionFetcher,
        *,
        parallel_fetches: int = 3,
        store_retry_attempts: int = 3,
        store_retry_delay: float = 0.1,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if parallel_fetches < 1:
            raise ValueError("parallel_fetches must be at least 1")
        self._store = store
        self._policy = policy
        self._fetcher = fetcher
        self._parallel_fetches = parallel_fetches
        self._clock = clock or local_now
        self._logger = logger or logging.getLogger(__name__)
        self._progress: Dict[str, SyncProgress] = {}
        self._progress_lock = threading.Lock()
        self._put = retry(
            attempts=store_retry_attempts,
            delay=store_retry_delay,
            logger=self._logger,
        )(self._store.put)

    def sync(
        self,
        entity_scope: str,
        dates: Optional[Iterable[DateLike]] = None,
        shifts: Sequence[ShiftTag | str] = (ShiftTag.ALL,),
        *,
        days: int = 60,
    ) -> SyncReport:
        """Fetch every stale ``(date, shift)`` partition of the scope."""

        days_list = (
            [normalize_date(day) for day in dates]
            if dates is not None
            else dates_to_cache(days, self._clock().date())
        )
        keys = [
            PartitionKey.build(entity_scope, day, shift)
            for day in days_list
            for shift in shifts
        ]
        stale = [key for key in keys if self._policy.needs_fetch(key)]
        stale_keys = set(stale)
        fresh = [key.encode() for key in keys if key not in stale_keys]
        self._set_progress(entity_scope, total=len(stale), completed=0, failed=0)
        self._logger.info(
            "sync_started",
            extra={
                "entity_scope": entity_scope,
                "stale": len(stale),
                "up_to_date": len(fresh),
            },
        )

        fetched: List[str] = []
        failed: List[str] = []
        if stale:
            with ThreadPoolExecutor(max_workers=self._parallel_fetches) as executor:
                outcomes = list(executor.map(self._refresh, stale))
            for key, ok in zip(stale, outcomes):
                (fetched if ok else failed).append(key.encode())

        report = SyncReport(
            entity_scope=entity_scope,
            fetched=fetched,
            up_to_date=fresh,
            failed=failed,
        )
        self._logger.info(
            "sync_finished",
            extra={
                "entity_scope": entity_scope,
                "fetched": len(report.fetched),
                "failed": len(report.failed),
            },
        )
        return report

    def refresh_partition(self, key: PartitionKey) -> bool:
        """Fetch and store one partition regardless of staleness."""

        return self._refresh(key)

    def progress(self, entity_scope: str) -> Optional[SyncProgress]:
        with self._progress_lock:
            return self._progress.get(entity_scope)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _refresh(self, key: PartitionKey) -> bool:
        try:
            records = self._fetcher.fetch_partition(key)
        except FetchError as exc:
            self._logger.warning(
                "partition_fetch_failed",
                extra={"key": key.encode(), "error": str(exc)},
            )
            self._bump_progress(key.entity_scope, failed=1)
            return False
        except Exception:
            # fetchers are pluggable; anything they raise fails only this key
            self._logger.exception(
                "partition_fetch_failed", extra={"key": key.encode()}
            )
            self._bump_progress(key.entity_scope, failed=1)
            return False
        self._put(key, list(records))
        self._bump_progress(key.entity_scope, completed=1)
        return True

    def _set_progress(
        self, entity_scope: str, *, total: int, completed: int, failed: int
    ) -> None:
        with self._progress_lock:
            self._progress[entity_scope] = SyncProgress(
                entity_scope=entity_scope,
                total=total,
                completed=completed,
                failed=failed,
                updated_at=self._clock(),
            )

    def _bump_progress(
        self, entity_scope: str, *, completed: int = 0, failed: int = 0
    ) -> None:
        with self._progress_lock:
            current = self._progress.get(entity_scope)
            if current is None:
                return
            self._progress[entity_scope] = current.model_copy(
                update={
                    "completed": current.completed + completed,
                    "failed": current.failed + failed,
                    "updated_at": self._clock(),
                }
            )
