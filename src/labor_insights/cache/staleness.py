"""Decides when a cached partition must be fetched again."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from labor_insights.domain.interfaces import Clock, IPartitionStore, IStalenessPolicy
from labor_insights.domain.models import PartitionKey
from labor_insights.utils.dates import ensure_aware, local_now


class StalenessPolicy(IStalenessPolicy):
    """Historical days are closed; today (and later) refreshes on an interval."""

    def __init__(
        self,
        store: IPartitionStore,
        refresh_interval: timedelta = timedelta(seconds=60),
        *,
        clock: Optional[Clock] = None,
    ) -> None:
        if refresh_interval < timedelta(0):
            raise ValueError("refresh_interval must not be negative")
        self._store = store
        self._refresh_interval = refresh_interval
        self._clock = clock or local_now

    @property
    def refresh_interval(self) -> timedelta:
        return self._refresh_interval

    def needs_fetch(self, key: PartitionKey) -> bool:
        partition = self._store.get(key)
        if partition is None:
            return True
        now = ensure_aware(self._clock())
        if key.day < now.date():
            return False
        return now - partition.fetched_at >= self._refresh_interval
