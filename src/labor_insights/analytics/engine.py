"""Peer-relative performance analytics over cached record snapshots."""

from __future__ import annotations

import logging
from typing import (
    AbstractSet,
    Any,
    Callable,
    Dict,
    FrozenSet,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from labor_insights.analytics.cohort import CohortSnapshot, EntityActivity, Totals
from labor_insights.analytics.interfaces import (
    AnalyticsResult,
    CategoryPosition,
    CohortBaseline,
    IntradaySnapshots,
    IPeerAnalyticsEngine,
    TrendPoint,
)
from labor_insights.analytics.metrics import (
    NEUTRAL_CONSISTENCY,
    consistency_score,
    mean_or,
    percentile_rank,
    tier_for,
    versatility_score,
)
from labor_insights.domain.models import Record


class PeerAnalyticsEngine(IPeerAnalyticsEngine):
    """Pure computations; holds no state and takes no locks."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def compute(
        self,
        entity_id: str,
        records: Sequence[Record],
        cohort_records: Sequence[Record],
        category_filter: Optional[Sequence[str]] = None,
        *,
        history: Optional[Sequence[Record]] = None,
        snapshots: Optional[IntradaySnapshots] = None,
    ) -> AnalyticsResult:
        """Compare ``entity_id`` with every other entity in the cohort.

        ``records`` and ``cohort_records`` cover the selected period. The
        target's own rows are taken from ``records``; the cohort's rows for the
        target are ignored so nothing is counted twice. ``history`` is the
        maximal cached window used for consistency and versatility; it
        defaults to the period's records.
        """

        allowed = frozenset(category_filter) if category_filter else None
        own = [r for r in records if r.entity_id == entity_id]
        peers = [r for r in cohort_records if r.entity_id != entity_id]
        if history is None:
            history = [*own, *peers]

        current = CohortSnapshot.from_records([*own, *peers], allowed)
        target = current.get(entity_id) or EntityActivity(entity_id)
        categories = frozenset(target.by_category)

        peer_totals = [
            peer_total
            for peer_total in (
                peer.totals_for(categories) for peer in current.peers_of(entity_id)
            )
            if peer_total.hours > 0
        ]
        totals = target.totals
        percentile = percentile_rank(totals.rate, [t.rate for t in peer_totals])

        consistency, baseline_consistency = self._consistency(
            entity_id, history, categories or allowed
        )
        category_count, versatility, baseline_versatility = self._versatility(
            entity_id, history, len(categories)
        )
        trends, granularity = self._trends(
            entity_id, own, history, allowed, snapshots
        )

        result = AnalyticsResult(
            entity_id=entity_id,
            entity_name=target.entity_name,
            total_hours=totals.hours,
            total_units=totals.units,
            rate=totals.rate,
            percentile=percentile,
            tier=tier_for(percentile),
            peer_count=len(peer_totals),
            consistency=consistency,
            versatility=versatility,
            category_count=category_count,
            baseline=CohortBaseline(
                rate=mean_or([t.rate for t in peer_totals], totals.rate),
                hours=mean_or([t.hours for t in peer_totals], totals.hours),
                units=mean_or([t.units for t in peer_totals], totals.units),
                consistency=baseline_consistency,
                versatility=baseline_versatility,
            ),
            positions=tuple(self._positions(entity_id, target, current)),
            trends=trends,
            trend_granularity=granularity,
        )
        self._logger.debug(
            "peer_analytics_computed",
            extra={
                "entity_id": entity_id,
                "percentile": result.percentile,
                "peer_count": result.peer_count,
                "categories": len(categories),
            },
        )
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _positions(
        entity_id: str, target: EntityActivity, cohort: CohortSnapshot
    ) -> List[CategoryPosition]:
        positions: List[CategoryPosition] = []
        for category_id, totals in target.by_category.items():
            if totals.hours <= 0:
                continue
            peer_rates = [
                peer.by_category[category_id].rate
                for peer in cohort.peers_of(entity_id)
                if category_id in peer.by_category
                and peer.by_category[category_id].hours > 0
            ]
            percentile = percentile_rank(totals.rate, peer_rates)
            positions.append(
                CategoryPosition(
                    category_id=category_id,
                    category_name=target.category_name(category_id),
                    rate=totals.rate,
                    percentile=percentile,
                    tier=tier_for(percentile),
                    hours=totals.hours,
                    units=totals.units,
                    peer_count=len(peer_rates),
                )
            )
        positions.sort(key=lambda pos: (-pos.percentile, pos.category_id))
        return positions

    @staticmethod
    def _consistency(
        entity_id: str,
        history: Sequence[Record],
        categories: Optional[AbstractSet[str]],
    ) -> Tuple[float, float]:
        # only the target's categories, so peers are compared on the same work
        cohort = CohortSnapshot.from_records(history, categories or None)
        target = cohort.get(entity_id)
        own = (
            consistency_score(target.daily_rates())
            if target is not None
            else NEUTRAL_CONSISTENCY
        )
        peer_scores = [
            consistency_score(rates)
            for rates in (peer.daily_rates() for peer in cohort.peers_of(entity_id))
            if len(rates) >= 2
        ]
        return own, mean_or(peer_scores, own)

    @staticmethod
    def _versatility(
        entity_id: str, history: Sequence[Record], period_category_count: int
    ) -> Tuple[int, float, float]:
        cohort = CohortSnapshot.from_records(history)
        target = cohort.get(entity_id)
        own_count = max(
            len(target.by_category) if target is not None else 0,
            period_category_count,
        )
        peer_counts = [len(peer.by_category) for peer in cohort.peers_of(entity_id)]
        max_count = max([own_count, *peer_counts])
        own = versatility_score(own_count, max_count)
        baseline = (
            versatility_score(mean_or(peer_counts, 0.0), max_count)
            if peer_counts
            else own
        )
        return own_count, own, baseline

    @staticmethod
    def _trends(
        entity_id: str,
        own: Sequence[Record],
        history: Sequence[Record],
        allowed: Optional[FrozenSet[str]],
        snapshots: Optional[IntradaySnapshots],
    ) -> Tuple[Dict[str, Tuple[TrendPoint, ...]], str]:
        def in_scope(rows: Sequence[Record]) -> List[Record]:
            return [
                r
                for r in rows
                if r.entity_id == entity_id
                and (allowed is None or r.category_id in allowed)
            ]

        period_rows = in_scope(own)
        single_day = len({r.date for r in period_rows}) == 1
        if snapshots and single_day:
            hourly = _hourly_trend(entity_id, snapshots, allowed)
            if hourly:
                return hourly, "hour"
        # one day gives one point per category; show the cached days around it
        rows = in_scope(history) if single_day else period_rows
        buckets: Dict[str, Dict[str, Totals]] = {}
        for record in rows:
            buckets.setdefault(record.category_id, {}).setdefault(
                record.date, Totals()
            ).add(record.hours, record.units_completed)
        return _to_points(buckets, str), "day"


def _hourly_trend(
    entity_id: str,
    snapshots: IntradaySnapshots,
    allowed: Optional[FrozenSet[str]],
) -> Dict[str, Tuple[TrendPoint, ...]]:
    buckets: Dict[str, Dict[int, Totals]] = {}
    for hour, snapshot in snapshots.items():
        for record in snapshot:
            if record.entity_id != entity_id:
                continue
            if allowed is not None and record.category_id not in allowed:
                continue
            buckets.setdefault(record.category_id, {}).setdefault(
                int(hour), Totals()
            ).add(record.hours, record.units_completed)
    return _to_points(buckets, hour_label)


def _to_points(
    buckets: Mapping[str, Mapping[Any, Totals]], label: Callable[[Any], str]
) -> Dict[str, Tuple[TrendPoint, ...]]:
    """Chronological points per category, dropping zero-hour buckets."""

    trends: Dict[str, Tuple[TrendPoint, ...]] = {}
    for category_id, by_bucket in buckets.items():
        points = tuple(
            TrendPoint(
                label=label(bucket),
                rate=totals.rate,
                hours=totals.hours,
                units=totals.units,
            )
            for bucket, totals in sorted(by_bucket.items())
            if totals.hours > 0
        )
        if points:
            trends[category_id] = points
    return trends


def hour_label(hour: int) -> str:
    """Render a 0-23 hour as a 12-hour clock label, e.g. ``"7 AM"``."""

    suffix = "PM" if hour >= 12 else "AM"
    twelve = hour % 12 or 12
    return f"{twelve} {suffix}"


def compute_peer_analytics(
    entity_id: str,
    records: Sequence[Record],
    cohort_records: Sequence[Record],
    category_filter: Optional[Sequence[str]] = None,
    *,
    history: Optional[Sequence[Record]] = None,
    snapshots: Optional[IntradaySnapshots] = None,
) -> AnalyticsResult:
    return PeerAnalyticsEngine().compute(
        entity_id,
        records,
        cohort_records,
        category_filter,
        history=history,
        snapshots=snapshots,
    )
