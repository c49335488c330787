"""Pure scoring helpers shared by the peer analytics engine."""

from __future__ import annotations

import math
from statistics import fmean, pstdev
from typing import Sequence

from labor_insights.analytics.interfaces import Tier

NEUTRAL_PERCENTILE = 50
NEUTRAL_CONSISTENCY = 50.0
MIN_CONSISTENCY_DAYS = 2


def aggregate_rate(total_units: float, total_hours: float) -> float:
    """Units per hour from summed totals; zero hours yields 0."""

    if total_hours <= 0:
        return 0.0
    return total_units / total_hours


def percentile_rank(value: float, peer_values: Sequence[float]) -> int:
    """Share of peers strictly below ``value``, rounded half up to 0-100."""

    if not peer_values:
        return NEUTRAL_PERCENTILE
    below = sum(1 for peer in peer_values if peer < value)
    return int(math.floor(100 * below / len(peer_values) + 0.5))


def tier_for(percentile: float) -> Tier:
    if percentile >= 75:
        return Tier.NATURAL
    if percentile >= 50:
        return Tier.ACCOMPLISHED
    if percentile >= 25:
        return Tier.COMPETENT
    return Tier.UNCONVINCING


def consistency_score(daily_rates: Sequence[float]) -> float:
    """100 minus the coefficient of variation (as a percentage), floored at 0."""

    if len(daily_rates) < MIN_CONSISTENCY_DAYS:
        return NEUTRAL_CONSISTENCY
    mean = fmean(daily_rates)
    if mean <= 0:
        return 0.0
    variation = pstdev(daily_rates, mu=mean) / mean
    return max(0.0, 100.0 - 100.0 * variation)


def versatility_score(category_count: float, max_category_count: int) -> float:
    return 100.0 * category_count / max(1, max_category_count)


def mean_or(values: Sequence[float], default: float) -> float:
    if not values:
        return default
    return fmean(values)
