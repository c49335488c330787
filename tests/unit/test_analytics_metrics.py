import pytest

from labor_insights.analytics.interfaces import Tier
from labor_insights.analytics.metrics import (
    aggregate_rate,
    consistency_score,
    mean_or,
    percentile_rank,
    tier_for,
    versatility_score,
)


def test_aggregate_rate_uses_sums():
    # {h:1,u:10} and {h:10,u:10}
    assert aggregate_rate(20, 11) == pytest.approx(20 / 11)


def test_aggregate_rate_zero_hours():
    assert aggregate_rate(50, 0) == 0.0


def test_percentile_strictly_below():
    assert percentile_rank(30, [20, 25, 35]) == 67
    assert percentile_rank(25, [20, 25, 35]) == 33


def test_percentile_rounds_half_up():
    # 1 of 8 below -> 12.5
    assert percentile_rank(2, [1, 3, 3, 3, 3, 3, 3, 3]) == 13


def test_percentile_between_halves_of_even_peer_list_is_fifty():
    assert percentile_rank(20, [10, 15, 25, 30]) == 50


def test_percentile_at_median_of_odd_peer_list():
    # the median itself is not strictly below, so 2 of 5
    assert percentile_rank(20, [10, 15, 20, 25, 30]) == 40
    assert percentile_rank(20, [10, 20, 30]) == 33


def test_percentile_bounds():
    peers = [1.0, 2.0, 3.0]
    assert percentile_rank(0.0, peers) == 0
    assert percentile_rank(99.0, peers) == 100
    for value in (0.5, 1.0, 1.5, 2.5, 3.0):
        assert 0 <= percentile_rank(value, peers) <= 100


def test_percentile_without_peers_is_neutral():
    assert percentile_rank(12.0, []) == 50


@pytest.mark.parametrize(
    "percentile, tier",
    [
        (100, Tier.NATURAL),
        (75, Tier.NATURAL),
        (74, Tier.ACCOMPLISHED),
        (50, Tier.ACCOMPLISHED),
        (49, Tier.COMPETENT),
        (25, Tier.COMPETENT),
        (24, Tier.UNCONVINCING),
        (0, Tier.UNCONVINCING),
    ],
)
def test_tier_boundaries(percentile, tier):
    assert tier_for(percentile) is tier


def test_consistency_needs_two_days():
    assert consistency_score([]) == 50.0
    assert consistency_score([42.0]) == 50.0


def test_consistency_of_steady_rates():
    assert consistency_score([10.0, 10.0, 10.0]) == pytest.approx(100.0)


def test_consistency_uses_population_deviation():
    # mean 20, population stdev 10
    assert consistency_score([10.0, 30.0]) == pytest.approx(50.0)


def test_consistency_is_floored_at_zero():
    assert consistency_score([1.0, 100.0, 1.0, 100.0, 0.1]) >= 0.0
    assert consistency_score([0.0, 0.0]) == 0.0


def test_versatility_normalizes_against_max():
    assert versatility_score(2, 4) == pytest.approx(50.0)
    assert versatility_score(0, 0) == 0.0


def test_mean_or_default():
    assert mean_or([], 7.0) == 7.0
    assert mean_or([1.0, 3.0], 7.0) == pytest.approx(2.0)
