from datetime import datetime, timedelta, timezone

import pytest

from labor_insights.cache.memory_store import InMemoryPartitionStore
from labor_insights.domain.models import PartitionKey, Record, ShiftSchedule
from labor_insights.query.dedup import resolve_partitions, shift_tags_by_date
from labor_insights.query.engine import RangeQueryEngine

SCOPE = "FC1"
TODAY = "2026-02-10"


class _Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> _Clock:
    # 12:00 falls in the day shift
    return _Clock(datetime(2026, 2, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(clock: _Clock) -> InMemoryPartitionStore:
    instance = InMemoryPartitionStore(clock=clock)
    instance.open()
    return instance


@pytest.fixture
def engine(store: InMemoryPartitionStore, clock: _Clock) -> RangeQueryEngine:
    return RangeQueryEngine(store, schedule=ShiftSchedule(), clock=clock)


def _put(store, day: str, shift: str, count: int) -> None:
    records = [
        Record(
            entity_id=f"{shift}-{idx}",
            category_id="pick",
            date=day,
            shift_tag=shift,
            hours=1.0,
            units_completed=10.0,
        )
        for idx in range(count)
    ]
    store.put(PartitionKey.build(SCOPE, day, shift), records)


def test_shift_partitions_supersede_all_partition(store, engine):
    _put(store, "2026-02-01", "day", 3)
    _put(store, "2026-02-01", "night", 2)
    _put(store, "2026-02-01", "all", 10)

    result = engine.query_range(SCOPE, "2026-02-01", "2026-02-01", "all")

    assert len(result.records) == 5
    assert {r.entity_id.split("-")[0] for r in result.records} == {"day", "night"}
    assert result.dates_matched == ("2026-02-01",)


def test_all_partition_used_when_no_shift_partitions(store, engine):
    _put(store, "2026-02-01", "all", 4)

    result = engine.query_range(SCOPE, "2026-02-01", "2026-02-01")

    assert len(result.records) == 4


def test_single_shift_partition_still_supersedes_all(store, engine):
    _put(store, "2026-02-01", "night", 2)
    _put(store, "2026-02-01", "all", 7)

    result = engine.query_range(SCOPE, "2026-02-01", "2026-02-01")

    assert len(result.records) == 2


def test_dedup_is_evaluated_per_date(store, engine):
    _put(store, "2026-02-01", "day", 1)
    _put(store, "2026-02-01", "all", 6)
    _put(store, "2026-02-02", "all", 4)

    result = engine.query_range(SCOPE, "2026-02-01", "2026-02-02")

    assert len(result.records) == 5
    assert result.dates_matched == ("2026-02-01", "2026-02-02")


def test_range_is_inclusive_and_scoped(store, engine):
    for day in ("2026-01-31", "2026-02-01", "2026-02-02", "2026-02-03"):
        _put(store, day, "all", 1)
    store.put(
        PartitionKey.build("OTHER", "2026-02-01"),
        [Record(entity_id="x", category_id="pick", date="2026-02-01")],
    )

    result = engine.query_range(SCOPE, "2026-02-01", "2026-02-02")

    assert result.dates_matched == ("2026-02-01", "2026-02-02")
    assert len(result.records) == 2


def test_inverted_range_is_empty(store, engine):
    _put(store, "2026-02-01", "all", 1)
    result = engine.query_range(SCOPE, "2026-02-05", "2026-02-01")
    assert result.records == ()
    assert result.dates_matched == ()


def test_empty_partitions_do_not_count_as_matched_dates(store, engine):
    store.put(PartitionKey.build(SCOPE, "2026-02-01"), [])
    result = engine.query_range(SCOPE, "2026-02-01", "2026-02-01")
    assert result.dates_matched == ()


def test_shift_filter_selects_matching_shift_partitions(store, engine):
    _put(store, "2026-02-01", "day", 3)
    _put(store, "2026-02-01", "night", 2)

    day = engine.query_range(SCOPE, "2026-02-01", "2026-02-01", "day")
    night = engine.query_range(SCOPE, "2026-02-01", "2026-02-01", "night")

    assert len(day.records) == 3
    assert len(night.records) == 2


def test_shift_filter_excludes_past_all_partitions(store, engine):
    _put(store, "2026-02-01", "all", 4)

    for shift in ("day", "night"):
        result = engine.query_range(SCOPE, "2026-02-01", "2026-02-01", shift)
        assert result.records == ()


def test_today_all_partition_attributed_to_current_shift(store, engine, clock):
    _put(store, TODAY, "all", 4)

    assert len(engine.query_range(SCOPE, TODAY, TODAY, "day").records) == 4
    assert engine.query_range(SCOPE, TODAY, TODAY, "night").records == ()

    clock.now = clock.now.replace(hour=21)
    assert engine.query_range(SCOPE, TODAY, TODAY, "day").records == ()
    assert len(engine.query_range(SCOPE, TODAY, TODAY, "night").records) == 4


def test_query_accepts_date_objects(store, engine, clock):
    _put(store, "2026-02-09", "all", 2)
    yesterday = clock.now.date() - timedelta(days=1)

    result = engine.query_range(SCOPE, yesterday, yesterday)

    assert len(result.records) == 2


def test_query_rejects_unknown_shift_filter(engine):
    with pytest.raises(ValueError):
        engine.query_range(SCOPE, "2026-02-01", "2026-02-01", "swing")


def test_query_all_returns_every_date(store, engine):
    _put(store, "2025-12-01", "all", 1)
    _put(store, "2026-02-01", "day", 2)

    result = engine.query_all(SCOPE)

    assert result.dates_matched == ("2025-12-01", "2026-02-01")
    assert len(result.records) == 3


def test_resolve_partitions_drops_all_listed_before_its_shift_partition(store):
    _put(store, "2026-02-01", "all", 3)
    _put(store, "2026-02-01", "day", 1)
    everything = store.get(PartitionKey.build(SCOPE, "2026-02-01", "all"))
    day = store.get(PartitionKey.build(SCOPE, "2026-02-01", "day"))

    present = shift_tags_by_date([everything, day])
    resolved = resolve_partitions([everything, day])

    assert {tag.value for tag in present["2026-02-01"]} == {"all", "day"}
    assert resolved == [day]


def test_naive_clock_still_attributes_today_to_current_shift(store):
    naive = _Clock(datetime(2026, 2, 10, 20, 0))
    engine = RangeQueryEngine(store, clock=naive)
    _put(store, TODAY, "all", 2)

    assert len(engine.query_range(SCOPE, TODAY, TODAY, "night").records) == 2
    assert engine.query_range(SCOPE, TODAY, TODAY, "day").records == ()
