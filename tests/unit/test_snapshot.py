import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from labor_insights.cache.base import BasePartitionStore
from labor_insights.cache.memory_store import InMemoryPartitionStore
from labor_insights.cache.snapshot import SNAPSHOT_VERSION, decode_snapshot
from labor_insights.cache.sqlite_store import SQLitePartitionStore
from labor_insights.domain.exceptions import InvalidBackupFormatError
from labor_insights.domain.models import PartitionKey, Record


class _Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now += timedelta(**delta)


@pytest.fixture
def clock() -> _Clock:
    return _Clock(datetime(2026, 2, 1, 10, 0, tzinfo=timezone.utc))


@pytest.fixture(params=["memory", "sqlite"])
def make_store(request, tmp_path: Path, clock: _Clock):
    created = []

    def factory(name: str = "store") -> BasePartitionStore:
        if request.param == "memory":
            store: BasePartitionStore = InMemoryPartitionStore(clock=clock)
        else:
            store = SQLitePartitionStore(tmp_path / f"{name}.db", clock=clock)
        store.open()
        created.append(store)
        return store

    yield factory
    for store in created:
        store.close()


def _record(entity_id: str, units: float = 10.0) -> Record:
    return Record(
        entity_id=entity_id,
        category_id="pack",
        date="2026-02-01",
        hours=1.0,
        units_completed=units,
    )


def test_export_then_import_into_empty_store(make_store):
    source = make_store("source")
    key = PartitionKey.build("FC_1", "2026-02-01", "day")
    source.put(key, [_record("E1"), _record("E2")])

    snapshot = source.export_all()
    target = make_store("target")
    result = target.import_all(json.loads(json.dumps(snapshot)))

    assert result.imported == 1
    assert result.skipped == 0
    restored = target.get(key)
    original = source.get(key)
    assert restored is not None and original is not None
    assert restored.records == original.records
    assert restored.fetched_at == original.fetched_at


def test_export_layout_is_keyed_by_encoded_partition(make_store):
    store = make_store()
    store.put(PartitionKey.build("FC1", "2026-02-01", "night"), [_record("E1")])

    snapshot = store.export_all()

    assert snapshot["version"] == SNAPSHOT_VERSION
    entry = snapshot["partitions"]["FC1_2026-02-01_night"]
    assert entry["record_count"] == 1
    assert entry["records"][0]["entity_id"] == "E1"
    assert "fetched_at" in entry


def test_import_skips_older_partition_and_keeps_newer(make_store, clock: _Clock):
    store = make_store()
    key = PartitionKey.build("FC1", "2026-02-01")
    store.put(key, [_record("E1", units=1.0)])
    backup = store.export_all()

    clock.advance(minutes=5)
    store.put(key, [_record("E1", units=99.0)])

    result = store.import_all(backup)

    assert result.imported == 0
    assert result.skipped == 1
    current = store.get(key)
    assert current is not None
    assert current.records[0].units_completed == 99.0


def test_import_skips_equal_timestamps(make_store):
    store = make_store()
    key = PartitionKey.build("FC1", "2026-02-01")
    store.put(key, [_record("E1")])

    result = store.import_all(store.export_all())

    assert (result.imported, result.skipped) == (0, 1)


def test_import_overwrites_when_incoming_is_newer(make_store, clock: _Clock):
    older = make_store("older")
    newer = make_store("newer")
    key = PartitionKey.build("FC1", "2026-02-01")
    older.put(key, [_record("E1", units=1.0)])
    clock.advance(minutes=1)
    newer.put(key, [_record("E1", units=2.0)])

    result = older.import_all(newer.export_all())

    assert result.imported == 1
    partition = older.get(key)
    assert partition is not None
    assert partition.records[0].units_completed == 2.0
    assert partition.fetched_at == clock.now


@pytest.mark.parametrize(
    "snapshot",
    [
        {"partitions": {}},
        {"version": 99, "partitions": {}},
        {"version": "1", "partitions": {}},
        {"version": True, "partitions": {}},
        {"version": 1},
        {"version": 1, "partitions": []},
    ],
)
def test_invalid_envelopes_are_rejected(snapshot):
    with pytest.raises(InvalidBackupFormatError):
        decode_snapshot(snapshot)


def test_malformed_entry_rejects_whole_import(make_store):
    store = make_store()
    good = {
        "records": [],
        "fetched_at": "2026-02-01T09:00:00+00:00",
        "record_count": 0,
    }
    bad_count = dict(good, record_count=3)
    snapshot = {
        "version": 1,
        "partitions": {
            "FC1_2026-01-31_all": good,
            "FC1_2026-02-01_all": bad_count,
        },
    }

    with pytest.raises(InvalidBackupFormatError):
        store.import_all(snapshot)
    assert store.partitions() == []


def test_malformed_key_rejects_import(make_store):
    store = make_store()
    snapshot = {
        "version": 1,
        "partitions": {
            "FC1_not-a-date_all": {
                "records": [],
                "fetched_at": "2026-02-01T09:00:00+00:00",
                "record_count": 0,
            }
        },
    }
    with pytest.raises(InvalidBackupFormatError):
        store.import_all(snapshot)


def test_invalid_record_rejects_import(make_store):
    store = make_store()
    snapshot = {
        "version": 1,
        "partitions": {
            "FC1_2026-02-01_all": {
                "records": [{"entity_id": "E1", "category_id": "x", "date": "bad"}],
                "fetched_at": "2026-02-01T09:00:00+00:00",
                "record_count": 1,
            }
        },
    }
    with pytest.raises(InvalidBackupFormatError):
        store.import_all(snapshot)


def test_import_accepts_camel_case_layout(make_store):
    store = make_store()
    snapshot = {
        "version": 1,
        "exportedAt": "2026-02-01T12:00:00+00:00",
        "partitions": {
            "FC1_2026-02-01_day": {
                "records": [
                    {
                        "entityId": "E1",
                        "entityName": "Ada",
                        "categoryId": "pick",
                        "categoryName": "Pick",
                        "date": "2026-02-01",
                        "shiftTag": "day",
                        "hours": 2,
                        "unitsCompleted": 30,
                    }
                ],
                "fetchedAt": "2026-02-01T09:00:00+00:00",
                "recordCount": 1,
            }
        },
    }

    result = store.import_all(snapshot)

    assert result.imported == 1
    partition = store.get(PartitionKey.build("FC1", "2026-02-01", "day"))
    assert partition is not None
    assert partition.fetched_at == datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc)
    record = partition.records[0]
    assert (record.entity_id, record.units_completed, record.rate) == ("E1", 30, 15)
