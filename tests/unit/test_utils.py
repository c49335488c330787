from datetime import date, datetime, timezone

import pytest

from labor_insights.domain.exceptions import InvalidDateError, StoreUnavailableError
from labor_insights.utils.dates import ensure_aware, normalize_date, to_day
from labor_insights.utils.retry import retry


def test_normalize_date_accepts_supported_inputs():
    assert normalize_date("2026-02-01") == "2026-02-01"
    assert normalize_date(date(2026, 2, 1)) == "2026-02-01"
    assert normalize_date(datetime(2026, 2, 1, 23, 59)) == "2026-02-01"
    assert to_day(" 2026-02-01 ") == date(2026, 2, 1)


@pytest.mark.parametrize("value", ["2026-2-1", "2026-02-30", "yesterday", "", 20260201, None])
def test_normalize_date_rejects_malformed_input(value):
    with pytest.raises(InvalidDateError):
        normalize_date(value)


def test_invalid_date_error_is_value_error_with_context():
    with pytest.raises(ValueError) as excinfo:
        normalize_date("02/01/2026")
    assert excinfo.value.context["value"] == "02/01/2026"


def test_ensure_aware_assumes_local_time_for_naive_datetimes():
    aware = ensure_aware(datetime(2026, 2, 1, 8, 0))
    assert aware.tzinfo is not None
    utc = datetime(2026, 2, 1, 8, 0, tzinfo=timezone.utc)
    assert ensure_aware(utc) == utc


def test_retry_succeeds_after_transient_failures():
    calls = {"count": 0}
    delays = []

    @retry(attempts=3, delay=0.1, backoff=2.0, sleep=delays.append)
    def flaky():
        calls["count"] += 1
        if calls["count"] < 3:
            raise StoreUnavailableError("locked")
        return "ok"

    assert flaky() == "ok"
    assert calls["count"] == 3
    assert delays == pytest.approx([0.1, 0.2])


def test_retry_reraises_last_error():
    @retry(attempts=2, sleep=lambda _: None)
    def always_fails():
        raise StoreUnavailableError("down")

    with pytest.raises(StoreUnavailableError):
        always_fails()


def test_retry_does_not_catch_other_errors():
    calls = {"count": 0}

    @retry(attempts=3, sleep=lambda _: None)
    def broken():
        calls["count"] += 1
        raise KeyError("nope")

    with pytest.raises(KeyError):
        broken()
    assert calls["count"] == 1


def test_retry_rejects_zero_attempts():
    with pytest.raises(ValueError):
        retry(attempts=0)
