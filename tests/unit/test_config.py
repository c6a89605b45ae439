"""Unit tests for settings validation and the clock helpers."""

from datetime import date, datetime, time, timezone

import pytest
from libs.common.config import Settings, parse_time_of_day
from libs.common.datetime_utils import (
    date_range,
    local_datetime,
    local_today,
    to_local,
    utc_midnight,
)
from pydantic import ValidationError


@pytest.mark.unit
def test_defaults():
    settings = Settings()

    assert settings.ATTENDANCE_CUTOFF_TIME == time(7, 0)
    assert settings.ABSENCE_SWEEP_TIME == time(7, 5)
    assert settings.ON_TIME_THRESHOLD is None


@pytest.mark.unit
def test_postgres_url_uses_psycopg_driver():
    settings = Settings(DATABASE_URL="postgresql://u:p@db:5432/attendance")

    assert settings.DATABASE_URL == "postgresql+psycopg://u:p@db:5432/attendance"


@pytest.mark.unit
@pytest.mark.parametrize("value", ["7am", "25:00", ""])
def test_invalid_time_of_day(value):
    with pytest.raises(ValueError):
        parse_time_of_day(value)


@pytest.mark.unit
def test_on_time_threshold_must_precede_cutoff():
    with pytest.raises(ValidationError):
        Settings(ATTENDANCE_CUTOFF_TIME="07:00", ON_TIME_THRESHOLD="07:00")


@pytest.mark.unit
def test_unknown_timezone_is_rejected():
    with pytest.raises(ValidationError):
        Settings(TIMEZONE="Mars/Olympus_Mons")


# ---------------------------------------------------------------------------
# Clock helpers (TIMEZONE=Asia/Karachi, UTC+5)
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_local_day_differs_from_utc_day_late_in_the_evening():
    late_utc = datetime(2025, 6, 10, 20, 30, tzinfo=timezone.utc)

    assert local_today(late_utc) == date(2025, 6, 11)
    assert to_local(late_utc).hour == 1


@pytest.mark.unit
def test_local_datetime_is_aware():
    cutoff = local_datetime(date(2025, 6, 11), time(7, 0))

    assert cutoff.astimezone(timezone.utc) == datetime(
        2025, 6, 11, 2, 0, tzinfo=timezone.utc
    )


@pytest.mark.unit
def test_utc_midnight_normalizes_dates_and_datetimes():
    expected = datetime(2025, 6, 11, tzinfo=timezone.utc)

    assert utc_midnight(date(2025, 6, 11)) == expected
    assert utc_midnight(datetime(2025, 6, 11, 23, 59, tzinfo=timezone.utc)) == expected


@pytest.mark.unit
def test_date_range_is_inclusive():
    days = list(date_range(date(2025, 6, 10), date(2025, 6, 12)))

    assert days == [date(2025, 6, 10), date(2025, 6, 11), date(2025, 6, 12)]
    assert list(date_range(date(2025, 6, 12), date(2025, 6, 10))) == []
