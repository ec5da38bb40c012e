from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from family_ledger.utils.dates import format_date, period_range

TAIPEI = ZoneInfo("Asia/Taipei")

# A Wednesday
NOW = datetime(2024, 5, 15, 10, 30, tzinfo=TAIPEI)


def test_today_range():
    start, end = period_range("today", NOW)
    assert start == datetime(2024, 5, 15, tzinfo=TAIPEI)
    assert end == datetime(2024, 5, 16, tzinfo=TAIPEI)


def test_week_starts_on_monday():
    start, end = period_range("week", NOW)
    assert start == datetime(2024, 5, 13, tzinfo=TAIPEI)
    assert end == datetime(2024, 5, 16, tzinfo=TAIPEI)


def test_week_on_a_sunday_reaches_back_six_days():
    start, _ = period_range("week", datetime(2024, 5, 19, 23, 59, tzinfo=TAIPEI))
    assert start == datetime(2024, 5, 13, tzinfo=TAIPEI)


def test_month_range():
    start, end = period_range("month", NOW)
    assert start == datetime(2024, 5, 1, tzinfo=TAIPEI)
    assert end == datetime(2024, 5, 16, tzinfo=TAIPEI)


def test_month_end_rolls_into_next_month():
    _, end = period_range("month", datetime(2024, 1, 31, 8, 0, tzinfo=TAIPEI))
    assert end == datetime(2024, 2, 1, tzinfo=TAIPEI)


def test_unknown_period_raises():
    with pytest.raises(ValueError):
        period_range("year", NOW)


def test_format_date_uses_local_day():
    # 20:00 UTC is already the next morning in Taipei
    utc = datetime(2024, 3, 6, 20, 0, tzinfo=ZoneInfo("UTC"))
    assert format_date(utc) == "3/7"
