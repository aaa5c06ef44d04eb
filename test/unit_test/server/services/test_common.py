from datetime import datetime, timedelta, timezone

import pytest

from indaba.server.services.common import (
    age_in_months,
    age_in_years,
    dump_json,
    expiry_info,
    full_name,
    inclusive_end,
    load_json,
    minutes_to_hours,
    naive_utc,
    start_of_day,
)


class TestJsonColumns:
    def test_load_json(self):
        assert load_json('{"a": 1}') == {"a": 1}
        assert load_json(None, []) == []
        assert load_json("", {}) == {}
        assert load_json("{broken", "fallback") == "fallback"

    def test_dump_json(self):
        assert dump_json(None) is None
        assert dump_json(["a", "b"]) == '["a", "b"]'
        assert dump_json({"when": datetime(2024, 1, 2)}) == '{"when": "2024-01-02 00:00:00"}'


class TestDates:
    def test_naive_utc_converts_aware_values(self):
        aware = datetime(2024, 3, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))

        assert naive_utc(aware) == datetime(2024, 3, 1, 8, 0)
        assert naive_utc(datetime(2024, 3, 1, 10, 0)) == datetime(2024, 3, 1, 10, 0)

    def test_start_of_day_and_inclusive_end(self):
        value = datetime(2024, 3, 1, 15, 30, 12)

        assert start_of_day(value) == datetime(2024, 3, 1)
        assert inclusive_end(value) == datetime(2024, 3, 2)

    @pytest.mark.parametrize(
        "birth,today,years,months",
        [
            (datetime(2020, 6, 15), datetime(2024, 6, 15), 4, 48),
            (datetime(2020, 6, 15), datetime(2024, 6, 14), 3, 47),
            (datetime(2024, 1, 31), datetime(2024, 2, 29), 0, 0),
            (datetime(2025, 1, 1), datetime(2024, 1, 1), 0, 0),
        ],
    )
    def test_ages(self, birth, today, years, months):
        assert age_in_years(birth, today) == years
        assert age_in_months(birth, today) == months


class TestExpiry:
    def test_future_expiry_rounds_up(self):
        today = datetime(2024, 1, 1, 12, 0)

        info = expiry_info(datetime(2024, 1, 11, 13, 0), today)

        assert info == {"is_expired": False, "expires_in_days": 11}

    def test_past_expiry(self):
        today = datetime(2024, 1, 10)

        info = expiry_info(datetime(2024, 1, 5), today)

        assert info["is_expired"] is True
        assert info["expires_in_days"] == -5


def test_full_name_and_hours():
    assert full_name("Kim", "Lee") == "Kim Lee"
    assert full_name("Kim", None) == "Kim"
    assert minutes_to_hours(90) == 1.5
    assert minutes_to_hours(None) == 0.0
