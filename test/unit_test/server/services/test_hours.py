"""
Unit tests for hours and shift arithmetic and schedule building.
"""

from datetime import datetime

import pytest

from indaba.core.database.entities.nanny import ActiveShift, HoursLog, Routine
from indaba.core.errors import BadRequestError
from indaba.server.services.hours import (
    build_schedule,
    compute_duration,
    group_by_date,
    is_overtime,
    month_start,
    parse_hhmm,
    paused_minutes,
    shift_elapsed_minutes,
    week_start,
)


class TestDuration:
    def test_parse_hhmm(self):
        assert parse_hhmm("08:30") == 510
        assert parse_hhmm("00:00") == 0

    def test_simple_duration(self):
        assert compute_duration("08:00", "17:00", 60) == 480

    def test_overnight_duration(self):
        assert compute_duration("22:00", "06:00", 0) == 480

    def test_breaks_consuming_whole_span_rejected(self):
        with pytest.raises(BadRequestError):
            compute_duration("09:00", "10:00", 60)

    def test_same_start_and_end_rejected(self):
        with pytest.raises(BadRequestError):
            compute_duration("09:00", "09:00", 0)

    def test_overtime_threshold(self):
        assert is_overtime(480) is False
        assert is_overtime(481) is True


class TestPeriods:
    def test_week_starts_on_sunday(self):
        # 2024-05-15 is a Wednesday
        assert week_start(datetime(2024, 5, 15, 13, 45)) == datetime(2024, 5, 12)
        assert week_start(datetime(2024, 5, 12, 8, 0)) == datetime(2024, 5, 12)

    def test_month_start(self):
        assert month_start(datetime(2024, 5, 15, 13, 45)) == datetime(2024, 5, 1)


class TestShiftTimers:
    def test_elapsed_excludes_breaks(self):
        shift = ActiveShift(nanny_id="n1", start_time=datetime(2024, 1, 1, 8, 0), break_minutes=30)

        assert shift_elapsed_minutes(shift, datetime(2024, 1, 1, 12, 0)) == 210

    def test_elapsed_excludes_current_pause(self):
        shift = ActiveShift(
            nanny_id="n1",
            start_time=datetime(2024, 1, 1, 8, 0),
            break_minutes=10,
            is_paused=True,
            pause_start_time=datetime(2024, 1, 1, 11, 0),
        )
        now = datetime(2024, 1, 1, 11, 20)

        assert paused_minutes(shift, now) == 20
        assert shift_elapsed_minutes(shift, now) == 170

    def test_elapsed_never_negative(self):
        shift = ActiveShift(nanny_id="n1", start_time=datetime(2024, 1, 1, 8, 0), break_minutes=600)

        assert shift_elapsed_minutes(shift, datetime(2024, 1, 1, 9, 0)) == 0


class TestSchedule:
    def test_merges_logs_and_routines_sorted(self):
        start, end = datetime(2024, 5, 12), datetime(2024, 5, 18, 23, 59)
        logs = [
            HoursLog(
                id="log-1",
                nanny_id="n1",
                family_id="f1",
                date=datetime(2024, 5, 14),
                start_time="09:00",
                end_time="17:00",
                duration_minutes=480,
            )
        ]
        routines = [
            Routine(id="r-weekly", nanny_id="n1", child_id="c1", title="Swimming", time="10:00", is_recurring=True, recurring_day="Tuesday"),
            Routine(id="r-once", nanny_id="n1", title="Dentist", time="08:00", date=datetime(2024, 5, 14)),
            Routine(id="r-outside", nanny_id="n1", title="Later", time="08:00", date=datetime(2024, 6, 1)),
            Routine(id="r-bad-day", nanny_id="n1", title="Never", time="08:00", is_recurring=True, recurring_day="Someday"),
        ]

        items = build_schedule(logs, routines, start, end, {"f1": "Lee Family"}, {"c1": "Kim"})

        assert [item.id for item in items] == ["r-once", "log-1", "r-weekly-2024-05-14"]
        assert items[1].title == "Shift with Lee Family"
        assert items[1].end_time == "17:00"
        assert items[2].child_name == "Kim"
        assert items[2].is_recurring is True

    def test_recurring_routine_repeats_every_week(self):
        routines = [Routine(id="r", nanny_id="n1", title="Music", time="15:00", is_recurring=True, recurring_day="monday")]

        items = build_schedule([], routines, datetime(2024, 5, 1), datetime(2024, 5, 31), {}, {})

        assert [item.date for item in items] == ["2024-05-06", "2024-05-13", "2024-05-20", "2024-05-27"]

    def test_unknown_family_name(self):
        logs = [HoursLog(id="l", nanny_id="n1", date=datetime(2024, 5, 14), start_time="09:00", end_time="10:00", duration_minutes=60)]

        items = build_schedule(logs, [], datetime(2024, 5, 1), datetime(2024, 5, 31), {}, {})

        assert items[0].family_name == "Unknown Family"

    def test_group_by_date(self):
        routines = [
            Routine(id="a", nanny_id="n1", title="A", time="09:00", date=datetime(2024, 5, 14)),
            Routine(id="b", nanny_id="n1", title="B", time="10:00", date=datetime(2024, 5, 14)),
            Routine(id="c", nanny_id="n1", title="C", time="09:00", date=datetime(2024, 5, 15)),
        ]
        items = build_schedule([], routines, datetime(2024, 5, 1), datetime(2024, 5, 31), {}, {})

        grouped = group_by_date(items)

        assert list(grouped) == ["2024-05-14", "2024-05-15"]
        assert [item.id for item in grouped["2024-05-14"]] == ["a", "b"]
