"""
Hours and shift arithmetic.

Logged times are ``HH:MM`` strings; a log whose end time is earlier than its
start time crosses midnight. Shift timers store naive UTC datetimes.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from indaba.core.database.entities.nanny import ActiveShift, HoursLog, Routine
from indaba.core.errors import BadRequestError
from indaba.core.models.io.nanny import ScheduleItem

from .common import start_of_day

OVERTIME_THRESHOLD_MINUTES = 480
MINUTES_PER_DAY = 24 * 60
WEEKDAYS = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]


def parse_hhmm(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def compute_duration(start_time: str, end_time: str, break_minutes: int) -> int:
    """Worked minutes between two wall-clock times, minus breaks.

    Raises:
        BadRequestError: If nothing is left after subtracting breaks
    """
    span = parse_hhmm(end_time) - parse_hhmm(start_time)
    if span < 0:
        span += MINUTES_PER_DAY
    duration = span - break_minutes
    if duration <= 0:
        raise BadRequestError("Duration must be greater than 0 after subtracting breaks")
    return duration


def is_overtime(duration_minutes: int) -> bool:
    return duration_minutes > OVERTIME_THRESHOLD_MINUTES


def week_start(now: datetime) -> datetime:
    """Midnight of the Sunday that starts ``now``'s week."""
    days_since_sunday = (now.weekday() + 1) % 7
    return start_of_day(now) - timedelta(days=days_since_sunday)


def month_start(now: datetime) -> datetime:
    return start_of_day(now).replace(day=1)


async def logged_minutes_since(session: AsyncSession, nanny_id: str, since: datetime) -> int:
    stmt = select(func.coalesce(func.sum(HoursLog.duration_minutes), 0)).where(
        HoursLog.nanny_id == nanny_id, HoursLog.date >= since
    )
    result = await session.execute(stmt)
    return int(result.scalar_one())


def paused_minutes(shift: ActiveShift, now: datetime) -> int:
    if not shift.is_paused or shift.pause_start_time is None:
        return 0
    return math.floor((now - shift.pause_start_time).total_seconds() / 60)


def shift_elapsed_minutes(shift: ActiveShift, now: datetime) -> int:
    """Worked minutes of a running shift; the current pause does not count."""
    total = math.floor((now - shift.start_time).total_seconds() / 60)
    return max(total - shift.break_minutes - paused_minutes(shift, now), 0)


def _dates_between(start: datetime, end: datetime) -> Iterable[datetime]:
    day = start_of_day(start)
    while day <= end:
        yield day
        day += timedelta(days=1)


def build_schedule(
    logs: List[HoursLog],
    routines: List[Routine],
    start: datetime,
    end: datetime,
    family_names: Mapping[str, str],
    child_names: Mapping[str, str],
) -> List[ScheduleItem]:
    """Merge hours logs and routines into one list sorted by date, then time.

    Recurring routines are expanded onto every matching weekday in the range;
    one-time routines appear on their own date.
    """
    items: List[ScheduleItem] = []
    for log in logs:
        items.append(
            ScheduleItem(
                id=log.id,
                type="shift",
                title=f"Shift with {family_names.get(log.family_id or '', 'Unknown Family')}",
                description=log.notes,
                date=log.date.strftime("%Y-%m-%d"),
                time=log.start_time,
                end_time=log.end_time,
                family_name=family_names.get(log.family_id or "", "Unknown Family"),
            )
        )

    for routine in routines:
        child_name = child_names.get(routine.child_id or "")
        if routine.is_recurring:
            if not routine.recurring_day or routine.recurring_day.lower() not in WEEKDAYS:
                continue
            weekday = WEEKDAYS.index(routine.recurring_day.lower())
            for day in _dates_between(start, end):
                if (day.weekday() + 1) % 7 != weekday:
                    continue
                items.append(
                    ScheduleItem(
                        id=f"{routine.id}-{day.strftime('%Y-%m-%d')}",
                        type="routine",
                        title=routine.title,
                        description=routine.description,
                        date=day.strftime("%Y-%m-%d"),
                        time=routine.time,
                        child_id=routine.child_id,
                        child_name=child_name,
                        is_recurring=True,
                    )
                )
        elif routine.date is not None and start <= routine.date <= end:
            items.append(
                ScheduleItem(
                    id=routine.id,
                    type="routine",
                    title=routine.title,
                    description=routine.description,
                    date=routine.date.strftime("%Y-%m-%d"),
                    time=routine.time,
                    child_id=routine.child_id,
                    child_name=child_name,
                )
            )

    items.sort(key=lambda item: (item.date, item.time))
    return items


def group_by_date(items: List[ScheduleItem]) -> Dict[str, List[ScheduleItem]]:
    grouped: Dict[str, List[ScheduleItem]] = {}
    for item in items:
        grouped.setdefault(item.date, []).append(item)
    return grouped
