"""
Administrative report aggregations and report scheduling.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from indaba.core.database.base import utc_now
from indaba.core.database.entities.families import Child
from indaba.core.database.entities.milestones import ChildMilestone, CustomMilestone, Milestone
from indaba.core.database.entities.nanny import HoursLog
from indaba.core.database.entities.observations import Observation
from indaba.core.database.entities.users import NannyProfile, User
from indaba.core.errors import BadRequestError
from indaba.core.models.io.admin import DateRange, ReportType

from .common import full_name, minutes_to_hours, naive_utc

RANGE_DAYS = {
    DateRange.SEVEN_DAYS: 7,
    DateRange.THIRTY_DAYS: 30,
    DateRange.NINETY_DAYS: 90,
    DateRange.YEAR: 365,
}


def add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def next_run_date(frequency: str, now: Optional[datetime] = None) -> datetime:
    """When a scheduled report runs next; unknown frequencies run weekly."""
    now = now or utc_now()
    key = frequency.lower()
    if key == "daily":
        return now + timedelta(days=1)
    if key == "monthly":
        return add_months(now, 1)
    if key == "quarterly":
        return add_months(now, 3)
    return now + timedelta(days=7)


def resolve_range(
    date_range: DateRange,
    custom_start: Optional[datetime] = None,
    custom_end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    now = now or utc_now()
    if date_range == DateRange.CUSTOM:
        if custom_start is None or custom_end is None:
            raise BadRequestError("Custom date range requires a start and end date")
        start, end = naive_utc(custom_start), naive_utc(custom_end)
        if start > end:
            raise BadRequestError("Start date must be before end date")
        return start, end
    return now - timedelta(days=RANGE_DAYS[date_range]), now


async def _nanny_performance(session: AsyncSession, start: datetime, end: datetime) -> Dict[str, Any]:
    stmt = (
        select(
            NannyProfile.first_name,
            NannyProfile.last_name,
            func.sum(HoursLog.duration_minutes),
            func.count(HoursLog.id),
        )
        .select_from(HoursLog)
        .join(NannyProfile, NannyProfile.id == HoursLog.nanny_id)
        .where(HoursLog.date >= start, HoursLog.date <= end)
        .group_by(NannyProfile.id, NannyProfile.first_name, NannyProfile.last_name)
        .order_by(func.sum(HoursLog.duration_minutes).desc())
    )
    rows = (await session.execute(stmt)).all()
    names = [full_name(first, last) for first, last, _, _ in rows]
    hours = [minutes_to_hours(minutes) for _, _, minutes, _ in rows]
    return {
        "charts": [{"type": "bar", "title": "Hours Logged by Nanny", "data": {"labels": names, "values": hours}}],
        "tables": [
            {
                "title": "Top Performing Nannies",
                "columns": ["Nanny", "Hours", "Shifts"],
                "rows": [[name, h, count] for name, h, (_, _, _, count) in zip(names, hours, rows)],
            }
        ],
    }


async def _child_milestones(session: AsyncSession, start: datetime, end: datetime) -> Dict[str, Any]:
    in_range = (ChildMilestone.achieved_date >= start, ChildMilestone.achieved_date <= end)
    category = func.coalesce(Milestone.category, CustomMilestone.category)
    name = func.coalesce(Milestone.name, CustomMilestone.name)

    def achieved(*columns):
        return (
            select(*columns)
            .select_from(ChildMilestone)
            .outerjoin(Milestone, Milestone.id == ChildMilestone.milestone_id)
            .outerjoin(CustomMilestone, CustomMilestone.id == ChildMilestone.custom_milestone_id)
            .where(*in_range)
        )

    by_category = (
        await session.execute(
            achieved(category, func.count(ChildMilestone.id)).group_by(category).order_by(category)
        )
    ).all()
    recent = (
        await session.execute(
            achieved(Child.first_name, Child.last_name, name, ChildMilestone.achieved_date)
            .join(Child, Child.id == ChildMilestone.child_id)
            .order_by(ChildMilestone.achieved_date.desc())
            .limit(10)
        )
    ).all()
    return {
        "charts": [
            {
                "type": "pie",
                "title": "Milestones Achieved by Category",
                "data": {"labels": [c for c, _ in by_category], "values": [n for _, n in by_category]},
            }
        ],
        "tables": [
            {
                "title": "Recently Achieved Milestones",
                "columns": ["Child", "Milestone", "Achieved"],
                "rows": [[full_name(f, l), name, achieved.isoformat()] for f, l, name, achieved in recent],
            }
        ],
    }


async def _observations(session: AsyncSession, start: datetime, end: datetime) -> Dict[str, Any]:
    in_range = (Observation.created_at >= start, Observation.created_at <= end)
    by_type = (
        await session.execute(
            select(Observation.type, func.count(Observation.id)).where(*in_range).group_by(Observation.type)
        )
    ).all()
    by_child = (
        await session.execute(
            select(Child.first_name, Child.last_name, func.count(Observation.id))
            .select_from(Observation)
            .join(Child, Child.id == Observation.child_id)
            .where(*in_range)
            .group_by(Child.id, Child.first_name, Child.last_name)
            .order_by(func.count(Observation.id).desc())
        )
    ).all()
    return {
        "charts": [
            {
                "type": "bar",
                "title": "Observations by Type",
                "data": {
                    "labels": [getattr(t, "value", t) for t, _ in by_type],
                    "values": [n for _, n in by_type],
                },
            }
        ],
        "tables": [
            {
                "title": "Observations per Child",
                "columns": ["Child", "Observations"],
                "rows": [[full_name(f, l), n] for f, l, n in by_child],
            }
        ],
    }


async def _user_growth(session: AsyncSession, start: datetime, end: datetime) -> Dict[str, Any]:
    by_role = (
        await session.execute(
            select(User.role, func.count(User.id))
            .where(User.created_at >= start, User.created_at <= end)
            .group_by(User.role)
        )
    ).all()
    total = (await session.execute(select(func.count(User.id)))).scalar_one()
    labels = [getattr(role, "value", role) for role, _ in by_role]
    return {
        "charts": [
            {"type": "bar", "title": "New Users by Role", "data": {"labels": labels, "values": [n for _, n in by_role]}}
        ],
        "tables": [
            {
                "title": "User Growth",
                "columns": ["Role", "New Users"],
                "rows": [[label, n] for label, (_, n) in zip(labels, by_role)],
            }
        ],
        "summary": {"new_users": sum(n for _, n in by_role), "total_users": total},
    }


_BUILDERS = {
    ReportType.NANNY_PERFORMANCE: _nanny_performance,
    ReportType.CHILD_MILESTONES: _child_milestones,
    ReportType.OBSERVATIONS: _observations,
    ReportType.USER_GROWTH: _user_growth,
}


async def build_report(
    session: AsyncSession, report_type: ReportType, date_range: DateRange, start: datetime, end: datetime
) -> Dict[str, Any]:
    """Aggregate report data for the given period."""
    report = {
        "title": f"Report: {report_type.value}",
        "date_range": date_range.value,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "generated_at": utc_now().isoformat(),
        "charts": [],
        "tables": [],
    }
    report.update(await _BUILDERS[report_type](session, start, end))
    return report
