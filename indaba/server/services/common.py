"""
Small helpers shared by the routers: JSON columns, ages, dates and expiry.
"""

from __future__ import annotations

import json
import math
from datetime import datetime, timedelta
from typing import Any, Optional

from indaba.core.database.base import utc_now


def load_json(raw: Optional[str], default: Any = None) -> Any:
    """Decode a JSON text column, returning ``default`` for empty or broken values."""
    if not raw:
        return default
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return default


def dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, default=str)


def naive_utc(value: datetime) -> datetime:
    """Drop timezone info after converting to UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return (value - value.utcoffset()).replace(tzinfo=None)


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def inclusive_end(value: datetime) -> datetime:
    """Exclusive upper bound for a date filter whose end date is inclusive."""
    return start_of_day(naive_utc(value)) + timedelta(days=1)


def age_in_years(birth_date: datetime, today: Optional[datetime] = None) -> int:
    today = today or utc_now()
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return max(years, 0)


def age_in_months(birth_date: datetime, today: Optional[datetime] = None) -> int:
    today = today or utc_now()
    months = (today.year - birth_date.year) * 12 + today.month - birth_date.month
    if today.day < birth_date.day:
        months -= 1
    return max(months, 0)


def expiry_info(expiry_date: datetime, today: Optional[datetime] = None) -> dict:
    """``is_expired`` and ``expires_in_days`` (rounded up) for a certification."""
    today = today or utc_now()
    days = math.ceil((expiry_date - today).total_seconds() / 86400)
    return {"is_expired": expiry_date < today, "expires_in_days": days}


def full_name(first_name: Optional[str], last_name: Optional[str]) -> str:
    return " ".join(part for part in (first_name, last_name) if part)


def minutes_to_hours(minutes: Optional[int]) -> float:
    return round((minutes or 0) / 60, 1)
