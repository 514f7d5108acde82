from __future__ import annotations
import math
from datetime import datetime, timedelta, date, timezone, tzinfo
from typing import Union

from .models import START_HOUR, SLOT_MINUTES


def local_tz() -> tzinfo:
    return datetime.now().astimezone().tzinfo  # type: ignore

def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_local(dt_utc: datetime) -> datetime:
    if dt_utc.tzinfo is None:
        dt_utc = dt_utc.replace(tzinfo=timezone.utc)
    return dt_utc.astimezone(local_tz())


def today_local() -> date:
    return to_local(now_utc()).date()


def monday_of(d: Union[date, datetime]) -> date:
    """Monday of the week containing d. Sunday belongs to the week before."""
    if isinstance(d, datetime):
        d = d.date()
    return d - timedelta(days=d.weekday())  # Mon=0


def week_key_of(monday: date) -> str:
    """
    "YYYY-Www" key for the week starting at monday.

    Approximate numbering: weeks are counted from Jan 1 of monday's own year,
    so the key is not ISO-8601 around year boundaries.
    """
    jan1 = date(monday.year, 1, 1)
    days = (monday - jan1).days
    jan1_dow = (jan1.weekday() + 1) % 7  # Sun=0 ... Sat=6
    week = math.ceil((days + jan1_dow + 1) / 7)
    return f"{monday.year}-W{week:02d}"


def slot_to_time(slot_index: int) -> str:
    total = START_HOUR * 60 + slot_index * SLOT_MINUTES
    hours, minutes = divmod(total, 60)
    ampm = "PM" if hours >= 12 else "AM"
    if hours > 12:
        display = hours - 12
    elif hours == 0:
        display = 12
    else:
        display = hours
    return f"{display}:{minutes:02d} {ampm}"


def to_date_string(d: date) -> str:
    return d.isoformat()


def format_week_range(monday: date) -> str:
    """Mon-Fri label, e.g. "Feb 9 – Feb 13, 2026"."""
    friday = monday + timedelta(days=4)
    return f"{monday:%b} {monday.day} – {friday:%b} {friday.day}, {friday.year}"
