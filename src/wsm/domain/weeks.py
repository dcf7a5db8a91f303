"""ISO-8601 week arithmetic.

Weeks start on Monday. Week 1 of an ISO year is the week holding that year's
first Thursday, so Dec 29-31 may belong to week 1 of the next year and
Jan 1-3 to the last week of the previous one.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone

from wsm.domain.errors import ValidationError
from wsm.domain.models import IsoWeek

_LABEL_RE = re.compile(r"^\s*(\d{4})-W(\d{1,2})\s*$", re.IGNORECASE)


def parse_timestamp(value: str) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise ValidationError(f"Invalid date: {value!r}") from e


def to_date(value: date | datetime | str) -> date:
    """Calendar date of a date, datetime or ISO string; time of day is dropped."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_timestamp(value).date()
    raise ValidationError(f"Unsupported date value: {value!r}")


def monday_of_week(d: date | datetime | str) -> date:
    day = to_date(d)
    # isoweekday(): Monday=1 .. Sunday=7
    return day - timedelta(days=day.isoweekday() - 1)


def monday_of_previous_week(d: date | datetime | str) -> date:
    return monday_of_week(d) - timedelta(days=7)


def week_bounds(d: date | datetime | str) -> tuple[date, date]:
    monday = monday_of_week(d)
    return monday, monday + timedelta(days=6)


def iso_week(d: date | datetime | str) -> IsoWeek:
    # the Thursday of the week decides which year the week belongs to
    thursday = monday_of_week(d) + timedelta(days=3)
    first_thursday = date(thursday.year, 1, 1)
    first_thursday += timedelta(days=(3 - first_thursday.weekday()) % 7)
    return IsoWeek(year=thursday.year, week=1 + (thursday - first_thursday).days // 7)


def week_label(d: date | datetime | str) -> str:
    w = iso_week(d)
    return f"{w.year:04d}-W{w.week:02d}"


def parse_week_label(label: str) -> date:
    m = _LABEL_RE.match(label or "")
    if not m:
        raise ValidationError(f"Invalid week label: {label!r} (expected YYYY-Wnn)")
    year, week = int(m.group(1)), int(m.group(2))
    try:
        return date.fromisocalendar(year, week, 1)
    except ValueError as e:
        raise ValidationError(f"Week {week} does not exist in {year}.") from e


def to_wire_timestamp(d: date | datetime | str) -> str:
    """UTC midnight of the calendar date, as the store expects for weekStartDate."""
    day = to_date(d)
    midnight = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return midnight.strftime("%Y-%m-%dT%H:%M:%S.000Z")
