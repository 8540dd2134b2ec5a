"""Pure time and schedule rules shared by the availability and appointment services.

Times are zero-padded 24-hour "HH:MM" strings. For valid values lexical
comparison equals chronological comparison within one day, which the
overlap query in the availability service relies on.
"""

import re
from datetime import date, datetime, time, timedelta

from backend.core import config
from backend.core import errors

TIME_PATTERN = re.compile(r'^([01][0-9]|2[0-3]):[0-5][0-9]$')


def parse_time(value: str) -> time:
    hours, minutes = value.split(':')
    return time(int(hours), int(minutes))


def minutes_of_day(value: str) -> int:
    parsed = parse_time(value)
    return parsed.hour * 60 + parsed.minute


def validate_time_format(value: str, field: str = 'start_time') -> str:
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise errors.FormatError(field=field, value=value)
    return value


def validate_future_date(value: date, today: date | None = None) -> date:
    today = today or date.today()
    if value < today:
        raise errors.PastDateError(value=value.isoformat())
    return value


def validate_time_range(start: str, end: str, min_minutes: int | None = None) -> None:
    min_minutes = config.MIN_SLOT_MINUTES if min_minutes is None else min_minutes

    if start >= end:
        raise errors.OrderError(field='end_time', value=end)

    if minutes_of_day(end) - minutes_of_day(start) < min_minutes:
        raise errors.TooShortError(
            f'Time slot must be at least {min_minutes} minutes',
            field='end_time',
            value=end,
        )


def overlaps(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    # Half-open intervals: touching endpoints do not overlap.
    return a_start < b_end and b_start < a_end


def slot_instant(slot_date: date, slot_time: str) -> datetime:
    return datetime.combine(slot_date, parse_time(slot_time))


def is_past_moment(slot_date: date, slot_time: str, now: datetime | None = None) -> bool:
    now = now or datetime.now()
    return slot_instant(slot_date, slot_time) < now


def cancellation_deadline(slot_date: date, slot_time: str) -> datetime:
    return slot_instant(slot_date, slot_time) - timedelta(minutes=config.CANCELLATION_WINDOW_MINUTES)


def can_still_cancel(slot_date: date, slot_time: str, now: datetime | None = None) -> bool:
    now = now or datetime.now()
    return now < cancellation_deadline(slot_date, slot_time)
