import re
from datetime import date, time

from backend.scheduling.errors import ValidationError

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r'^([01]?\d|2[0-3]):([0-5]\d)$')


def parse_time(value: str) -> time:
    match = _TIME_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValidationError(f'Invalid time {value!r}; expected HH:MM.')
    return time(int(match.group(1)), int(match.group(2)))


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError) as exc:
        raise ValidationError(f'Invalid date {value!r}; expected YYYY-MM-DD.') from exc


def to_minutes(value: time | str) -> int:
    if isinstance(value, str):
        value = parse_time(value)
    return value.hour * 60 + value.minute


def to_time(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValidationError(f'{minutes} minutes does not fall within a single day.')
    return time(minutes // 60, minutes % 60)


def format_minutes(minutes: int) -> str:
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def day_of_week(target_date: date) -> int:
    """Weekday index with Sunday as 0."""
    return target_date.isoweekday() % 7


def validate_range(start: int, end: int) -> None:
    if start >= end:
        raise ValidationError(
            f'Start time {format_minutes(start)} must be before end time {format_minutes(end)}.'
        )
