"""
Availability resolution.

Works out which provider windows apply to a date and flattens them into
disjoint, ordered bookable ranges:

- date-specific windows replace the recurring weekday schedule entirely
- overlapping or adjacent open windows are unioned
- closed windows (``is_available=False``) are cut out of the union

All times are whole minutes since midnight.
"""

from dataclasses import dataclass, replace
import datetime as dt
from typing import Iterable

from backend.scheduling.time_utils import day_of_week


@dataclass(frozen=True)
class Window:
    id: int | None
    start: int
    end: int
    is_available: bool = True
    interval_minutes: int | None = None
    day_of_week: int | None = None
    date: dt.date | None = None


def resolve_windows(windows: Iterable[Window], target_date: dt.date) -> list[Window]:
    """Pick the windows that govern ``target_date``, ordered by start time.

    Any window with an exact ``date`` match wins, even a closed one, and the
    weekday windows are then ignored for that date.
    """
    windows = list(windows)
    selected = [window for window in windows if window.date == target_date]

    if not selected:
        weekday = day_of_week(target_date)
        selected = [
            window for window in windows
            if window.date is None and window.day_of_week == weekday
        ]

    return sorted(selected, key=lambda window: (window.start, window.end))


def merge_windows(windows: Iterable[Window]) -> list[Window]:
    """Union open windows, then subtract every closed window from the union.

    A merged range keeps the id and interval of its earliest window.
    """
    windows = list(windows)
    open_windows = sorted(
        (window for window in windows if window.is_available),
        key=lambda window: (window.start, window.end),
    )

    merged: list[Window] = []
    for window in open_windows:
        if merged and window.start <= merged[-1].end:
            if window.end > merged[-1].end:
                merged[-1] = replace(merged[-1], end=window.end)
        else:
            merged.append(window)

    for closed in (window for window in windows if not window.is_available):
        merged = [
            piece
            for window in merged
            for piece in subtract_range(window, closed.start, closed.end)
        ]

    return merged


def subtract_range(window: Window, start: int, end: int) -> list[Window]:
    if end <= window.start or start >= window.end:
        return [window]

    pieces = []
    if start > window.start:
        pieces.append(replace(window, end=start))
    if end < window.end:
        pieces.append(replace(window, start=end))
    return pieces
