"""Working-hours and overtime arithmetic on minute-of-day values.

Every function here is pure. Missing or unparseable times are carried as
``None`` rather than ``0`` so callers can tell "no data" apart from
"zero minutes"; the decision of how to render ``None`` belongs to the
display layer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Union

MINUTES_PER_HOUR = 60
SUNDAY = 6  # date.weekday()

TimeInput = Union[str, int, None]

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class ScheduleWindow:
    start: int | None
    end: int | None
    break_minutes: int = 0

    @property
    def is_usable(self) -> bool:
        return self.start is not None and self.end is not None and self.end > self.start

    @property
    def duration_minutes(self) -> int | None:
        if self.start is None or self.end is None or self.end <= self.start:
            return None
        return self.end - self.start


EMPTY_WINDOW = ScheduleWindow(start=None, end=None, break_minutes=0)


def _leading_int(raw: str) -> int | None:
    match = _LEADING_INT.match(raw)
    if match is None:
        return None
    return int(match.group(1))


def parse_time_of_day(value: object) -> int | None:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    parts = trimmed.split(":")
    if len(parts) < 2:
        return None
    hour = _leading_int(parts[0])
    minute = _leading_int(parts[1])
    if hour is None or minute is None:
        return None
    return hour * MINUTES_PER_HOUR + minute


def format_minutes(total_minutes: int) -> str:
    value = max(0, int(total_minutes))
    hours = value // MINUTES_PER_HOUR
    mins = value % MINUTES_PER_HOUR
    return f"{hours:02d}:{mins:02d}"


def normalize_to_hhmm(value: object) -> str:
    minutes = parse_time_of_day(value)
    if minutes is None:
        return ""
    return format_minutes(minutes)


def break_hours_to_minutes(break_hours: object) -> int:
    if break_hours is None or isinstance(break_hours, bool):
        return 0
    try:
        hours = Decimal(str(break_hours).strip())
    except InvalidOperation:
        return 0
    if not hours.is_finite():
        return 0
    minutes = int((hours * MINUTES_PER_HOUR).to_integral_value())
    return max(0, minutes)


def to_minutes(value: TimeInput) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return parse_time_of_day(value)


def is_sunday(day: date) -> bool:
    return day.weekday() == SUNDAY


def _clocked_duration(time_in: TimeInput, time_out: TimeInput) -> int | None:
    in_minutes = to_minutes(time_in)
    out_minutes = to_minutes(time_out)
    if in_minutes is None or out_minutes is None:
        return None
    return out_minutes - in_minutes


def compute_worked_minutes(
    time_in: TimeInput,
    time_out: TimeInput,
    break_minutes: int,
    day: date,
) -> int | None:
    """Regular working minutes for one day.

    Sunday never contributes regular hours; its clocked time is reported
    entirely as overtime by :func:`compute_overtime_minutes`.
    """
    duration = _clocked_duration(time_in, time_out)
    if duration is None:
        return None
    if duration <= 0:
        return 0
    if is_sunday(day):
        return 0
    return max(0, duration - max(0, break_minutes))


def compute_overtime_minutes(
    time_in: TimeInput,
    time_out: TimeInput,
    expected_start: TimeInput,
    expected_end: TimeInput,
    actual_break_minutes: int,
    expected_break_minutes: int,
    day: date,
) -> int | None:
    """Minutes worked beyond the expected window.

    Returns ``None`` on a non-Sunday when there is no usable expected
    window: overtime is undefined there, not zero.
    """
    actual_duration = _clocked_duration(time_in, time_out)
    if actual_duration is None:
        return None
    if actual_duration <= 0:
        return 0

    actual_worked = max(0, actual_duration - max(0, actual_break_minutes))
    if is_sunday(day):
        return actual_worked

    expected = ScheduleWindow(
        start=to_minutes(expected_start),
        end=to_minutes(expected_end),
        break_minutes=expected_break_minutes,
    )
    expected_duration = expected.duration_minutes
    if expected_duration is None:
        return None
    expected_worked = max(0, expected_duration - max(0, expected_break_minutes))
    return max(0, actual_worked - expected_worked)


def display_minutes(minutes: int | None, *, placeholder: str = "-", hide_zero: bool = False) -> str:
    """Grid-cell rendering; ``None`` (and optionally ``0``) becomes a placeholder."""
    if minutes is None:
        return placeholder
    if hide_zero and minutes <= 0:
        return placeholder
    return format_minutes(minutes)
