"""
Time interval algebra on "HH:MM" strings.

Every range whose end is at or before its start is read as crossing midnight
and is normalized by moving its end to the next day. All other modules measure
and compare time ranges through these functions.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union


MINUTES_PER_DAY = 24 * 60

_BLOCKS = (("start_time", "end_time"), ("start_time2", "end_time2"))
_CAMEL = {
    "start_time": "startTime",
    "end_time": "endTime",
    "start_time2": "startTime2",
    "end_time2": "endTime2",
}


def time_to_minutes(value: Optional[str]) -> int:
    """Convert "HH:MM" (or "HH", or "HH:MM:SS") to minutes after midnight; malformed input gives 0"""
    if value is None:
        return 0
    text = str(value).strip()
    if not text:
        return 0
    # Seconds are ignored
    parts = text.split(":")
    hours_part = parts[0]
    minutes_part = parts[1] if len(parts) > 1 else ""
    try:
        hours = int(hours_part)
        minutes = int(minutes_part) if minutes_part else 0
    except ValueError:
        return 0
    if hours < 0 or minutes < 0 or minutes > 59:
        return 0
    return (hours * 60 + minutes) % MINUTES_PER_DAY


def minutes_to_time(minutes: int) -> str:
    minutes = int(minutes) % MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _as_minutes(value: Union[int, str, None]) -> int:
    if isinstance(value, int):
        return value
    return time_to_minutes(value)


def crosses_midnight(start_min: int, end_min: int) -> bool:
    return end_min <= start_min


def normalize_range(start_min: int, end_min: int) -> Tuple[int, int]:
    """Move the end of a midnight-crossing range to the next day"""
    if crosses_midnight(start_min, end_min):
        return start_min, end_min + MINUTES_PER_DAY
    return start_min, end_min


def range_duration(start: Union[int, str, None], end: Union[int, str, None]) -> int:
    """Length of a range in minutes; equal start and end is a full day"""
    start_min, end_min = normalize_range(_as_minutes(start), _as_minutes(end))
    return max(0, end_min - start_min)


def _variants(start_min: int, end_min: int) -> List[Tuple[int, int]]:
    start_min, end_min = normalize_range(start_min, end_min)
    variants = [(start_min, end_min)]
    if end_min > MINUTES_PER_DAY:
        # Same range seen from the following day
        variants.append((start_min - MINUTES_PER_DAY, end_min - MINUTES_PER_DAY))
    return variants


def ranges_overlap(a_start: Union[int, str], a_end: Union[int, str],
                   b_start: Union[int, str], b_end: Union[int, str]) -> bool:
    """Return True if two time ranges share at least one minute, midnight-aware"""
    a_variants = _variants(_as_minutes(a_start), _as_minutes(a_end))
    b_variants = _variants(_as_minutes(b_start), _as_minutes(b_end))
    for x_start, x_end in a_variants:
        for y_start, y_end in b_variants:
            if x_start < y_end and y_start < x_end:
                return True
    return False


@dataclass(frozen=True)
class TimeInterval:
    """Normalized block of time, in minutes after midnight of the block's day"""
    start: int
    end: int
    crosses_midnight: bool = False

    @property
    def duration(self) -> int:
        return self.end - self.start


def _block_value(shift: Any, name: str) -> Optional[str]:
    if isinstance(shift, Mapping):
        value = shift.get(_CAMEL[name], shift.get(name))
    else:
        value = getattr(shift, name, None)
    return value or None


def split_shift_into_intervals(shift: Any) -> List[TimeInterval]:
    """Intervals for each block of a shift-like object whose start and end are both set"""
    intervals = []
    for start_name, end_name in _BLOCKS:
        start = _block_value(shift, start_name)
        end = _block_value(shift, end_name)
        if not (start and end):
            continue
        start_min, end_min = time_to_minutes(start), time_to_minutes(end)
        norm_start, norm_end = normalize_range(start_min, end_min)
        intervals.append(TimeInterval(norm_start, norm_end, crosses_midnight(start_min, end_min)))
    return intervals


def calculate_shift_duration_minutes(shift: Any) -> int:
    return sum(interval.duration for interval in split_shift_into_intervals(shift))


def format_hours(hours: float) -> str:
    """Format decimal hours as a label such as "8h 30m" """
    total_minutes = int(round(hours * 60))
    sign = "-" if total_minutes < 0 else ""
    whole, minutes = divmod(abs(total_minutes), 60)
    if minutes == 0:
        return f"{sign}{whole}h"
    return f"{sign}{whole}h {minutes:02d}m"
