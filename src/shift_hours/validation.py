"""
Assignment Validation

Checks that assignments are complete for their kind, that the time blocks of
one employee-day do not overlap, and that daily and weekly hours stay under
their limits. Results collect every problem instead of stopping at the first.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Any, Tuple

from .data_manager import (
    Assignment, Franco, Licencia, MedioFranco, Nota, ShiftAssignment, UnknownAssignment,
    as_schedule, normalize_assignment, normalize_assignments, resolve_configuration,
)
from .assignment_impact import calculate_day_impact
from .statistics import format_date, get_week_days
from .time_utils import ranges_overlap, time_to_minutes
from .working_hours import index_shifts, resolve_assignment_times

logger = logging.getLogger(__name__)

DEFAULT_MAX_WEEKLY_HOURS = 48


class ValidationMessage:
    """Validation problems"""
    MISSING_SHIFT_ID = "A shift assignment must reference a shift"
    MISSING_TIMES = "Start and end time are required"
    INCOMPLETE_SECOND_BLOCK = "A split shift needs both start and end of its second block"
    ZERO_LENGTH_RANGE = "Start and end time must differ"
    SPLIT_BLOCKS_OVERLAP = "The two blocks of a split shift overlap"
    UNEXPECTED_SHIFT_ID = "This assignment must not reference a shift"
    MISSING_LICENCIA_TYPE = "A licencia must have a licencia type"
    MISSING_NOTE_TEXT = "A note must have text"
    UNKNOWN_TYPE = "Unknown assignment type"
    OVERLAPPING_ASSIGNMENTS = "Assignments overlap in time"


@dataclass
class ValidationResult:
    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str):
        self.errors.append(message)
        self.valid = False

    def extend(self, other: 'ValidationResult'):
        for message in other.errors:
            self.add_error(message)
        self.warnings.extend(other.warnings)


@dataclass
class IncompleteAssignment:
    date: str
    employee_id: str
    assignment: Assignment
    reason: str


@dataclass
class HoursCheck:
    valid: bool
    hours: float
    message: Optional[str] = None


def incompleteness_reason(assignment: Any) -> Optional[str]:
    """Why an assignment is incomplete for its kind, or None when it is complete"""
    assignment = normalize_assignment(assignment)
    if assignment is None:
        return ValidationMessage.UNKNOWN_TYPE

    if isinstance(assignment, Franco):
        return None
    if isinstance(assignment, ShiftAssignment):
        if not assignment.shift_id:
            return ValidationMessage.MISSING_SHIFT_ID
        if not assignment.has_first_block:
            return ValidationMessage.MISSING_TIMES
        if bool(assignment.start_time2) != bool(assignment.end_time2):
            return ValidationMessage.INCOMPLETE_SECOND_BLOCK
        return None
    if isinstance(assignment, (MedioFranco, Licencia)):
        if not assignment.has_first_block:
            return ValidationMessage.MISSING_TIMES
        if getattr(assignment, "shift_id", None):
            return ValidationMessage.UNEXPECTED_SHIFT_ID
        if isinstance(assignment, Licencia) and not assignment.licencia_type:
            return ValidationMessage.MISSING_LICENCIA_TYPE
        return None
    if isinstance(assignment, Nota):
        return None if assignment.text.strip() else ValidationMessage.MISSING_NOTE_TEXT
    return ValidationMessage.UNKNOWN_TYPE


def is_assignment_incomplete(assignment: Any) -> bool:
    return incompleteness_reason(assignment) is not None


def _own_blocks(assignment: Assignment) -> List[Tuple[str, str]]:
    blocks = []
    for start_name, end_name in (("start_time", "end_time"), ("start_time2", "end_time2")):
        start, end = getattr(assignment, start_name, None), getattr(assignment, end_name, None)
        if start and end:
            blocks.append((start, end))
    return blocks


def validate_assignment_complete(assignment: Any) -> ValidationResult:
    """Completeness for the assignment's kind plus sanity of its own time blocks"""
    result = ValidationResult()
    assignment = normalize_assignment(assignment)
    reason = incompleteness_reason(assignment)
    if reason:
        result.add_error(reason)
        if isinstance(assignment, UnknownAssignment):
            result.errors[-1] = f"{reason}: {assignment.raw_type}"
        return result

    blocks = _own_blocks(assignment)
    for start, end in blocks:
        if time_to_minutes(start) == time_to_minutes(end):
            result.add_error(f"{ValidationMessage.ZERO_LENGTH_RANGE} ({start}-{end})")
    if len(blocks) == 2 and ranges_overlap(blocks[0][0], blocks[0][1], blocks[1][0], blocks[1][1]):
        result.add_error(ValidationMessage.SPLIT_BLOCKS_OVERLAP)
    return result


def describe_assignment(assignment: Assignment) -> str:
    if isinstance(assignment, ShiftAssignment):
        return f"shift {assignment.shift_id or '?'}"
    if isinstance(assignment, UnknownAssignment):
        return assignment.raw_type
    return assignment.type


def validate_no_overlaps(assignments: Any, shifts: Any = None) -> ValidationResult:
    """Pairwise check of every timed block in one employee-day"""
    result = ValidationResult()
    shifts = index_shifts(shifts)
    timed = []
    for assignment in normalize_assignments(assignments):
        if not isinstance(assignment, (ShiftAssignment, MedioFranco, Licencia)):
            continue
        for start, end in resolve_assignment_times(assignment, shifts).blocks():
            timed.append((assignment, start, end))

    for i, (first, a_start, a_end) in enumerate(timed):
        for second, b_start, b_end in timed[i + 1:]:
            if first is second:
                continue
            if ranges_overlap(a_start, a_end, b_start, b_end):
                result.add_error(
                    f"{ValidationMessage.OVERLAPPING_ASSIGNMENTS}: {describe_assignment(first)} "
                    f"{a_start}-{a_end} and {describe_assignment(second)} {b_start}-{b_end}"
                )
    return result


def validate_cell_assignments(assignments: Any, shifts: Any = None) -> ValidationResult:
    """Everything that must hold for one employee-day before it is saved"""
    result = ValidationResult()
    normalized = normalize_assignments(assignments)
    for assignment in normalized:
        result.extend(validate_assignment_complete(assignment))
    result.extend(validate_no_overlaps(normalized, shifts))
    if any(isinstance(a, Franco) for a in normalized) and len(normalized) > 1:
        result.warnings.append("Franco combined with other assignments on the same day")
    return result


def detect_incomplete_assignments(schedule: Any) -> List[IncompleteAssignment]:
    """Every incomplete assignment of a schedule, in date order"""
    schedule = as_schedule(schedule)
    found = []
    for date_str in sorted(schedule.assignments):
        for employee_id, cell in schedule.assignments[date_str].items():
            for assignment in cell:
                reason = incompleteness_reason(assignment)
                if reason:
                    found.append(IncompleteAssignment(date_str, employee_id, assignment, reason))
    if found:
        logger.info(f"Schedule {schedule.id}: {len(found)} incomplete assignments")
    return found


def validate_daily_hours(assignments: Any, shifts: Any = None, config: Any = None,
                         max_hours: Optional[float] = None) -> HoursCheck:
    config = resolve_configuration(config)
    if max_hours is None:
        max_hours = config.horas_maximas_por_dia
    day = calculate_day_impact(assignments, shifts, config=config)
    hours = day.horas_normales + day.horas_extras
    if hours <= max_hours:
        return HoursCheck(True, hours)
    return HoursCheck(False, hours, f"Employee has {hours:.1f} hours this day (maximum: {max_hours}h)")


def validate_weekly_hours(schedule: Any, employee_id: str, shifts: Any = None, config: Any = None,
                          max_hours: float = DEFAULT_MAX_WEEKLY_HOURS) -> HoursCheck:
    """Worked hours of one employee across the schedule's week"""
    schedule = as_schedule(schedule)
    config = resolve_configuration(config)
    shifts = index_shifts(shifts)
    if schedule.week_start:
        dates = [format_date(d) for d in get_week_days(schedule.week_start)]
    else:
        dates = sorted(schedule.assignments)

    hours = 0.0
    for date_str in dates:
        day = calculate_day_impact(schedule.assignments_for(date_str, employee_id), shifts, config=config)
        hours += day.horas_normales + day.horas_extras
    if hours <= max_hours:
        return HoursCheck(True, hours)
    return HoursCheck(False, hours, f"Employee has {hours:.1f} hours this week (maximum: {max_hours}h)")
