"""
Pattern Suggestion Engine

Mines an employee's past weekly schedules for the assignment they usually get
on each day of the week and offers it as an advisory suggestion for a future
week. Nothing here modifies a schedule.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Any, Iterable, Tuple

from .data_manager import Assignment, Schedule, as_employee, as_schedule, resolve_configuration
from .statistics import DateLike, format_date, get_week_days, js_weekday, parse_date

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_WEEKS = 12

_SHAPE_FIELDS = ("shift_id", "start_time", "end_time", "start_time2", "end_time2", "licencia_type", "text")


@dataclass
class EmployeePattern:
    """One assignment shape seen on one day of the week"""
    employee_id: str
    day_of_week: int
    assignments: List[Assignment]
    frequency: int = 1
    consecutive_weeks: int = 1
    last_seen: str = ""


@dataclass
class PatternSuggestion:
    """Advisory assignment list for one employee and day of the week"""
    employee_id: str
    day_of_week: int
    suggested_assignments: List[Assignment] = field(default_factory=list)
    confidence: float = 0.0
    weeks_matched: int = 0
    consecutive_weeks: int = 0
    last_seen: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employeeId": self.employee_id,
            "dayOfWeek": self.day_of_week,
            "assignments": [a.to_dict() for a in self.suggested_assignments],
            "confidence": self.confidence,
            "weeksMatched": self.weeks_matched,
            "consecutiveWeeks": self.consecutive_weeks,
            "lastSeen": self.last_seen,
        }


def _assignment_shape(assignment: Assignment) -> Tuple:
    tag = getattr(assignment, "raw_type", None) or assignment.type
    return (tag,) + tuple(getattr(assignment, name, None) or "" for name in _SHAPE_FIELDS)


def assignments_shape(assignments: Iterable[Assignment]) -> Tuple:
    """Order-insensitive signature of a day's assignment list"""
    return tuple(sorted(_assignment_shape(a) for a in assignments))


def select_history(schedules: Iterable[Any], target_week_start: Optional[DateLike] = None,
                   lookback_weeks: int = DEFAULT_LOOKBACK_WEEKS,
                   completed_only: bool = True) -> List[Schedule]:
    """Most recent schedules before the target week, oldest first"""
    target = format_date(parse_date(target_week_start)) if target_week_start else None
    history = []
    for raw in schedules or []:
        schedule = as_schedule(raw)
        if not schedule.week_start:
            continue
        if completed_only and not schedule.completed:
            continue
        if target is not None and schedule.week_start >= target:
            continue
        history.append(schedule)
    history.sort(key=lambda s: s.week_start)
    if lookback_weeks > 0:
        history = history[-lookback_weeks:]
    return history


def _weeks_between(earlier: str, later: str) -> int:
    return round((parse_date(later) - parse_date(earlier)).days / 7)


def analyze_employee_patterns(employee_id: str, schedules: Iterable[Any],
                              target_week_start: Optional[DateLike] = None,
                              lookback_weeks: int = DEFAULT_LOOKBACK_WEEKS,
                              semana_inicio_dia: int = 1,
                              completed_only: bool = True) -> List[EmployeePattern]:
    """
    Collect every assignment shape an employee had per day of the week.

    Args:
        employee_id: Employee whose history is scanned
        schedules: Weekly schedules, in any order
        target_week_start: Only weeks strictly before this one are used
        lookback_weeks: How many of the most recent weeks to keep
        semana_inicio_dia: Week start (0 = Sunday); day_of_week 0 is that weekday
        completed_only: Skip weeks that were never marked as completed
    """
    history = select_history(schedules, target_week_start, lookback_weeks, completed_only)
    patterns: Dict[Tuple[int, Tuple], EmployeePattern] = {}

    for schedule in history:
        for day in get_week_days(schedule.week_start):
            assignments = schedule.assignments_for(format_date(day), employee_id)
            if not assignments:
                continue
            day_of_week = (js_weekday(day) - semana_inicio_dia) % 7
            key = (day_of_week, assignments_shape(assignments))

            pattern = patterns.get(key)
            if pattern is None:
                patterns[key] = EmployeePattern(
                    employee_id=employee_id,
                    day_of_week=day_of_week,
                    assignments=copy.deepcopy(assignments),
                    last_seen=schedule.week_start,
                )
                continue

            pattern.frequency += 1
            gap = _weeks_between(pattern.last_seen, schedule.week_start)
            if gap == 1:
                pattern.consecutive_weeks += 1
            elif gap > 1:
                pattern.consecutive_weeks = 1
            pattern.last_seen = schedule.week_start

    logger.debug(f"Employee {employee_id}: {len(patterns)} patterns over {len(history)} weeks")
    return list(patterns.values())


def generate_suggestions(employee_id: str, schedules: Iterable[Any],
                         target_week_start: Optional[DateLike] = None,
                         lookback_weeks: int = DEFAULT_LOOKBACK_WEEKS,
                         semana_inicio_dia: int = 1,
                         completed_only: bool = True,
                         min_occurrences: int = 1) -> List[PatternSuggestion]:
    """Best suggestion per day of the week, ordered by day of the week"""
    schedules = list(schedules or [])
    weeks_analyzed = len(select_history(schedules, target_week_start, lookback_weeks, completed_only))
    if weeks_analyzed == 0:
        return []

    patterns = analyze_employee_patterns(employee_id, schedules, target_week_start,
                                         lookback_weeks, semana_inicio_dia, completed_only)
    best: Dict[int, EmployeePattern] = {}
    for pattern in patterns:
        if pattern.frequency < min_occurrences:
            continue
        current = best.get(pattern.day_of_week)
        if current is None or (pattern.frequency, pattern.last_seen) > (current.frequency, current.last_seen):
            best[pattern.day_of_week] = pattern

    return [
        PatternSuggestion(
            employee_id=employee_id,
            day_of_week=day_of_week,
            suggested_assignments=copy.deepcopy(pattern.assignments),
            confidence=min(pattern.frequency / weeks_analyzed, 1.0),
            weeks_matched=pattern.frequency,
            consecutive_weeks=pattern.consecutive_weeks,
            last_seen=pattern.last_seen,
        )
        for day_of_week, pattern in sorted(best.items())
    ]


def get_suggestions_for_week(employee_id: str, schedules: Iterable[Any], target_week_start: DateLike,
                             config: Any = None, **kwargs) -> Dict[int, PatternSuggestion]:
    """Suggestions for a target week keyed by day of the week"""
    config = resolve_configuration(config)
    kwargs.setdefault("semana_inicio_dia", config.semana_inicio_dia)
    suggestions = generate_suggestions(employee_id, schedules, target_week_start, **kwargs)
    return {s.day_of_week: s for s in suggestions}


def get_suggestion_for_day(employee_id: str, day_of_week: int, schedules: Iterable[Any],
                           target_week_start: DateLike, config: Any = None,
                           **kwargs) -> Optional[PatternSuggestion]:
    return get_suggestions_for_week(employee_id, schedules, target_week_start, config, **kwargs).get(day_of_week)


def get_suggestions_for_employees(employees: Iterable[Any], schedules: Iterable[Any],
                                  target_week_start: DateLike, config: Any = None,
                                  **kwargs) -> Dict[str, Dict[int, PatternSuggestion]]:
    """Suggestions for every employee; employees without any are left out"""
    schedules = [as_schedule(s) for s in schedules or []]
    result = {}
    for raw in employees or []:
        employee = as_employee(raw)
        suggestions = get_suggestions_for_week(employee.id, schedules, target_week_start, config, **kwargs)
        if suggestions:
            result[employee.id] = suggestions
    return result


def suggestion_to_date(suggestion: PatternSuggestion, target_week_start: DateLike) -> date:
    """Concrete date a suggestion applies to within the target week"""
    return parse_date(target_week_start) + timedelta(days=suggestion.day_of_week)
