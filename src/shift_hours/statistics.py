"""
Weekly and Monthly Statistics Aggregator

Folds per-day assignment impacts into per-employee statistics over a week or a
custom month window. Aggregation is done day by day over a date range, so a
week that straddles two month windows contributes each of its days to exactly
one of them.
"""

import calendar
import logging
from dataclasses import dataclass, field, fields
from datetime import date, timedelta
from typing import Dict, List, Optional, Any, Iterable, Tuple, Union

from .data_manager import (
    DAY_STATUS_FRANCO, DAY_STATUS_MEDIO_FRANCO, DAY_STATUS_NORMAL,
    Assignment, DataValidationError, InvalidReferenceError,
    as_employee, as_schedule, resolve_configuration,
)
from .assignment_impact import DayImpact, calculate_day_impact
from .working_hours import index_shifts

logger = logging.getLogger(__name__)

DateLike = Union[str, date]


@dataclass
class EmployeeStats:
    """Accumulated statistics of one employee over a period"""
    francos: float = 0.0
    horas_normales: float = 0.0
    horas_extras: float = 0.0
    horas_licencia: float = 0.0
    horas_medio_franco: float = 0.0
    dias_trabajados: int = 0
    dias_licencia: int = 0

    @property
    def horas_computables(self) -> float:
        return self.horas_normales + self.horas_extras + self.horas_licencia

    def add_day(self, day: DayImpact, day_status: str = DAY_STATUS_NORMAL):
        """Fold one employee-day into the totals; each day is counted at most once"""
        self.francos += day.suma_francos
        if day.suma_francos == 0:
            if day_status == DAY_STATUS_FRANCO:
                self.francos += 1
            elif day_status == DAY_STATUS_MEDIO_FRANCO:
                self.francos += 0.5
        self.horas_normales += day.horas_normales
        self.horas_extras += day.horas_extras
        self.horas_licencia += day.horas_licencia
        self.horas_medio_franco += day.horas_medio_franco
        if day.trabajo:
            self.dias_trabajados += 1
        if day.licencia:
            self.dias_licencia += 1

    def merge(self, other: 'EmployeeStats') -> 'EmployeeStats':
        """Return a new EmployeeStats with both totals added"""
        return EmployeeStats(**{
            f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)
        })

    def to_dict(self) -> Dict[str, Any]:
        result = {f.name: getattr(self, f.name) for f in fields(self)}
        result["horas_computables"] = self.horas_computables
        return result


@dataclass
class DayRecord:
    """Assignments and day statuses of one date, as found in one schedule"""
    schedule_id: str
    assignments: Dict[str, List[Assignment]] = field(default_factory=dict)
    day_status: Dict[str, str] = field(default_factory=dict)


# Calendar helpers

def parse_date(value: DateLike) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise DataValidationError(f"Invalid ISO date: {value!r}")


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def js_weekday(value: date) -> int:
    """Weekday with 0 = Sunday ... 6 = Saturday, the convention of semana_inicio_dia"""
    return (value.weekday() + 1) % 7


def get_week_start(value: DateLike, semana_inicio_dia: int = 1) -> date:
    day = parse_date(value)
    offset = (js_weekday(day) - semana_inicio_dia) % 7
    return day - timedelta(days=offset)


def get_week_days(week_start: DateLike) -> List[date]:
    start = parse_date(week_start)
    return [start + timedelta(days=i) for i in range(7)]


def _month_start(year: int, month: int, mes_inicio_dia: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(mes_inicio_dia, last_day))


def _next_month(year: int, month: int) -> Tuple[int, int]:
    return (year + 1, 1) if month == 12 else (year, month + 1)


def _previous_month(year: int, month: int) -> Tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def get_custom_month_range(year: int, month: int, mes_inicio_dia: int = 1) -> Tuple[date, date]:
    """
    Window of a custom month: from day `mes_inicio_dia` of the month to the day
    before that same day of the next month. Start days beyond a month's length
    are clamped to its last day.
    """
    start = _month_start(year, month, mes_inicio_dia)
    next_start = _month_start(*_next_month(year, month), mes_inicio_dia)
    return start, next_start - timedelta(days=1)


def get_custom_month_for_date(value: DateLike, mes_inicio_dia: int = 1) -> Tuple[int, int]:
    """(year, month) of the custom month window containing a date"""
    day = parse_date(value)
    if day >= _month_start(day.year, day.month, mes_inicio_dia):
        return day.year, day.month
    return _previous_month(day.year, day.month)


def get_month_weeks(year: int, month: int, mes_inicio_dia: int = 1,
                    semana_inicio_dia: int = 1) -> List[List[date]]:
    """Every 7-day week with at least one day inside the custom month window"""
    start, end = get_custom_month_range(year, month, mes_inicio_dia)
    weeks = []
    week_start = get_week_start(start, semana_inicio_dia)
    while week_start <= end:
        weeks.append(get_week_days(week_start))
        week_start += timedelta(days=7)
    return weeks


def get_main_month(start: DateLike, end: DateLike) -> Tuple[int, int]:
    """Calendar month holding most days of a range; ties go to the later month"""
    current, last = parse_date(start), parse_date(end)
    counts: Dict[Tuple[int, int], int] = {}
    while current <= last:
        key = (current.year, current.month)
        counts[key] = counts.get(key, 0) + 1
        current += timedelta(days=1)
    if not counts:
        day = parse_date(start)
        return day.year, day.month
    return max(counts, key=lambda key: (counts[key], key))


# Indexing

def index_assignments_by_date(schedules: Iterable[Any]) -> Dict[str, DayRecord]:
    """
    Map each date to the assignments and day statuses stored for it.

    A schedule with a known week start only contributes the dates of its own
    week. When several schedules hold the same date the first one wins.
    """
    index: Dict[str, DayRecord] = {}
    for raw in schedules or []:
        schedule = as_schedule(raw)
        week_dates = None
        if schedule.week_start:
            week_dates = {format_date(d) for d in get_week_days(schedule.week_start)}

        dates = set(schedule.assignments) | set(schedule.day_status)
        for date_str in sorted(dates):
            if week_dates is not None and date_str not in week_dates:
                logger.debug(f"Schedule {schedule.id}: ignoring {date_str} outside week {schedule.week_start}")
                continue
            if date_str in index:
                if index[date_str].schedule_id != schedule.id:
                    logger.warning(f"Date {date_str} found in schedules {index[date_str].schedule_id} "
                                   f"and {schedule.id}, keeping the first")
                continue
            index[date_str] = DayRecord(
                schedule_id=schedule.id,
                assignments=dict(schedule.assignments.get(date_str, {})),
                day_status=dict(schedule.day_status.get(date_str, {})),
            )
    return index


class StatisticsAggregator:
    """Computes per-employee statistics for weeks, custom months or any date range"""

    def __init__(self, employees: Iterable[Any] = (), shifts: Any = (), half_shifts: Any = None,
                 config: Any = None):
        self.employees = [as_employee(e) for e in employees or []]
        self.shifts = index_shifts(shifts)
        self.half_shifts = list(half_shifts or [])
        self.config = resolve_configuration(config)

    @classmethod
    def from_data_manager(cls, data_manager) -> 'StatisticsAggregator':
        return cls(
            employees=data_manager.get_employees(active_only=False),
            shifts=data_manager.shifts,
            half_shifts=data_manager.half_shifts,
            config=data_manager.config,
        )

    def _require_employee(self, employee_id: str):
        if not any(e.id == employee_id for e in self.employees):
            raise InvalidReferenceError(f"Unknown employee id: {employee_id!r}")

    def calculate_range_stats(self, schedules: Iterable[Any], start: DateLike, end: DateLike,
                              employee_ids: Optional[Iterable[str]] = None) -> Dict[str, EmployeeStats]:
        """Statistics per employee for every day from start to end, both included"""
        start_day, end_day = parse_date(start), parse_date(end)
        wanted = set(employee_ids) if employee_ids is not None else None

        stats: Dict[str, EmployeeStats] = {
            e.id: EmployeeStats() for e in self.employees if wanted is None or e.id in wanted
        }
        if wanted is not None:
            for emp_id in wanted:
                stats.setdefault(emp_id, EmployeeStats())

        index = index_assignments_by_date(schedules)
        current = start_day
        while current <= end_day:
            record = index.get(format_date(current))
            current += timedelta(days=1)
            if record is None:
                continue
            for emp_id in list(record.assignments) + [e for e in record.day_status if e not in record.assignments]:
                if wanted is not None and emp_id not in wanted:
                    continue
                assignments = record.assignments.get(emp_id, [])
                status = record.day_status.get(emp_id) or DAY_STATUS_NORMAL
                if not assignments and status == DAY_STATUS_NORMAL:
                    continue
                day = calculate_day_impact(assignments, self.shifts, self.half_shifts, self.config)
                stats.setdefault(emp_id, EmployeeStats()).add_day(day, status)
        return stats

    def calculate_week_stats(self, schedules: Iterable[Any], week_start: DateLike,
                             employee_ids: Optional[Iterable[str]] = None) -> Dict[str, EmployeeStats]:
        start = get_week_start(week_start, self.config.semana_inicio_dia)
        return self.calculate_range_stats(schedules, start, start + timedelta(days=6), employee_ids)

    def calculate_month_stats(self, schedules: Iterable[Any], year: int, month: int,
                              employee_ids: Optional[Iterable[str]] = None) -> Dict[str, EmployeeStats]:
        start, end = get_custom_month_range(year, month, self.config.mes_inicio_dia)
        logger.debug(f"Month window {year}-{month:02d}: {start} to {end}")
        return self.calculate_range_stats(schedules, start, end, employee_ids)

    def calculate_employee_week_stats(self, employee_id: str, schedules: Iterable[Any],
                                      week_start: DateLike) -> EmployeeStats:
        self._require_employee(employee_id)
        return self.calculate_week_stats(schedules, week_start, [employee_id])[employee_id]

    def calculate_employee_month_stats(self, employee_id: str, schedules: Iterable[Any],
                                       year: int, month: int) -> EmployeeStats:
        self._require_employee(employee_id)
        return self.calculate_month_stats(schedules, year, month, [employee_id])[employee_id]

    def get_month_weeks(self, year: int, month: int) -> List[List[date]]:
        return get_month_weeks(year, month, self.config.mes_inicio_dia, self.config.semana_inicio_dia)


def combine_stats_view(month_stats: Dict[str, EmployeeStats],
                       week_stats: Dict[str, EmployeeStats]) -> Dict[str, Dict[str, EmployeeStats]]:
    """Pair month and week statistics per employee for display; computes nothing"""
    view = {}
    for emp_id in list(month_stats) + [e for e in week_stats if e not in month_stats]:
        view[emp_id] = {
            "month": month_stats.get(emp_id, EmployeeStats()),
            "week": week_stats.get(emp_id, EmployeeStats()),
        }
    return view
