"""
Daily Working-Hours Resolver

Resolves the concrete time blocks of an assignment (its own times or the times
of the shift it references), applies the break rule once per day and splits the
day's hours into normal and extra hours against the daily ceiling.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Any

from .data_manager import (
    Assignment, Configuration, Licencia, MedioFranco, Shift, ShiftAssignment,
    as_shift, normalize_assignments, resolve_configuration,
)
from .time_utils import range_duration

logger = logging.getLogger(__name__)


@dataclass
class TimeBlocks:
    """Resolved time blocks of one assignment"""
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    start_time2: Optional[str] = None
    end_time2: Optional[str] = None

    def blocks(self) -> List[tuple]:
        result = []
        if self.start_time and self.end_time:
            result.append((self.start_time, self.end_time))
            if self.start_time2 and self.end_time2:
                result.append((self.start_time2, self.end_time2))
        return result

    @property
    def is_empty(self) -> bool:
        return not self.blocks()


@dataclass
class DailyHoursResult:
    """Hours of one employee-day after the break rule and the ceiling split"""
    horas_normales: float = 0.0
    horas_extra: float = 0.0
    minutos_trabajados: int = 0
    descanso_aplicado: bool = False

    @property
    def horas_computables(self) -> float:
        return self.horas_normales + self.horas_extra


@dataclass
class PeriodHoursResult:
    horas_normales: float = 0.0
    horas_extra: float = 0.0
    dias: Dict[str, DailyHoursResult] = field(default_factory=dict)

    @property
    def horas_computables(self) -> float:
        return self.horas_normales + self.horas_extra


def index_shifts(shifts: Any) -> Dict[str, Shift]:
    """Accept a list of shifts or an id -> shift mapping, as objects or raw documents"""
    if shifts is None:
        return {}
    if isinstance(shifts, Mapping):
        indexed = {}
        for shift_id, shift in shifts.items():
            if isinstance(shift, Mapping) and "id" not in shift:
                shift = {**shift, "id": shift_id}
            indexed[shift_id] = as_shift(shift)
        return indexed
    indexed = {}
    for shift in shifts:
        shift = as_shift(shift)
        indexed[shift.id] = shift
    return indexed


def resolve_assignment_times(assignment: Assignment, shifts: Any = None) -> TimeBlocks:
    """
    Get the time blocks an assignment covers.

    The assignment's own times win when its first block is complete; otherwise
    shift and licencia assignments fall back to the shift they reference.
    """
    own = TimeBlocks(
        start_time=getattr(assignment, "start_time", None),
        end_time=getattr(assignment, "end_time", None),
        start_time2=getattr(assignment, "start_time2", None),
        end_time2=getattr(assignment, "end_time2", None),
    )
    if not own.is_empty or isinstance(assignment, MedioFranco):
        return own

    shift_id = getattr(assignment, "shift_id", None)
    if not shift_id:
        return TimeBlocks()
    shift = index_shifts(shifts).get(shift_id)
    if shift is None:
        logger.debug(f"Shift {shift_id} not found, assignment counts as zero hours")
        return TimeBlocks()
    return TimeBlocks(shift.start_time, shift.end_time, shift.start_time2, shift.end_time2)


def calculate_worked_minutes(assignment: Assignment, shifts: Any = None) -> int:
    """Total minutes of every resolved block of one assignment, before any break"""
    blocks = resolve_assignment_times(assignment, shifts).blocks()
    return sum(range_duration(start, end) for start, end in blocks)


def _apply_break(minutes: int, config: Configuration) -> tuple:
    if minutes / 60 > config.horas_minimas_para_descanso:
        return max(0, minutes - config.minutos_descanso), True
    return minutes, False


def calculate_daily_hours(assignments: Iterable, shifts: Any = None, config: Any = None) -> DailyHoursResult:
    """Resolve one employee-day; only shift assignments are counted"""
    config = resolve_configuration(config)
    shifts = index_shifts(shifts)

    total_minutes = sum(
        calculate_worked_minutes(assignment, shifts)
        for assignment in normalize_assignments(list(assignments or []))
        if isinstance(assignment, ShiftAssignment)
    )
    if total_minutes == 0:
        return DailyHoursResult()

    net_minutes, break_applied = _apply_break(total_minutes, config)
    total_hours = net_minutes / 60
    return DailyHoursResult(
        horas_normales=min(total_hours, config.horas_maximas_por_dia),
        horas_extra=max(0.0, total_hours - config.horas_maximas_por_dia),
        minutos_trabajados=total_minutes,
        descanso_aplicado=break_applied,
    )


def calculate_leave_hours(assignment: Licencia, shifts: Any = None, config: Any = None) -> float:
    """Hours a licencia covers, with the break rule but without the ceiling split"""
    config = resolve_configuration(config)
    minutes = calculate_worked_minutes(assignment, shifts)
    net_minutes, _ = _apply_break(minutes, config)
    return net_minutes / 60


def calculate_period_hours(days_assignments: Mapping[str, Any], shifts: Any = None,
                           config: Any = None) -> PeriodHoursResult:
    """Sum the daily resolution over a date -> assignments map"""
    config = resolve_configuration(config)
    shifts = index_shifts(shifts)
    result = PeriodHoursResult()
    for date_str in sorted(days_assignments):
        daily = calculate_daily_hours(days_assignments[date_str], shifts, config)
        result.dias[date_str] = daily
        result.horas_normales += daily.horas_normales
        result.horas_extra += daily.horas_extra
    return result
