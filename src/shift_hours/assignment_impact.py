"""
Assignment Impact Calculator

Turns one assignment into its contribution to an employee's statistics:
days off, normal hours, extra hours, leave hours and half-day hours.
This is the only place those numbers are derived from assignments.
"""

import logging
from dataclasses import dataclass, fields
from typing import Any, Iterable, List, Optional

from .data_manager import (
    Assignment, Franco, Licencia, MedioFranco, Nota, ShiftAssignment,
    normalize_assignment, normalize_assignments, resolve_configuration,
)
from .time_utils import range_duration
from .working_hours import (
    calculate_daily_hours, calculate_leave_hours, calculate_worked_minutes, index_shifts,
)

logger = logging.getLogger(__name__)


@dataclass
class AssignmentImpact:
    """Contribution of one assignment; derived, never persisted"""
    suma_francos: float = 0.0
    horas_normales: float = 0.0
    horas_extras: float = 0.0
    horas_licencia: float = 0.0
    horas_medio_franco: float = 0.0
    aporta_trabajo: bool = False
    aporta_licencia: bool = False

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @property
    def horas_computables(self) -> float:
        return self.horas_normales + self.horas_extras + self.horas_licencia


@dataclass
class DayImpact:
    """Summed impacts of one employee-day"""
    suma_francos: float = 0.0
    horas_normales: float = 0.0
    horas_extras: float = 0.0
    horas_licencia: float = 0.0
    horas_medio_franco: float = 0.0
    trabajo: bool = False
    licencia: bool = False

    def add(self, impact: AssignmentImpact):
        self.suma_francos += impact.suma_francos
        self.horas_normales += impact.horas_normales
        self.horas_extras += impact.horas_extras
        self.horas_licencia += impact.horas_licencia
        self.horas_medio_franco += impact.horas_medio_franco
        self.trabajo = self.trabajo or impact.aporta_trabajo
        self.licencia = self.licencia or impact.aporta_licencia

    @property
    def horas_computables(self) -> float:
        return self.horas_normales + self.horas_extras + self.horas_licencia


def _shift_impact(assignment: ShiftAssignment, shifts, config, day_assignments) -> AssignmentImpact:
    day_shifts = [a for a in normalize_assignments(day_assignments) if isinstance(a, ShiftAssignment)]
    if assignment not in day_shifts:
        day_shifts.append(assignment)

    daily = calculate_daily_hours(day_shifts, shifts, config)
    own_minutes = calculate_worked_minutes(assignment, shifts)
    if daily.minutos_trabajados == 0 or own_minutes == 0:
        return AssignmentImpact()

    # Each shift takes its share of the day split, by worked minutes
    share = own_minutes / daily.minutos_trabajados
    normales = daily.horas_normales * share
    extras = daily.horas_extra * share
    return AssignmentImpact(
        horas_normales=normales,
        horas_extras=extras,
        aporta_trabajo=normales + extras > 0,
    )


def _medio_franco_impact(assignment: MedioFranco) -> AssignmentImpact:
    hours = 0.0
    if assignment.start_time and assignment.end_time:
        hours = range_duration(assignment.start_time, assignment.end_time) / 60
    return AssignmentImpact(
        suma_francos=0.5,
        horas_normales=hours,
        horas_medio_franco=hours,
        aporta_trabajo=hours > 0,
    )


def _licencia_impact(assignment: Licencia, shifts, config) -> AssignmentImpact:
    hours = calculate_leave_hours(assignment, shifts, config)
    return AssignmentImpact(horas_licencia=hours, aporta_licencia=hours > 0)


def calculate_assignment_impact(assignment: Any, shifts: Any = (), half_shifts: Any = (),
                                config: Any = None,
                                day_assignments: Optional[Iterable] = None) -> AssignmentImpact:
    """
    Compute the statistics contribution of a single assignment.

    Args:
        assignment: Assignment variant or raw assignment document
        shifts: Shift templates, as a list or id mapping
        half_shifts: Half-shift templates (kept for callers resolving templates)
        config: Configuration, raw configuration document or None for defaults
        day_assignments: Every assignment of the same employee-day; shift hours are
            resolved at day level so the break and the ceiling apply once per day
    """
    config = resolve_configuration(config)
    assignment = normalize_assignment(assignment)
    if assignment is None:
        return AssignmentImpact()

    if isinstance(assignment, Franco):
        return AssignmentImpact(suma_francos=1.0)
    elif isinstance(assignment, MedioFranco):
        return _medio_franco_impact(assignment)
    elif isinstance(assignment, ShiftAssignment):
        return _shift_impact(assignment, index_shifts(shifts), config,
                             day_assignments if day_assignments is not None else [assignment])
    elif isinstance(assignment, Licencia):
        return _licencia_impact(assignment, index_shifts(shifts), config)
    elif isinstance(assignment, Nota):
        return AssignmentImpact()

    logger.warning(f"No impact rule for assignment type {getattr(assignment, 'raw_type', assignment.type)!r}")
    return AssignmentImpact()


def calculate_day_impact(assignments: Any, shifts: Any = (), half_shifts: Any = (),
                         config: Any = None) -> DayImpact:
    """Sum the impacts of every assignment of one employee-day"""
    config = resolve_configuration(config)
    shifts = index_shifts(shifts)
    day_assignments: List[Assignment] = normalize_assignments(assignments)
    day = DayImpact()
    for assignment in day_assignments:
        day.add(calculate_assignment_impact(assignment, shifts, half_shifts, config, day_assignments))
    return day
