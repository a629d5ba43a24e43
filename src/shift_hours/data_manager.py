"""
Data Manager for the Shift Hours Engine

Defines the data model (assignments, shifts, half shifts, employees, weekly
schedules and configuration), normalizes the loosely-typed documents handed
over by the external store, and keeps an in-memory registry of the reference
data one owner's calculations need.
"""

import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import date, timedelta
from typing import Dict, List, Optional, Any, ClassVar, Iterable


logger = logging.getLogger(__name__)


class ShiftHoursError(Exception):
    """Base exception for engine operations"""
    pass


class InvalidReferenceError(ShiftHoursError, KeyError):
    """Raised when a caller refers to an employee or schedule that does not exist"""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class DataValidationError(ShiftHoursError, ValueError):
    """Raised when a document cannot be normalized into the data model"""
    pass


class ExportError(ShiftHoursError, ValueError):
    """Raised when a report cannot be produced in the requested format"""
    pass


# External documents use camelCase keys; the data model uses snake_case.
_EXTERNAL_KEYS = {
    "shift_id": "shiftId",
    "start_time": "startTime",
    "end_time": "endTime",
    "start_time2": "startTime2",
    "end_time2": "endTime2",
    "licencia_type": "licenciaType",
    "text": "texto",
}

DAY_STATUS_NORMAL = "normal"
DAY_STATUS_FRANCO = "franco"
DAY_STATUS_MEDIO_FRANCO = "medio_franco"


def _clean_value(value: Any) -> Optional[str]:
    """Blank strings and None both mean 'not set'"""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _read(data: Mapping, name: str, default: Any = None) -> Any:
    """Read an attribute from a document by its camelCase key, falling back to snake_case"""
    external = _EXTERNAL_KEYS.get(name, name)
    if external in data:
        return data[external]
    return data.get(name, default)


# ---------------------------------------------------------------------------
# Configuration

@dataclass(frozen=True)
class Configuration:
    """Business rules that drive every hours calculation"""
    minutos_descanso: int = 30
    horas_minimas_para_descanso: float = 6
    horas_maximas_por_dia: float = 8
    mes_inicio_dia: int = 1
    semana_inicio_dia: int = 1  # 0 = Sunday ... 6 = Saturday

    def to_dict(self) -> Dict[str, Any]:
        return {
            "minutosDescanso": self.minutos_descanso,
            "horasMinimasParaDescanso": self.horas_minimas_para_descanso,
            "horasMaximasPorDia": self.horas_maximas_por_dia,
            "mesInicioDia": self.mes_inicio_dia,
            "semanaInicioDia": self.semana_inicio_dia,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> 'Configuration':
        """Build a configuration, filling every missing or unusable field from the defaults"""
        if not data:
            return DEFAULT_CONFIGURATION
        defaults = DEFAULT_CONFIGURATION

        def number(camel: str, snake: str, default: float, cast=float):
            value = data.get(camel, data.get(snake))
            if value is None:
                return default
            try:
                return cast(value)
            except (TypeError, ValueError):
                logger.warning(f"Invalid value {value!r} for {camel}, using default {default}")
                return default

        horas_maximas = number("horasMaximasPorDia", "horas_maximas_por_dia", defaults.horas_maximas_por_dia)
        # Older documents keep the daily ceiling under reglasHorarias
        reglas = data.get("reglasHorarias") or {}
        if isinstance(reglas, Mapping) and reglas.get("horasNormalesPorDia") is not None:
            horas_maximas = _as_float(reglas["horasNormalesPorDia"], horas_maximas)

        mes_inicio = number("mesInicioDia", "mes_inicio_dia", defaults.mes_inicio_dia, int)
        if not 1 <= mes_inicio <= 31:
            logger.warning(f"mesInicioDia {mes_inicio} out of range 1-31, using {defaults.mes_inicio_dia}")
            mes_inicio = defaults.mes_inicio_dia

        semana_inicio = number("semanaInicioDia", "semana_inicio_dia", defaults.semana_inicio_dia, int)
        if not 0 <= semana_inicio <= 6:
            logger.warning(f"semanaInicioDia {semana_inicio} out of range 0-6, using {defaults.semana_inicio_dia}")
            semana_inicio = defaults.semana_inicio_dia

        return cls(
            minutos_descanso=number("minutosDescanso", "minutos_descanso", defaults.minutos_descanso, int),
            horas_minimas_para_descanso=number("horasMinimasParaDescanso", "horas_minimas_para_descanso",
                                               defaults.horas_minimas_para_descanso),
            horas_maximas_por_dia=horas_maximas,
            mes_inicio_dia=mes_inicio,
            semana_inicio_dia=semana_inicio,
        )


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid numeric value {value!r}, using default {default}")
        return default


DEFAULT_CONFIGURATION = Configuration()


def resolve_configuration(config: Any = None) -> Configuration:
    """Accept None, a Configuration or a raw configuration document"""
    if config is None:
        return DEFAULT_CONFIGURATION
    if isinstance(config, Configuration):
        return config
    if isinstance(config, Mapping):
        return Configuration.from_dict(config)
    raise DataValidationError(f"Unsupported configuration object: {type(config).__name__}")


# ---------------------------------------------------------------------------
# Assignments

@dataclass
class Assignment:
    """Base of the assignment variants; `type` is the external tag"""
    type: ClassVar[str] = ""

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.type}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None or value == "":
                continue
            result[_EXTERNAL_KEYS.get(f.name, f.name)] = value
        return result

    @property
    def has_first_block(self) -> bool:
        return bool(getattr(self, "start_time", None) and getattr(self, "end_time", None))


@dataclass
class ShiftAssignment(Assignment):
    """Worked shift, optionally split in two blocks"""
    type: ClassVar[str] = "shift"
    shift_id: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    start_time2: Optional[str] = None
    end_time2: Optional[str] = None


@dataclass
class Franco(Assignment):
    """Full day off"""
    type: ClassVar[str] = "franco"


@dataclass
class MedioFranco(Assignment):
    """Half day off, optionally with the worked block of the other half"""
    type: ClassVar[str] = "medio_franco"
    start_time: Optional[str] = None
    end_time: Optional[str] = None


@dataclass
class Licencia(Assignment):
    """Approved leave"""
    type: ClassVar[str] = "licencia"
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    licencia_type: Optional[str] = None
    shift_id: Optional[str] = None


@dataclass
class Nota(Assignment):
    """Free-text annotation"""
    type: ClassVar[str] = "nota"
    text: str = ""


@dataclass
class UnknownAssignment(Assignment):
    """Assignment with a tag this engine does not know; kept so it can be reported"""
    type: ClassVar[str] = "unknown"
    raw_type: str = ""
    raw: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.raw)


ASSIGNMENT_TYPES = {cls.type: cls for cls in (ShiftAssignment, Franco, MedioFranco, Licencia, Nota)}


def _drop_orphan_second_block(assignment: Assignment) -> Assignment:
    if not isinstance(assignment, ShiftAssignment):
        return assignment
    if (assignment.start_time2 or assignment.end_time2) and not assignment.has_first_block:
        logger.warning(f"Dropping second time block of shift {assignment.shift_id!r}: first block is missing")
        return replace(assignment, start_time2=None, end_time2=None)
    return assignment


def normalize_assignment(value: Any) -> Optional[Assignment]:
    """
    Map one loosely-typed assignment into its variant.

    Accepts an Assignment (returned as is), a bare shift id string (legacy
    format), or a document whose missing `type` means "shift". Unknown tags
    become UnknownAssignment. Returns None for empty values.
    """
    if value is None:
        return None
    if isinstance(value, Assignment):
        return value
    if isinstance(value, str):
        shift_id = value.strip()
        return ShiftAssignment(shift_id=shift_id) if shift_id else None
    if not isinstance(value, Mapping):
        logger.warning(f"Ignoring assignment of unsupported type {type(value).__name__}")
        return None

    raw_type = value.get("type") or ShiftAssignment.type
    cls = ASSIGNMENT_TYPES.get(raw_type)
    if cls is None:
        logger.warning(f"Unknown assignment type {raw_type!r}")
        return UnknownAssignment(raw_type=str(raw_type), raw=dict(value))

    kwargs = {}
    for f in fields(cls):
        raw_value = _read(value, f.name)
        if f.name == "text":
            kwargs[f.name] = "" if raw_value is None else str(raw_value)
        else:
            kwargs[f.name] = _clean_value(raw_value)
    return _drop_orphan_second_block(cls(**kwargs))


def normalize_assignments(value: Any) -> List[Assignment]:
    """Normalize a cell value (None, a single assignment or a list) into a list of variants"""
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = [value]
    normalized = []
    for item in items:
        assignment = normalize_assignment(item)
        if assignment is not None:
            normalized.append(assignment)
    return normalized


# ---------------------------------------------------------------------------
# Reference data

@dataclass
class Shift:
    """Named shift template (turno)"""
    id: str
    name: str = ""
    color: str = ""
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    start_time2: Optional[str] = None
    end_time2: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {"id": self.id, "name": self.name, "color": self.color}
        for name in ("start_time", "end_time", "start_time2", "end_time2"):
            value = getattr(self, name)
            if value:
                result[_EXTERNAL_KEYS[name]] = value
        return result

    @classmethod
    def from_dict(cls, data: Mapping) -> 'Shift':
        if "id" not in data:
            raise DataValidationError(f"Shift document without id: {dict(data)}")
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            color=data.get("color", ""),
            start_time=_clean_value(_read(data, "start_time")),
            end_time=_clean_value(_read(data, "end_time")),
            start_time2=_clean_value(_read(data, "start_time2")),
            end_time2=_clean_value(_read(data, "end_time2")),
        )


@dataclass
class HalfShift:
    """Predefined time range used as a half-day-off template (medio turno)"""
    id: str
    name: str = ""
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    def to_assignment(self) -> MedioFranco:
        return MedioFranco(start_time=self.start_time, end_time=self.end_time)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "startTime": self.start_time, "endTime": self.end_time}

    @classmethod
    def from_dict(cls, data: Mapping) -> 'HalfShift':
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", data.get("nombre", "")),
            start_time=_clean_value(_read(data, "start_time")),
            end_time=_clean_value(_read(data, "end_time")),
        )


@dataclass
class Employee:
    """Employee of one owner"""
    id: str
    name: str
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "isActive": self.is_active}

    @classmethod
    def from_dict(cls, data: Mapping) -> 'Employee':
        if "id" not in data:
            raise DataValidationError(f"Employee document without id: {dict(data)}")
        return cls(
            id=str(data["id"]),
            name=data.get("name", data.get("nombre", "")),
            is_active=data.get("isActive", data.get("is_active", True)),
        )


def _check_iso_date(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return date.fromisoformat(str(value)[:10]).isoformat()
    except ValueError:
        raise DataValidationError(f"Invalid ISO date: {value!r}")


def _align_week_start(value: str, semana_inicio_dia: int) -> str:
    """Move a date back to the first day of its week (semana_inicio_dia: 0 = Sunday)"""
    day = date.fromisoformat(_check_iso_date(value))
    offset = ((day.weekday() + 1) % 7 - semana_inicio_dia) % 7
    return (day - timedelta(days=offset)).isoformat()


@dataclass
class Schedule:
    """One owner's week of assignments (horario)"""
    id: str
    week_start: Optional[str] = None
    owner_id: Optional[str] = None
    name: str = ""
    assignments: Dict[str, Dict[str, List[Assignment]]] = field(default_factory=dict)
    day_status: Dict[str, Dict[str, str]] = field(default_factory=dict)
    completed: bool = False

    def assignments_for(self, date_str: str, employee_id: str) -> List[Assignment]:
        return list(self.assignments.get(date_str, {}).get(employee_id, []))

    def day_status_for(self, date_str: str, employee_id: str) -> str:
        return self.day_status.get(date_str, {}).get(employee_id) or DAY_STATUS_NORMAL

    def set_assignments(self, date_str: str, employee_id: str, assignments: Any):
        """Replace one cell; an empty value clears it"""
        normalized = normalize_assignments(assignments)
        if normalized:
            self.assignments.setdefault(date_str, {})[employee_id] = normalized
        else:
            day = self.assignments.get(date_str)
            if day and employee_id in day:
                del day[employee_id]
                if not day:
                    del self.assignments[date_str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "weekStart": self.week_start,
            "ownerId": self.owner_id,
            "nombre": self.name,
            "assignments": {
                date_str: {emp_id: [a.to_dict() for a in cell] for emp_id, cell in day.items()}
                for date_str, day in self.assignments.items()
            },
            "dayStatus": copy.deepcopy(self.day_status),
            "completada": self.completed,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> 'Schedule':
        week_start = _check_iso_date(data.get("weekStart") or data.get("semanaInicio") or data.get("week_start"))
        owner_id = data.get("ownerId", data.get("owner_id"))
        schedule_id = data.get("id") or (f"{owner_id}_{week_start}" if owner_id and week_start else week_start or "")

        raw_assignments = data.get("assignments") or {}
        if not isinstance(raw_assignments, Mapping):
            raise DataValidationError(f"Schedule {schedule_id!r}: assignments must be a mapping")
        assignments: Dict[str, Dict[str, List[Assignment]]] = {}
        for date_str, day in raw_assignments.items():
            if not isinstance(day, Mapping):
                raise DataValidationError(f"Schedule {schedule_id!r}: assignments for {date_str} must be a mapping")
            cells = {}
            for emp_id, value in day.items():
                normalized = normalize_assignments(value)
                if normalized:
                    cells[str(emp_id)] = normalized
            if cells:
                assignments[str(date_str)] = cells

        raw_status = data.get("dayStatus", data.get("day_status")) or {}
        day_status = {
            str(date_str): {str(emp_id): status for emp_id, status in statuses.items()}
            for date_str, statuses in raw_status.items()
            if isinstance(statuses, Mapping)
        }

        return cls(
            id=str(schedule_id),
            week_start=week_start,
            owner_id=owner_id,
            name=data.get("nombre", data.get("name", "")),
            assignments=assignments,
            day_status=day_status,
            completed=bool(data.get("completada", data.get("completed", False))),
        )


def as_schedule(value: Any) -> Schedule:
    if isinstance(value, Schedule):
        return value
    if isinstance(value, Mapping):
        return Schedule.from_dict(value)
    raise DataValidationError(f"Unsupported schedule object: {type(value).__name__}")


def as_employee(value: Any) -> Employee:
    if isinstance(value, Employee):
        return value
    if isinstance(value, Mapping):
        return Employee.from_dict(value)
    raise DataValidationError(f"Unsupported employee object: {type(value).__name__}")


def as_shift(value: Any) -> Shift:
    if isinstance(value, Shift):
        return value
    if isinstance(value, Mapping):
        return Shift.from_dict(value)
    raise DataValidationError(f"Unsupported shift object: {type(value).__name__}")


# ---------------------------------------------------------------------------
# Registry

class DataManager:
    """In-memory registry of one owner's employees, shifts, configuration and schedules"""

    def __init__(self, employees: Optional[Iterable] = None, shifts: Optional[Iterable] = None,
                 half_shifts: Optional[Iterable] = None, config: Any = None,
                 schedules: Optional[Iterable] = None, owner_id: Optional[str] = None):
        self.owner_id = owner_id
        self.employees: List[Employee] = [as_employee(e) for e in employees or []]
        self.shifts: List[Shift] = [as_shift(s) for s in shifts or []]
        self.half_shifts: List[HalfShift] = [
            h if isinstance(h, HalfShift) else HalfShift.from_dict(h) for h in half_shifts or []
        ]
        self._config = resolve_configuration(config)
        self.schedules: List[Schedule] = [as_schedule(s) for s in schedules or []]

    @classmethod
    def from_dict(cls, data: Mapping) -> 'DataManager':
        return cls(
            employees=data.get("employees", []),
            shifts=data.get("shifts", []),
            half_shifts=data.get("halfShifts", data.get("mediosTurnos", [])),
            config=data.get("config"),
            schedules=data.get("schedules", []),
            owner_id=data.get("ownerId"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ownerId": self.owner_id,
            "employees": [e.to_dict() for e in self.employees],
            "shifts": [s.to_dict() for s in self.shifts],
            "halfShifts": [h.to_dict() for h in self.half_shifts],
            "config": self._config.to_dict(),
            "schedules": [s.to_dict() for s in self.schedules],
        }

    @property
    def config(self) -> Configuration:
        return self._config

    @config.setter
    def config(self, value: Any):
        self._config = resolve_configuration(value)

    # Employee Management
    def get_employees(self, active_only: bool = True) -> List[Employee]:
        """Get list of employees"""
        return [emp for emp in self.employees if not active_only or emp.is_active]

    def get_employee_by_id(self, emp_id: str) -> Optional[Employee]:
        """Get employee by ID"""
        for emp in self.employees:
            if emp.id == emp_id:
                return emp
        return None

    def require_employee(self, emp_id: str) -> Employee:
        """Get employee by ID, raising for an id this owner does not have"""
        emp = self.get_employee_by_id(emp_id)
        if emp is None:
            raise InvalidReferenceError(f"Unknown employee id: {emp_id!r}")
        return emp

    def add_employee(self, name: str, emp_id: Optional[str] = None, is_active: bool = True) -> Employee:
        """Register an employee; ids default to the next free integer as a string"""
        if emp_id is None:
            numeric = [int(e.id) for e in self.employees if str(e.id).isdigit()]
            emp_id = str(max(numeric, default=0) + 1)
        if self.get_employee_by_id(emp_id) is not None:
            raise DataValidationError(f"Employee id {emp_id!r} already exists")
        employee = Employee(id=emp_id, name=name, is_active=is_active)
        self.employees.append(employee)
        return employee

    # Shift Management
    def get_shift_by_id(self, shift_id: str) -> Optional[Shift]:
        for shift in self.shifts:
            if shift.id == shift_id:
                return shift
        return None

    def get_half_shift_by_id(self, half_shift_id: str) -> Optional[HalfShift]:
        for half_shift in self.half_shifts:
            if half_shift.id == half_shift_id:
                return half_shift
        return None

    # Schedule Management
    def get_schedules(self, owner_id: Optional[str] = None) -> List[Schedule]:
        if owner_id is None:
            return list(self.schedules)
        return [s for s in self.schedules if s.owner_id == owner_id]

    def get_schedule(self, schedule_id: str) -> Schedule:
        for schedule in self.schedules:
            if schedule.id == schedule_id:
                return schedule
        raise InvalidReferenceError(f"Unknown schedule id: {schedule_id!r}")

    def get_week_schedule(self, week_start: str) -> Optional[Schedule]:
        week_start = _check_iso_date(week_start)
        for schedule in self.schedules:
            if schedule.week_start == week_start:
                return schedule
        return None

    def add_schedule(self, schedule: Any) -> Schedule:
        schedule = as_schedule(schedule)
        if any(s.id == schedule.id for s in self.schedules):
            raise DataValidationError(f"Schedule id {schedule.id!r} already exists")
        self.schedules.append(schedule)
        return schedule

    def set_assignments(self, week_start: str, date_str: str, emp_id: str, assignments: Any) -> Schedule:
        """
        Set one cell of a week, creating the week's schedule on first edit.

        week_start is moved back to the configured first day of its week, and
        date_str must be one of that week's seven days.
        """
        self.require_employee(emp_id)
        week_start = _align_week_start(week_start, self._config.semana_inicio_dia)
        date_str = _check_iso_date(date_str)
        first_day = date.fromisoformat(week_start)
        week_dates = {(first_day + timedelta(days=i)).isoformat() for i in range(7)}
        if date_str not in week_dates:
            raise DataValidationError(f"Date {date_str} is not in the week starting {week_start}")

        schedule = self.get_week_schedule(week_start)
        if schedule is None:
            schedule_id = f"{self.owner_id}_{week_start}" if self.owner_id else week_start
            schedule = self.add_schedule(Schedule(id=schedule_id, week_start=week_start, owner_id=self.owner_id))
            logger.info(f"Created schedule {schedule.id} for week {week_start}")
        schedule.set_assignments(date_str, emp_id, assignments)
        return schedule
