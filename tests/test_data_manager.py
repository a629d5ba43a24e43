import logging
import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_hours.data_manager import (
    DEFAULT_CONFIGURATION, Configuration, DataManager, DataValidationError, Franco,
    HalfShift, InvalidReferenceError, Licencia, MedioFranco, Nota, Schedule, ShiftAssignment,
    UnknownAssignment, normalize_assignment, normalize_assignments, resolve_configuration,
)
from shift_hours.statistics import StatisticsAggregator


@pytest.fixture
def data_manager():
    """Registry with two employees and one shift, built from plain documents."""
    return DataManager.from_dict({
        "ownerId": "owner",
        "employees": [
            {"id": "e1", "name": "Ana"},
            {"id": "e2", "name": "Bruno", "isActive": False},
        ],
        "shifts": [{"id": "m", "name": "Mañana", "startTime": "08:00", "endTime": "16:00"}],
        "halfShifts": [{"id": "h1", "name": "Media mañana", "startTime": "08:00", "endTime": "12:00"}],
        "config": {"minutosDescanso": 45},
        "schedules": [{"id": "owner_2025-01-06", "weekStart": "2025-01-06", "ownerId": "owner"}],
    })


def test_legacy_string_becomes_shift_assignment():
    assert normalize_assignment("m") == ShiftAssignment(shift_id="m")
    assert normalize_assignments(["m", "n"]) == [ShiftAssignment(shift_id="m"), ShiftAssignment(shift_id="n")]


def test_missing_type_defaults_to_shift():
    assignment = normalize_assignment({"shiftId": "m", "startTime": "08:00", "endTime": "16:00"})
    assert assignment == ShiftAssignment(shift_id="m", start_time="08:00", end_time="16:00")


@pytest.mark.parametrize(
    "document, expected",
    [
        ({"type": "franco"}, Franco()),
        ({"type": "medio_franco", "startTime": "09:00", "endTime": "13:00"},
         MedioFranco(start_time="09:00", end_time="13:00")),
        ({"type": "licencia", "startTime": "09:00", "endTime": "13:00", "licenciaType": "embarazo"},
         Licencia(start_time="09:00", end_time="13:00", licencia_type="embarazo")),
        ({"type": "nota", "texto": "llega tarde"}, Nota(text="llega tarde")),
        ({"type": "shift", "shiftId": "m", "startTime": " ", "endTime": ""}, ShiftAssignment(shift_id="m")),
    ],
)
def test_assignment_variants(document, expected):
    assert normalize_assignment(document) == expected


def test_empty_values_normalize_to_empty_list():
    assert normalize_assignments(None) == []
    assert normalize_assignments([]) == []
    assert normalize_assignments("") == []


def test_unknown_type_is_kept_and_logged(caplog):
    with caplog.at_level(logging.WARNING):
        assignment = normalize_assignment({"type": "capacitacion", "texto": "curso"})

    assert isinstance(assignment, UnknownAssignment)
    assert assignment.raw_type == "capacitacion"
    assert assignment.to_dict() == {"type": "capacitacion", "texto": "curso"}
    assert "capacitacion" in caplog.text


def test_orphan_second_block_is_dropped(caplog):
    with caplog.at_level(logging.WARNING):
        assignment = normalize_assignment({"shiftId": "m", "startTime2": "16:00", "endTime2": "20:00"})

    assert assignment.start_time2 is None
    assert assignment.end_time2 is None
    assert "second time block" in caplog.text


def test_assignment_to_dict_omits_unset_fields():
    assert ShiftAssignment(shift_id="m").to_dict() == {"type": "shift", "shiftId": "m"}
    assert Nota(text="hola").to_dict() == {"type": "nota", "texto": "hola"}


def test_configuration_defaults():
    config = Configuration.from_dict({})
    assert config is DEFAULT_CONFIGURATION
    assert (config.minutos_descanso, config.horas_minimas_para_descanso, config.horas_maximas_por_dia,
            config.mes_inicio_dia, config.semana_inicio_dia) == (30, 6, 8, 1, 1)
    assert resolve_configuration(None) is DEFAULT_CONFIGURATION


def test_configuration_from_document():
    config = Configuration.from_dict({
        "minutosDescanso": 45,
        "horasMinimasParaDescanso": None,
        "mesInicioDia": 26,
        "semanaInicioDia": 0,
        "reglasHorarias": {"horasNormalesPorDia": 7},
    })

    assert config.minutos_descanso == 45
    assert config.horas_minimas_para_descanso == 6
    assert config.horas_maximas_por_dia == 7
    assert config.mes_inicio_dia == 26
    assert config.semana_inicio_dia == 0
    assert Configuration.from_dict(config.to_dict()) == config


def test_invalid_configuration_values_fall_back(caplog):
    with caplog.at_level(logging.WARNING):
        config = Configuration.from_dict({"mesInicioDia": 40, "semanaInicioDia": 9, "minutosDescanso": "abc"})

    assert config.mes_inicio_dia == 1
    assert config.semana_inicio_dia == 1
    assert config.minutos_descanso == 30
    assert "mesInicioDia" in caplog.text


def test_schedule_from_legacy_document():
    schedule = Schedule.from_dict({
        "semanaInicio": "2025-01-06",
        "ownerId": "owner",
        "completada": True,
        "assignments": {"2025-01-06": {"e1": ["m"], "e2": []}},
        "dayStatus": {"2025-01-07": {"e1": "franco"}},
    })

    assert schedule.id == "owner_2025-01-06"
    assert schedule.week_start == "2025-01-06"
    assert schedule.completed
    assert schedule.assignments_for("2025-01-06", "e1") == [ShiftAssignment(shift_id="m")]
    assert schedule.assignments_for("2025-01-06", "e2") == []
    assert schedule.day_status_for("2025-01-07", "e1") == "franco"
    assert schedule.day_status_for("2025-01-08", "e1") == "normal"
    assert schedule.to_dict()["assignments"] == {"2025-01-06": {"e1": [{"type": "shift", "shiftId": "m"}]}}


@pytest.mark.parametrize(
    "document",
    [
        {"id": "bad", "weekStart": "2025-01-06", "assignments": ["m"]},
        {"id": "bad", "weekStart": "2025-01-06", "assignments": {"2025-01-06": "m"}},
        {"id": "bad", "weekStart": "06/01/2025"},
    ],
)
def test_malformed_schedule_documents(document):
    with pytest.raises(DataValidationError):
        Schedule.from_dict(document)


def test_registry_lookups(data_manager):
    assert [e.id for e in data_manager.get_employees()] == ["e1"]
    assert len(data_manager.get_employees(active_only=False)) == 2
    assert data_manager.get_employee_by_id("zz") is None
    assert data_manager.get_shift_by_id("m").start_time == "08:00"
    assert data_manager.config.minutos_descanso == 45

    half_shift = data_manager.get_half_shift_by_id("h1")
    assert isinstance(half_shift, HalfShift)
    assert half_shift.to_assignment() == MedioFranco(start_time="08:00", end_time="12:00")


def test_unknown_references_raise(data_manager):
    with pytest.raises(InvalidReferenceError):
        data_manager.require_employee("zz")
    with pytest.raises(KeyError):
        data_manager.get_schedule("missing")


def test_set_assignments_creates_week(data_manager):
    schedule = data_manager.set_assignments("2025-01-13", "2025-01-14", "e1", [{"type": "franco"}])

    assert schedule.id == "owner_2025-01-13"
    assert data_manager.get_week_schedule("2025-01-13") is schedule
    assert schedule.assignments_for("2025-01-14", "e1") == [Franco()]

    data_manager.set_assignments("2025-01-13", "2025-01-14", "e1", [])
    assert schedule.assignments == {}


def test_set_assignments_aligns_week_start(data_manager):
    # 2025-01-08 is a Wednesday; the week starts on Monday 2025-01-06
    schedule = data_manager.set_assignments("2025-01-08", "2025-01-10", "e1", ["m"])

    assert schedule.id == "owner_2025-01-06"
    assert schedule.week_start == "2025-01-06"
    assert len(data_manager.schedules) == 1


def test_set_assignments_rejects_date_outside_week(data_manager):
    """
    Why this is important: a cell stored under the wrong week is never read
    back by the statistics, so the edit would be lost without notice.
    """
    with pytest.raises(DataValidationError):
        data_manager.set_assignments("2025-01-06", "2025-01-20", "e1", [ShiftAssignment(shift_id="m")])
    assert data_manager.get_week_schedule("2025-01-06").assignments == {}

    data_manager.set_assignments("2025-01-20", "2025-01-20", "e1", [ShiftAssignment(shift_id="m")])
    aggregator = StatisticsAggregator.from_data_manager(data_manager)
    stats = aggregator.calculate_employee_week_stats("e1", data_manager.schedules, "2025-01-20")
    assert stats.dias_trabajados == 1


def test_set_assignments_for_unknown_employee(data_manager):
    with pytest.raises(InvalidReferenceError):
        data_manager.set_assignments("2025-01-06", "2025-01-06", "zz", ["m"])


def test_add_employee_assigns_next_id():
    dm = DataManager()
    assert dm.add_employee("Ana").id == "1"
    assert dm.add_employee("Bruno").id == "2"
    with pytest.raises(DataValidationError):
        dm.add_employee("Otra", emp_id="1")


def test_registry_round_trip(data_manager):
    copy = DataManager.from_dict(data_manager.to_dict())
    assert [e.to_dict() for e in copy.employees] == [e.to_dict() for e in data_manager.employees]
    assert copy.config == data_manager.config
    assert copy.get_schedules("owner")[0].id == "owner_2025-01-06"
