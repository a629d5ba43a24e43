"""
Test Suite for the Daily Working-Hours Resolver

Covers time resolution from shift templates, the once-per-day break rule and
the normal/extra split against the daily ceiling.
"""

import pytest
import sys
from pathlib import Path

# Setup import path for src
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_hours.data_manager import Configuration, Franco, Licencia, Shift, ShiftAssignment
from shift_hours.working_hours import (
    calculate_daily_hours, calculate_leave_hours, calculate_period_hours,
    calculate_worked_minutes, resolve_assignment_times,
)


@pytest.fixture
def shifts():
    return [
        Shift(id="long", name="Largo", start_time="08:00", end_time="17:00"),
        Shift(id="short", name="Corto", start_time="08:00", end_time="14:00"),
        Shift(id="split", name="Cortado", start_time="08:00", end_time="12:00",
              start_time2="16:00", end_time2="20:00"),
        Shift(id="night", name="Noche", start_time="22:00", end_time="06:00"),
    ]


def test_nine_hour_day_splits_into_normal_and_extra(shifts):
    """
    Why this is important: this is the core payroll rule. 9 worked hours lose a
    30 minute break and the remaining 8.5 hours split as 8 normal + 0.5 extra.
    """
    result = calculate_daily_hours([ShiftAssignment(shift_id="long")], shifts)

    assert result.minutos_trabajados == 540
    assert result.descanso_aplicado
    assert result.horas_normales == pytest.approx(8)
    assert result.horas_extra == pytest.approx(0.5)
    assert result.horas_computables == pytest.approx(8.5)


def test_no_break_at_exactly_threshold(shifts):
    result = calculate_daily_hours([ShiftAssignment(shift_id="short")], shifts)

    assert not result.descanso_aplicado
    assert result.horas_normales == pytest.approx(6)
    assert result.horas_extra == 0


def test_split_shift_counts_both_blocks(shifts):
    result = calculate_daily_hours([ShiftAssignment(shift_id="split")], shifts)

    assert result.minutos_trabajados == 480
    assert result.horas_normales == pytest.approx(7.5)


def test_break_deducted_once_for_several_shifts(shifts):
    day = [
        ShiftAssignment(shift_id="x", start_time="08:00", end_time="12:00"),
        ShiftAssignment(shift_id="y", start_time="13:00", end_time="18:00"),
    ]
    result = calculate_daily_hours(day, shifts)

    assert result.minutos_trabajados == 540
    assert result.horas_normales == pytest.approx(8)
    assert result.horas_extra == pytest.approx(0.5)


def test_night_shift_hours(shifts):
    result = calculate_daily_hours([ShiftAssignment(shift_id="night")], shifts)
    assert result.horas_normales == pytest.approx(7.5)


def test_custom_configuration(shifts):
    config = {"horasMaximasPorDia": 7, "minutosDescanso": 60}
    result = calculate_daily_hours([ShiftAssignment(shift_id="long")], shifts, config)

    assert result.horas_normales == pytest.approx(7)
    assert result.horas_extra == pytest.approx(1)


def test_only_shift_assignments_are_counted(shifts):
    day = [Franco(), Licencia(start_time="09:00", end_time="13:00", licencia_type="embarazo")]
    result = calculate_daily_hours(day, shifts)

    assert result.horas_computables == 0
    assert result.minutos_trabajados == 0


def test_unknown_shift_reference_is_zero_hours(shifts):
    assert calculate_daily_hours([ShiftAssignment(shift_id="missing")], shifts).horas_computables == 0
    assert calculate_daily_hours(["missing"], shifts).horas_computables == 0


def test_own_times_take_precedence_over_template(shifts):
    assignment = ShiftAssignment(shift_id="long", start_time="10:00", end_time="14:00")

    blocks = resolve_assignment_times(assignment, shifts)
    assert blocks.blocks() == [("10:00", "14:00")]
    assert calculate_worked_minutes(assignment, shifts) == 240


def test_legacy_shift_id_uses_template_times(shifts):
    result = calculate_daily_hours(["long"], shifts)
    assert result.horas_computables == pytest.approx(8.5)


def test_leave_hours():
    licencia = Licencia(start_time="09:00", end_time="13:00", licencia_type="embarazo")
    assert calculate_leave_hours(licencia) == pytest.approx(4)


def test_leave_hours_from_referenced_shift(shifts):
    licencia = Licencia(licencia_type="vacaciones", shift_id="long")
    # 9 hours, minus the break, no ceiling split
    assert calculate_leave_hours(licencia, shifts, Configuration()) == pytest.approx(8.5)


def test_period_hours(shifts):
    result = calculate_period_hours(
        {
            "2025-01-06": [ShiftAssignment(shift_id="long")],
            "2025-01-07": [ShiftAssignment(shift_id="short")],
            "2025-01-08": [],
        },
        shifts,
    )

    assert result.horas_normales == pytest.approx(14)
    assert result.horas_extra == pytest.approx(0.5)
    assert set(result.dias) == {"2025-01-06", "2025-01-07", "2025-01-08"}


@pytest.mark.parametrize(
    "shift_documents",
    [
        [{"id": "long", "startTime": "08:00", "endTime": "17:00"}],
        {"long": {"startTime": "08:00", "endTime": "17:00"}},
    ],
)
def test_shift_documents_resolve_like_shift_objects(shift_documents):
    result = calculate_daily_hours([ShiftAssignment(shift_id="long")], shift_documents)

    assert result.horas_normales == pytest.approx(8)
    assert result.horas_extra == pytest.approx(0.5)
