"""
Reporting and Export Module for the Shift Hours Engine

Builds pandas tables of employee statistics and weekly schedules, exports a
custom month to Excel or CSV, and renders a plain-text summary for dashboards.
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Any

import pandas as pd
from openpyxl.styles import Font, PatternFill

from .data_manager import (
    DataManager, ExportError, Franco, Licencia, MedioFranco, Nota, Schedule, ShiftAssignment,
    UnknownAssignment, as_schedule,
)
from .statistics import (
    EmployeeStats, StatisticsAggregator, format_date, get_custom_month_range, get_week_days,
)
from .time_utils import format_hours
from .working_hours import resolve_assignment_times

logger = logging.getLogger(__name__)

MONTH_NAMES_ES = [
    "", "Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio", "Julio",
    "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre",
]

# Indexed by date.weekday()
DAY_ABBREVIATIONS_ES = ["Lun", "Mar", "Mié", "Jue", "Vie", "Sáb", "Dom"]

LICENCIA_LABELS = {
    "embarazo": "Embarazo",
    "vacaciones": "Vacaciones",
    "enfermedad": "Enfermedad",
    "estudio": "Estudio",
}

STATS_COLUMNS = {
    "francos": "Francos",
    "horas_normales": "Normal Hours",
    "horas_extras": "Extra Hours",
    "horas_licencia": "Leave Hours",
    "horas_medio_franco": "Half-Day Hours",
    "horas_computables": "Computable Hours",
    "dias_trabajados": "Days Worked",
    "dias_licencia": "Days on Leave",
}

EXPORT_EXTENSIONS = {"excel": "xlsx", "csv": "csv"}


def format_month_label(year: int, month: int) -> str:
    return f"{MONTH_NAMES_ES[month]} {year}"


def format_assignment_label(assignment, shifts: Any = None) -> str:
    """Short cell label for one assignment"""
    if isinstance(assignment, Franco):
        return "Franco"
    if isinstance(assignment, MedioFranco):
        if assignment.start_time and assignment.end_time:
            return f"1/2 Franco {assignment.start_time}-{assignment.end_time}"
        return "1/2 Franco"
    if isinstance(assignment, Licencia):
        kind = assignment.licencia_type or ""
        return f"Lic. {LICENCIA_LABELS.get(kind, kind.title())}".strip()
    if isinstance(assignment, Nota):
        return f"Nota: {assignment.text}"
    if isinstance(assignment, ShiftAssignment):
        blocks = resolve_assignment_times(assignment, shifts).blocks()
        if blocks:
            return " / ".join(f"{start}-{end}" for start, end in blocks)
        return assignment.shift_id or "?"
    if isinstance(assignment, UnknownAssignment):
        return f"? {assignment.raw_type}"
    return str(assignment)


class ReportGenerator:
    """Main class for generating reports and exports"""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager

    @property
    def aggregator(self) -> StatisticsAggregator:
        return StatisticsAggregator.from_data_manager(self.data_manager)

    def _schedules(self, schedules: Optional[List[Any]]) -> List[Schedule]:
        if schedules is None:
            schedules = self.data_manager.schedules
        return [as_schedule(s) for s in schedules]

    def _employee_name(self, emp_id: str) -> str:
        emp = self.data_manager.get_employee_by_id(emp_id)
        return emp.name if emp else f"Unknown ({emp_id})"

    def create_stats_dataframe(self, stats: Dict[str, EmployeeStats]) -> pd.DataFrame:
        """One row per employee, registry order first"""
        ordered_ids = [e.id for e in self.data_manager.employees if e.id in stats]
        ordered_ids += [emp_id for emp_id in stats if emp_id not in ordered_ids]

        data = []
        for emp_id in ordered_ids:
            values = stats[emp_id].to_dict()
            row = {"ID": emp_id, "Name": self._employee_name(emp_id)}
            for key, column in STATS_COLUMNS.items():
                row[column] = round(values[key], 2)
            data.append(row)

        return pd.DataFrame(data, columns=["ID", "Name"] + list(STATS_COLUMNS.values()))

    def create_week_dataframe(self, schedule: Any) -> pd.DataFrame:
        """Employee by day grid of assignment labels"""
        schedule = as_schedule(schedule)
        if schedule.week_start:
            days = get_week_days(schedule.week_start)
        else:
            days = [datetime.strptime(d, "%Y-%m-%d").date() for d in sorted(schedule.assignments)]

        emp_ids = [e.id for e in self.data_manager.get_employees()]
        for day_cells in schedule.assignments.values():
            emp_ids += [emp_id for emp_id in day_cells if emp_id not in emp_ids]

        columns = [f"{DAY_ABBREVIATIONS_ES[d.weekday()]} {d.strftime('%d/%m')}" for d in days]
        data = []
        for emp_id in emp_ids:
            row = {"Employee": self._employee_name(emp_id)}
            for day, column in zip(days, columns):
                cell = schedule.assignments_for(format_date(day), emp_id)
                row[column] = " + ".join(format_assignment_label(a, self.data_manager.shifts) for a in cell)
            data.append(row)

        return pd.DataFrame(data, columns=["Employee"] + columns)

    def _create_employee_dataframe(self) -> pd.DataFrame:
        """Create employee DataFrame for Excel export"""
        data = []
        for emp in self.data_manager.get_employees(active_only=False):
            data.append({"ID": emp.id, "Name": emp.name, "Active": emp.is_active})
        return pd.DataFrame(data, columns=["ID", "Name", "Active"])

    def _month_week_schedules(self, schedules: List[Schedule], year: int, month: int) -> List[Schedule]:
        start, end = get_custom_month_range(year, month, self.aggregator.config.mes_inicio_dia)
        selected = []
        for schedule in schedules:
            if not schedule.week_start:
                continue
            week_start = datetime.strptime(schedule.week_start, "%Y-%m-%d").date()
            if week_start <= end and week_start + timedelta(days=6) >= start:
                selected.append(schedule)
        return sorted(selected, key=lambda s: s.week_start)

    def export_month_excel(self, schedules: Optional[List[Any]], year: int, month: int,
                           output_path: str) -> bool:
        """Export month statistics and weekly grids to Excel"""
        try:
            schedules = self._schedules(schedules)
            stats = self.aggregator.calculate_month_stats(schedules, year, month)

            with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
                self.create_stats_dataframe(stats).to_excel(writer, sheet_name='Statistics', index=False)
                self._create_employee_dataframe().to_excel(writer, sheet_name='Employees', index=False)

                for schedule in self._month_week_schedules(schedules, year, month):
                    week_df = self.create_week_dataframe(schedule)
                    week_df.to_excel(writer, sheet_name=f"Week {schedule.week_start}", index=False)

                self._format_excel_worksheets(writer)

            logger.info(f"Exported {format_month_label(year, month)} to {output_path}")
            return True

        except Exception as e:
            logger.error(f"Error exporting to Excel: {e}", exc_info=True)
            return False

    def _format_excel_worksheets(self, writer):
        """Header styling and column widths for every sheet"""
        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_font = Font(color="FFFFFF", bold=True)

        for worksheet in writer.sheets.values():
            for cell in worksheet[1]:
                cell.fill = header_fill
                cell.font = header_font

            for column in worksheet.columns:
                max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column)
                worksheet.column_dimensions[column[0].column_letter].width = min(max_length + 2, 50)

    def export_month_csv(self, schedules: Optional[List[Any]], year: int, month: int,
                         output_path: str) -> bool:
        """Export month statistics to CSV"""
        try:
            stats = self.aggregator.calculate_month_stats(self._schedules(schedules), year, month)
            self.create_stats_dataframe(stats).to_csv(output_path, index=False)
            return True

        except Exception as e:
            logger.error(f"Error exporting to CSV: {e}", exc_info=True)
            return False

    def create_dashboard_summary(self, schedules: Optional[List[Any]], year: int, month: int,
                                 top: int = 3) -> str:
        """Create text summary of a custom month for dashboard display"""
        stats = self.aggregator.calculate_month_stats(self._schedules(schedules), year, month)
        start, end = get_custom_month_range(year, month, self.aggregator.config.mes_inicio_dia)

        total = EmployeeStats()
        for emp_stats in stats.values():
            total = total.merge(emp_stats)

        summary = f"""
HOURS SUMMARY - {format_month_label(year, month)}
Period: {start.strftime('%d/%m/%Y')} - {end.strftime('%d/%m/%Y')}

Team Overview:
• Employees: {len(stats)}
• Days Worked: {total.dias_trabajados}
• Days on Leave: {total.dias_licencia}
• Francos: {total.francos:g}

Hours:
• Normal: {format_hours(total.horas_normales)}
• Extra: {format_hours(total.horas_extras)}
• Leave: {format_hours(total.horas_licencia)}
• Half-Day: {format_hours(total.horas_medio_franco)}
• Computable: {format_hours(total.horas_computables)}
        """

        overtime = sorted(
            ((emp_id, s) for emp_id, s in stats.items() if s.horas_extras > 0),
            key=lambda item: item[1].horas_extras,
            reverse=True,
        )[:top]
        if overtime:
            summary += "\n\nMOST EXTRA HOURS:"
            for emp_id, emp_stats in overtime:
                summary += f"\n• {self._employee_name(emp_id)}: {format_hours(emp_stats.horas_extras)}"

        return summary.strip()


class ExportManager:
    """Manager class for handling all export operations"""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager
        self.report_generator = ReportGenerator(data_manager)

    def export_month(self, schedules: Optional[List[Any]], year: int, month: int,
                     format_type: str, output_path: str) -> bool:
        """Export a custom month in the specified format"""
        if format_type.lower() == 'excel':
            return self.report_generator.export_month_excel(schedules, year, month, output_path)
        elif format_type.lower() == 'csv':
            return self.report_generator.export_month_csv(schedules, year, month, output_path)
        else:
            raise ExportError(f"Unsupported format: {format_type}")

    def get_default_filename(self, year: int, month: int, format_type: str) -> str:
        """Generate default filename for export"""
        extension = EXPORT_EXTENSIONS.get(format_type.lower(), format_type.lower())
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return f"horas_{MONTH_NAMES_ES[month].lower()}_{year}_{timestamp}.{extension}"

    def batch_export(self, schedules: Optional[List[Any]], year: int, month: int, output_dir: str,
                     formats: List[str] = None) -> Dict[str, bool]:
        """Export a month in multiple formats"""
        if formats is None:
            formats = ['excel', 'csv']

        results = {}
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        for format_type in formats:
            file_path = output_path / self.get_default_filename(year, month, format_type)
            try:
                results[format_type] = self.export_month(schedules, year, month, format_type, str(file_path))
            except ExportError as e:
                logger.error(f"Error exporting {format_type}: {e}")
                results[format_type] = False

        return results
