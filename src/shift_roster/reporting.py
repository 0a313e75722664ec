"""
Reporting and Export Module for Monthly Shift Roster

Handles PDF (print), Excel and CSV export of a month's roster together with
the per-staff statistics and daily work totals.
"""

import pandas as pd
from openpyxl.styles import PatternFill, Font, Alignment
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from datetime import datetime
import calendar
from pathlib import Path
from typing import Dict, List, Optional
import logging

from .data_manager import DataManager, DayStatus, ShiftCode, STAFF, Schedule
from .scheduler_logic import (
    day_of_week, days_in_month, date_key, normalize_month, validate_roster,
    get_staff_statistics, get_daily_work_totals,
)

logger = logging.getLogger(__name__)


SHIFT_COLORS = {
    ShiftCode.WORK_A.value: "#ffadd2",
    ShiftCode.WORK_B.value: "#ffbb96",
    ShiftCode.SHORT_SHIFT.value: "#b7eb8f",
    ShiftCode.MANUAL_CLOSED.value: "#f5f5f5",
    ShiftCode.SHOP_CLOSED.value: "#cccccc",
    ShiftCode.PAID_LEAVE.value: "#e6f7ff",
    ShiftCode.OFF.value: "#ffffff",
}

STAT_COLUMNS = [("A", "a_count"), ("B", "b_count"), ("S", "s_count"),
                ("Work", "total_work"), ("PL", "pl_count")]


def shift_color(code: str) -> str:
    return SHIFT_COLORS.get(code, "#ffffff")


def shift_label(code: str) -> str:
    try:
        return ShiftCode(code).label
    except ValueError:
        return code


class ReportGenerator:
    """Main class for generating reports and exports"""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Setup custom report styles"""
        self.styles.add(ParagraphStyle(
            name='RosterTitle',
            parent=self.styles['Heading1'],
            fontSize=16,
            spaceAfter=12,
            alignment=1  # Center alignment
        ))

    def export_calendar_pdf(self, year: int, month: int, output_path: str) -> bool:
        """Export the month's roster grid to a printable landscape PDF"""
        try:
            doc = SimpleDocTemplate(
                output_path,
                pagesize=landscape(A4),
                rightMargin=0.4*inch,
                leftMargin=0.4*inch,
                topMargin=0.5*inch,
                bottomMargin=0.5*inch
            )

            story = []
            title = Paragraph(f"Monthly Shift Roster - {calendar.month_name[month + 1]} {year}",
                              self.styles['RosterTitle'])
            story.append(title)
            story.append(Spacer(1, 12))
            story.append(self._create_roster_table(year, month))
            story.append(Spacer(1, 16))
            story.append(self._create_legend())

            doc.build(story)
            logger.info(f"Exported roster PDF to {output_path}")
            return True

        except Exception as e:
            logger.error(f"Error creating PDF: {e}", exc_info=True)
            return False

    def _header_cell(self, year: int, month: int, day: int, schedule: Schedule) -> str:
        key = date_key(year, month, day)
        text = f"{day}\n{day_of_week(year, month, day)}"
        status = self.data_manager.get_day_status(key)
        if status == DayStatus.CLOSED:
            text += "\nCls"
        elif status == DayStatus.HOLIDAY:
            text += "\nHol"
        if not validate_roster(schedule, key).valid:
            text += "\n!"
        return text

    def _create_roster_table(self, year: int, month: int) -> Table:
        """Create the staff x day grid for PDF"""
        schedule = self.data_manager.schedule
        num_days = days_in_month(year, month)
        stats = get_staff_statistics(schedule, year, month)
        totals = get_daily_work_totals(schedule, year, month)

        data = [["Name"] + [self._header_cell(year, month, d, schedule) for d in range(1, num_days + 1)]
                + [label for label, _ in STAT_COLUMNS]]

        for staff in STAFF:
            row = [staff.name]
            for d in range(1, num_days + 1):
                row.append(shift_label(self.data_manager.get_shift(date_key(year, month, d), staff.id)))
            row.extend(str(stats[staff.id][field_name]) for _, field_name in STAT_COLUMNS)
            data.append(row)

        data.append(["Total"] + [str(totals[date_key(year, month, d)]) for d in range(1, num_days + 1)]
                    + [""] * len(STAT_COLUMNS))

        col_widths = [0.5*inch] + [0.28*inch] * num_days + [0.35*inch] * len(STAT_COLUMNS)
        table = Table(data, colWidths=col_widths, repeatRows=1)

        style = [
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor("#f5f5f5")),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, 1), (0, -1), 'Helvetica-Bold'),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('FONTSIZE', (0, 0), (-1, -1), 6),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
            ('BACKGROUND', (0, -1), (-1, -1), colors.HexColor("#f0f0f0")),
        ]

        for d in range(1, num_days + 1):
            key = date_key(year, month, d)
            status = self.data_manager.get_day_status(key)
            weekday = day_of_week(year, month, d)
            if status == DayStatus.CLOSED:
                style.append(('BACKGROUND', (d, 0), (d, 0), colors.HexColor("#cccccc")))
            elif status == DayStatus.HOLIDAY:
                style.append(('BACKGROUND', (d, 0), (d, 0), colors.HexColor("#fff0f0")))
                style.append(('TEXTCOLOR', (d, 0), (d, 0), colors.red))
            elif weekday == "Sun":
                style.append(('TEXTCOLOR', (d, 0), (d, 0), colors.red))
            elif weekday == "Sat":
                style.append(('TEXTCOLOR', (d, 0), (d, 0), colors.blue))

            for row_index, staff in enumerate(STAFF, 1):
                code = self.data_manager.get_shift(key, staff.id)
                style.append(('BACKGROUND', (d, row_index), (d, row_index),
                              colors.HexColor(shift_color(code))))

        table.setStyle(TableStyle(style))
        return table

    def _create_legend(self) -> Table:
        """Create legend for PDF"""
        legend_data = [['Code', 'Meaning']]
        meanings = {
            ShiftCode.WORK_A: "Work shift A",
            ShiftCode.WORK_B: "Work shift B",
            ShiftCode.SHORT_SHIFT: "Short shift",
            ShiftCode.OFF: "Off",
            ShiftCode.PAID_LEAVE: "Paid leave",
            ShiftCode.MANUAL_CLOSED: "Closed (manual)",
            ShiftCode.SHOP_CLOSED: "Shop closed",
        }
        for code, meaning in meanings.items():
            legend_data.append([code.label, meaning])

        legend_table = Table(legend_data, colWidths=[0.6*inch, 1.6*inch])
        style = [
            ('BACKGROUND', (0, 0), (-1, 0), colors.lightgrey),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
        ]
        for i, code in enumerate(meanings, 1):
            style.append(('BACKGROUND', (0, i), (0, i), colors.HexColor(shift_color(code.value))))
        legend_table.setStyle(TableStyle(style))
        return legend_table

    def export_schedule_excel(self, year: int, month: int, output_path: str) -> bool:
        """Export roster and statistics to Excel"""
        try:
            with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
                roster_df = self._create_roster_dataframe(year, month)
                roster_df.to_excel(writer, sheet_name='Roster', index=False)

                stats_df = self._create_statistics_dataframe(year, month)
                stats_df.to_excel(writer, sheet_name='Statistics', index=False)

                self._format_excel_worksheets(writer, year, month)

            logger.info(f"Exported roster workbook to {output_path}")
            return True

        except Exception as e:
            logger.error(f"Error exporting to Excel: {e}", exc_info=True)
            return False

    def _create_roster_dataframe(self, year: int, month: int) -> pd.DataFrame:
        """One row per staff member, one column per day"""
        num_days = days_in_month(year, month)
        data = []
        for staff in STAFF:
            row = {'Name': staff.name}
            for d in range(1, num_days + 1):
                column = f"{d} {day_of_week(year, month, d)}"
                row[column] = shift_label(self.data_manager.get_shift(date_key(year, month, d), staff.id))
            data.append(row)
        return pd.DataFrame(data)

    def _create_statistics_dataframe(self, year: int, month: int) -> pd.DataFrame:
        stats = get_staff_statistics(self.data_manager.schedule, year, month)
        data = []
        for staff_stats in stats.values():
            row = {'Name': staff_stats['name']}
            for label, field_name in STAT_COLUMNS:
                row[label] = staff_stats[field_name]
            data.append(row)
        return pd.DataFrame(data)

    def _format_excel_worksheets(self, writer, year: int, month: int):
        """Color roster cells by shift code and style headers"""
        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_font = Font(color="FFFFFF", bold=True)

        for sheet_name in ('Roster', 'Statistics'):
            ws = writer.sheets[sheet_name]
            for cell in ws[1]:
                cell.fill = header_fill
                cell.font = header_font
                cell.alignment = Alignment(horizontal="center", wrap_text=True)

        roster_ws = writer.sheets['Roster']
        for row_index, staff in enumerate(STAFF, 2):
            for d in range(1, days_in_month(year, month) + 1):
                code = self.data_manager.get_shift(date_key(year, month, d), staff.id)
                color = shift_color(code).lstrip("#").upper()
                cell = roster_ws.cell(row=row_index, column=d + 1)
                cell.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
                cell.alignment = Alignment(horizontal="center")

        roster_ws.column_dimensions['A'].width = 8
        for column in list(roster_ws.columns)[1:]:
            roster_ws.column_dimensions[column[0].column_letter].width = 6

    def export_schedule_csv(self, year: int, month: int, output_path: str) -> bool:
        """Export roster grid to CSV format"""
        try:
            roster_df = self._create_roster_dataframe(year, month)
            roster_df.to_csv(output_path, index=False)
            logger.info(f"Exported roster CSV to {output_path}")
            return True

        except Exception as e:
            logger.error(f"Error exporting to CSV: {e}", exc_info=True)
            return False


class ExportManager:
    """Manager class for handling all export operations"""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager
        self.report_generator = ReportGenerator(data_manager)

    def export_calendar(self, year: int, month: int, format_type: str, output_path: str) -> bool:
        """Export a month (zero-indexed) in the specified format"""
        year, month = normalize_month(year, month)
        if format_type.lower() == 'pdf':
            return self.report_generator.export_calendar_pdf(year, month, output_path)
        elif format_type.lower() == 'excel':
            return self.report_generator.export_schedule_excel(year, month, output_path)
        elif format_type.lower() == 'csv':
            return self.report_generator.export_schedule_csv(year, month, output_path)
        else:
            raise ValueError(f"Unsupported format: {format_type}")

    def get_default_filename(self, year: int, month: int, format_type: str) -> str:
        """Generate default filename for export"""
        year, month = normalize_month(year, month)
        month_name = calendar.month_name[month + 1].lower()
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        extension = "xlsx" if format_type.lower() == "excel" else format_type.lower()

        return f"shift_roster_{month_name}_{year}_{timestamp}.{extension}"

    def batch_export(self, year: int, month: int, output_dir: str,
                     formats: Optional[List[str]] = None) -> Dict[str, bool]:
        """Export the month in multiple formats"""
        if formats is None:
            formats = ['pdf', 'excel', 'csv']

        results = {}
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        for format_type in formats:
            file_path = output_path / self.get_default_filename(year, month, format_type)
            results[format_type] = self.export_calendar(year, month, format_type, str(file_path))

        return results
