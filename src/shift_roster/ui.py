"""
User Interface for Monthly Shift Roster

CustomTkinter-based GUI showing a month as a staff x day grid of shift
selectors, with clickable date headers for holiday/closed marking and
generate, reset and print actions.
"""

import customtkinter as ctk
from tkinter import messagebox, filedialog
from datetime import datetime
import calendar
from typing import Dict, Optional, Tuple
import logging

from .data_manager import DataManager, DataSaveError, DayStatus, ShiftCode, STAFF
from .scheduler_logic import RosterScheduler, day_of_week, days_in_month, date_key
from .reporting import ExportManager, STAT_COLUMNS, shift_color

logger = logging.getLogger(__name__)


# Configure CustomTkinter
ctk.set_appearance_mode("light")
ctk.set_default_color_theme("blue")

LABEL_TO_CODE = {code.label: code.value for code in ShiftCode}
CODE_LABELS = [code.label for code in ShiftCode]


class ShiftCell(ctk.CTkOptionMenu):
    """Selector for one staff member on one day"""

    def __init__(self, parent, key: str, staff_id: str, on_change):
        self.key = key
        self.staff_id = staff_id
        self.on_change = on_change
        self.var = ctk.StringVar()
        super().__init__(
            parent,
            variable=self.var,
            values=CODE_LABELS,
            width=52,
            dynamic_resizing=False,
            text_color="black",
            command=self._on_select
        )

    def _on_select(self, label: str):
        self.on_change(self.key, self.staff_id, LABEL_TO_CODE[label])

    def show(self, code: str):
        self.var.set(ShiftCode(code).label)
        color = shift_color(code)
        self.configure(fg_color=color, button_color=color)


class RosterGrid(ctk.CTkScrollableFrame):
    """Month grid: date columns x staff rows, statistics and daily totals"""

    def __init__(self, parent, data_manager: DataManager, main_window):
        super().__init__(parent, orientation="horizontal")
        self.data_manager = data_manager
        self.main_window = main_window
        self.year = main_window.current_year
        self.month = main_window.current_month
        self.headers: Dict[str, ctk.CTkButton] = {}
        self.cells: Dict[Tuple[str, str], ShiftCell] = {}
        self.stat_labels: Dict[Tuple[str, str], ctk.CTkLabel] = {}
        self.total_labels: Dict[str, ctk.CTkLabel] = {}

    def set_month(self, year: int, month: int):
        """Rebuild the grid for a month (zero-indexed)"""
        self.year = year
        self.month = month
        self._create_grid()
        self.refresh()

    def _create_grid(self):
        for widget in self.winfo_children():
            widget.destroy()
        self.headers, self.cells, self.stat_labels, self.total_labels = {}, {}, {}, {}

        num_days = days_in_month(self.year, self.month)
        bold = ctk.CTkFont(weight="bold")

        ctk.CTkLabel(self, text="Name", font=bold).grid(row=0, column=0, padx=4, pady=2)
        for d in range(1, num_days + 1):
            key = date_key(self.year, self.month, d)
            header = ctk.CTkButton(
                self,
                text=f"{d}\n{day_of_week(self.year, self.month, d)}",
                width=52,
                height=48,
                command=lambda k=key: self._toggle_day(k)
            )
            header.grid(row=0, column=d, padx=1, pady=2)
            self.headers[key] = header

        stat_start = num_days + 1
        for offset, (label, _) in enumerate(STAT_COLUMNS):
            ctk.CTkLabel(self, text=label, font=bold, width=40).grid(
                row=0, column=stat_start + offset, padx=2, pady=2)

        for row, staff in enumerate(STAFF, 1):
            ctk.CTkLabel(self, text=staff.name, font=bold).grid(row=row, column=0, padx=4, pady=1)
            for d in range(1, num_days + 1):
                key = date_key(self.year, self.month, d)
                cell = ShiftCell(self, key, staff.id, self._on_cell_change)
                cell.grid(row=row, column=d, padx=1, pady=1)
                self.cells[(key, staff.id)] = cell
            for offset, (_, field_name) in enumerate(STAT_COLUMNS):
                stat_label = ctk.CTkLabel(self, text="0", width=40)
                stat_label.grid(row=row, column=stat_start + offset, padx=2, pady=1)
                self.stat_labels[(staff.id, field_name)] = stat_label

        total_row = len(STAFF) + 1
        ctk.CTkLabel(self, text="Total", font=bold).grid(row=total_row, column=0, padx=4, pady=2)
        for d in range(1, num_days + 1):
            key = date_key(self.year, self.month, d)
            total_label = ctk.CTkLabel(self, text="0", width=52)
            total_label.grid(row=total_row, column=d, padx=1, pady=2)
            self.total_labels[key] = total_label

    def refresh(self):
        """Update every widget from the data manager"""
        scheduler = self.main_window.scheduler
        for (key, staff_id), cell in self.cells.items():
            cell.show(self.data_manager.get_shift(key, staff_id))

        for key, header in self.headers.items():
            self._style_header(key, header, scheduler.validate_day(key))

        stats = scheduler.get_schedule_statistics(self.year, self.month)
        for (staff_id, field_name), stat_label in self.stat_labels.items():
            stat_label.configure(text=str(stats["staff"][staff_id][field_name]))
        for key, total_label in self.total_labels.items():
            total_label.configure(text=str(stats["daily_totals"][key]))

    def _style_header(self, key: str, header: ctk.CTkButton, validation):
        day = int(key[-2:])
        weekday = day_of_week(self.year, self.month, day)
        text = f"{day}\n{weekday}"
        text_color, fg_color = "#333333", "#f5f5f5"

        status = self.data_manager.get_day_status(key)
        if status == DayStatus.CLOSED:
            text += " Cls"
            fg_color = "#cccccc"
        elif status == DayStatus.HOLIDAY:
            text += " Hol"
            text_color, fg_color = "red", "#fff0f0"
        elif weekday == "Sun":
            text_color = "red"
        elif weekday == "Sat":
            text_color = "blue"

        if not validation.valid:
            text += " !"
            fg_color = "#ffd666"

        header.configure(text=text, text_color=text_color, fg_color=fg_color, hover_color="#e0e0e0")

    def _toggle_day(self, key: str):
        try:
            status = self.data_manager.toggle_day_status(key)
        except DataSaveError as e:
            logger.error(f"Failed to save day status for {key}: {e}", exc_info=True)
            messagebox.showerror("Save Error", f"Failed to save the day status:\n\n{e}")
            return
        self.main_window.status_var.set(f"{key}: {status.value}")
        self.refresh()

    def _on_cell_change(self, key: str, staff_id: str, code: str):
        try:
            self.data_manager.set_shift(key, staff_id, code)
        except DataSaveError as e:
            logger.error(f"Failed to save {staff_id} on {key}: {e}", exc_info=True)
            messagebox.showerror("Save Error", f"Failed to save the shift:\n\n{e}")
            self.refresh()  # Reverts the selector to the stored value
            return
        validation = self.main_window.scheduler.validate_day(key)
        if not validation.valid:
            self.main_window.status_var.set(f"{key}: {validation.message}")
        self.refresh()


class MainWindow(ctk.CTk):
    """Main application window"""

    def __init__(self, data_manager: DataManager, scheduler: RosterScheduler,
                 export_manager: Optional[ExportManager] = None):
        super().__init__()

        self.title("Monthly Shift Roster")
        self.geometry("1400x520")

        self.data_manager = data_manager
        self.scheduler = scheduler
        self.export_manager = export_manager or ExportManager(data_manager)

        today = datetime.now()
        self.current_year = today.year
        self.current_month = today.month - 1

        self._create_widgets()
        self._load_initial_data()

    def _create_widgets(self):
        control_frame = ctk.CTkFrame(self, height=60)
        control_frame.pack(fill="x", padx=10, pady=10)

        ctk.CTkButton(control_frame, text="<", width=30, command=self._prev_month).pack(side="left", padx=5)
        self.month_label = ctk.CTkLabel(control_frame, text="", font=ctk.CTkFont(size=18, weight="bold"))
        self.month_label.pack(side="left", padx=10)
        ctk.CTkButton(control_frame, text=">", width=30, command=self._next_month).pack(side="left", padx=5)

        ctk.CTkButton(
            control_frame,
            text="Print",
            command=self._print_schedule,
            width=100
        ).pack(side="right", padx=10)

        ctk.CTkButton(
            control_frame,
            text="Reset",
            command=self._reset_schedule,
            width=100,
            fg_color="#333333"
        ).pack(side="right", padx=10)

        ctk.CTkButton(
            control_frame,
            text="Generate Roster",
            command=self._generate_schedule,
            width=150
        ).pack(side="right", padx=10)

        self.roster_grid = RosterGrid(self, self.data_manager, self)
        self.roster_grid.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        self.status_var = ctk.StringVar(value="Ready")
        status_bar = ctk.CTkLabel(self, textvariable=self.status_var)
        status_bar.pack(side="bottom", fill="x", padx=10, pady=5)

    def _load_initial_data(self):
        self._show_month()
        self.status_var.set("Data loaded successfully")

    def _show_month(self):
        self.month_label.configure(text=f"{calendar.month_name[self.current_month + 1]} {self.current_year}")
        self.roster_grid.set_month(self.current_year, self.current_month)

    def _prev_month(self):
        self.current_month -= 1
        if self.current_month < 0:
            self.current_month = 11
            self.current_year -= 1
        self._show_month()

    def _next_month(self):
        self.current_month += 1
        if self.current_month > 11:
            self.current_month = 0
            self.current_year += 1
        self._show_month()

    def _generate_schedule(self):
        result = self.scheduler.generate_schedule(self.current_year, self.current_month)
        self.roster_grid.refresh()
        self.status_var.set(result.message)
        if not result.success:
            messagebox.showerror("Generation Error", result.message)
            return
        if result.warnings:
            messagebox.showwarning("Pair Warnings", "\n".join(result.warnings))

    def _reset_schedule(self):
        if not messagebox.askyesno("Reset Roster", "Reset all roster data? This cannot be undone."):
            return
        try:
            self.data_manager.reset_schedule()
        except DataSaveError as e:
            logger.error(f"Failed to reset roster: {e}", exc_info=True)
            messagebox.showerror("Reset Error", f"Failed to reset the roster:\n\n{e}")
            return
        self.roster_grid.refresh()
        self.status_var.set("Roster reset")

    def _print_schedule(self):
        """Export the displayed month to a printable PDF"""
        output_path = filedialog.asksaveasfilename(
            defaultextension=".pdf",
            initialfile=self.export_manager.get_default_filename(self.current_year, self.current_month, "pdf"),
            filetypes=[("PDF files", "*.pdf")]
        )
        if not output_path:
            return

        if self.export_manager.export_calendar(self.current_year, self.current_month, "pdf", output_path):
            self.status_var.set(f"Saved printable roster to {output_path}")
        else:
            messagebox.showerror("Print Error", "Failed to create the printable roster. See the log for details.")
