"""
Scheduler Logic for Monthly Shift Roster

Implements the greedy auto-assignment heuristic that fills a month with
shift codes, the per-day pair validator, the calendar helpers they rely on
and the month statistics shown next to the roster.
"""

from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple, Any, Iterable
from dataclasses import dataclass, field
import calendar
import logging
import random
import time

from .data_manager import (
    DataManager, DataSaveError, Schedule, ShiftCode, STAFF, STAFF_IDS, PAIRS, SHORT_SHIFT_STAFF,
    WORK_CODES, get_staff_by_id,
)

logger = logging.getLogger(__name__)


WEEKDAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
REGULAR_CLOSED_WEEKDAYS = ("Mon", "Tue")
SHORT_SHIFT_WEEKDAYS = ("Wed", "Thu", "Fri")

A = ShiftCode.WORK_A.value
B = ShiftCode.WORK_B.value


# Calendar helpers. Months are zero-indexed (0 = January) and out-of-range
# values roll over into adjacent years.

def normalize_month(year: int, month: int) -> Tuple[int, int]:
    """Roll an out-of-range zero-indexed month into the right year"""
    return year + month // 12, month % 12


def _to_date(year: int, month: int, day: int) -> date:
    year, month = normalize_month(year, month)
    return date(year, month + 1, 1) + timedelta(days=day - 1)


def days_in_month(year: int, month: int) -> int:
    year, month = normalize_month(year, month)
    return calendar.monthrange(year, month + 1)[1]


def day_of_week(year: int, month: int, day: int) -> str:
    """Weekday symbol ("Sun" .. "Sat") for a date"""
    # date.weekday() is Monday-based
    return WEEKDAY_NAMES[(_to_date(year, month, day).weekday() + 1) % 7]


def date_key(year: int, month: int, day: int) -> str:
    """Schedule key (YYYY-MM-DD) for a date"""
    return _to_date(year, month, day).isoformat()


def month_date_keys(year: int, month: int) -> List[str]:
    return [date_key(year, month, d) for d in range(1, days_in_month(year, month) + 1)]


def is_shop_closed(weekday: str, key: str, closed_days: Iterable[str]) -> bool:
    return key in closed_days or weekday in REGULAR_CLOSED_WEEKDAYS


@dataclass
class FairnessCounter:
    """Running WorkA/WorkB history of each pair representative"""
    counts: Dict[str, Dict[str, int]] = field(
        default_factory=lambda: {rep: {A: 0, B: 0} for rep, _ in PAIRS}
    )

    @classmethod
    def from_schedule(cls, schedule: Schedule) -> 'FairnessCounter':
        """Count every WorkA/WorkB held by a representative across the history"""
        counter = cls()
        for day_schedule in schedule.values():
            if not day_schedule:
                continue
            for rep, _ in PAIRS:
                counter.record(rep, day_schedule.get(rep))
        return counter

    def copy(self) -> 'FairnessCounter':
        return FairnessCounter({rep: dict(c) for rep, c in self.counts.items()})

    def record(self, staff_id: str, code: Optional[str]):
        if code in WORK_CODES and staff_id in self.counts:
            self.counts[staff_id][code] += 1

    def next_shift(self, staff_id: str) -> Optional[str]:
        """Shift that rebalances the representative's history, None on a tie"""
        c = self.counts.get(staff_id, {A: 0, B: 0})
        if c[A] > c[B]:
            return B
        if c[B] > c[A]:
            return A
        return None


def _assign_open_day(day_schedule: Dict[str, str], weekday: str, holiday: bool,
                     fairness: FairnessCounter, rng: random.Random):
    """Fill an open day in place: m first, then the pairs, then whoever is left"""
    unavailable = (ShiftCode.PAID_LEAVE.value, ShiftCode.MANUAL_CLOSED.value)
    available = [s.id for s in STAFF if day_schedule.get(s.id) not in unavailable]

    if SHORT_SHIFT_STAFF in available:
        if weekday in SHORT_SHIFT_WEEKDAYS and not holiday:
            day_schedule[SHORT_SHIFT_STAFF] = ShiftCode.SHORT_SHIFT.value
        else:
            day_schedule[SHORT_SHIFT_STAFF] = B

    for rep, partner in PAIRS:
        if rep not in available or partner not in available:
            continue
        if rep in day_schedule or partner in day_schedule:
            continue

        rep_shift = fairness.next_shift(rep)
        if rep_shift is None:
            rep_shift = A if rng.random() < 0.5 else B
        day_schedule[rep] = rep_shift
        day_schedule[partner] = B if rep_shift == A else A
        fairness.record(rep, rep_shift)

    tally = {A: 0, B: 0}
    for code in day_schedule.values():
        if code in tally:
            tally[code] += 1

    pending = [staff_id for staff_id in available if staff_id not in day_schedule]
    rng.shuffle(pending)
    for staff_id in pending:
        shift = A if tally[A] <= tally[B] else B
        day_schedule[staff_id] = shift
        tally[shift] += 1


def assign_month(year: int, month: int, current_schedule: Schedule,
                 holidays: Iterable[str], closed_days: Iterable[str],
                 fairness: FairnessCounter,
                 rng: random.Random) -> Tuple[Schedule, FairnessCounter]:
    """
    Fill one month and return the merged schedule with the updated counter.

    Neither ``current_schedule`` nor ``fairness`` is modified. Days outside
    the month are passed through unchanged.
    """
    holidays = set(holidays)
    closed_days = set(closed_days)
    fairness = fairness.copy()
    new_schedule = {key: dict(day or {}) for key, day in current_schedule.items()}

    for d in range(1, days_in_month(year, month) + 1):
        key = date_key(year, month, d)
        weekday = day_of_week(year, month, d)
        day_schedule = new_schedule.setdefault(key, {})

        if is_shop_closed(weekday, key, closed_days):
            for staff_id in STAFF_IDS:
                if day_schedule.get(staff_id) != ShiftCode.MANUAL_CLOSED.value:
                    day_schedule[staff_id] = ShiftCode.SHOP_CLOSED.value
            continue

        for staff_id in STAFF_IDS:
            if day_schedule.get(staff_id) == ShiftCode.SHOP_CLOSED.value:
                del day_schedule[staff_id]

        _assign_open_day(day_schedule, weekday, key in holidays, fairness, rng)

    return new_schedule, fairness


def generate_monthly_roster(year: int, month: int,
                            current_schedule: Optional[Schedule] = None,
                            holidays: Optional[Iterable[str]] = None,
                            closed_days: Optional[Iterable[str]] = None,
                            rng: Optional[random.Random] = None) -> Schedule:
    """
    Generate a month's roster on top of the existing schedule history

    Args:
        year: Target year
        month: Target month, zero-indexed (0 = January)
        current_schedule: Existing entries, including manual overrides
        holidays: Date keys flagged as holidays
        closed_days: Date keys on which the shop is closed
        rng: Random source for tie-breaks; pass a seeded instance for
            reproducible output
    """
    current_schedule = current_schedule or {}
    fairness = FairnessCounter.from_schedule(current_schedule)
    schedule, _ = assign_month(
        year, month, current_schedule,
        holidays or (), closed_days or (),
        fairness, rng or random.Random()
    )
    return schedule


@dataclass
class ValidationResult:
    valid: bool
    message: Optional[str] = None


class ConstraintViolation:
    """Validation messages"""
    PAIR_SAME_SHIFT = "Warning: {first} & {second} have same shift"


def validate_roster(schedule: Schedule, key: str) -> ValidationResult:
    """Check that neither pair works the same A/B shift on a day"""
    day_schedule = schedule.get(key) or {}
    for first, second in PAIRS:
        code = day_schedule.get(first)
        if code in WORK_CODES and code == day_schedule.get(second):
            return ValidationResult(
                valid=False,
                message=ConstraintViolation.PAIR_SAME_SHIFT.format(
                    first=get_staff_by_id(first).name,
                    second=get_staff_by_id(second).name,
                )
            )
    return ValidationResult(valid=True)


def validate_month(schedule: Schedule, year: int, month: int) -> List[str]:
    """Collect pair warnings for every day of a month"""
    warnings = []
    for key in month_date_keys(year, month):
        result = validate_roster(schedule, key)
        if not result.valid:
            warnings.append(f"{key}: {result.message}")
    return warnings


def get_staff_statistics(schedule: Schedule, year: int, month: int) -> Dict[str, Dict[str, Any]]:
    """Per-staff counts of A, B, S and PL codes in a month"""
    stats = {
        s.id: {"name": s.name, "a_count": 0, "b_count": 0, "s_count": 0,
               "pl_count": 0, "total_work": 0}
        for s in STAFF
    }
    counted = {
        ShiftCode.WORK_A.value: "a_count",
        ShiftCode.WORK_B.value: "b_count",
        ShiftCode.SHORT_SHIFT.value: "s_count",
        ShiftCode.PAID_LEAVE.value: "pl_count",
    }

    for key in month_date_keys(year, month):
        day_schedule = schedule.get(key) or {}
        for staff_id, staff_stats in stats.items():
            field_name = counted.get(day_schedule.get(staff_id))
            if field_name:
                staff_stats[field_name] += 1

    for staff_stats in stats.values():
        staff_stats["total_work"] = staff_stats["a_count"] + staff_stats["b_count"]
    return stats


def get_daily_work_totals(schedule: Schedule, year: int, month: int) -> Dict[str, int]:
    """Number of staff on A or B for each day of a month"""
    totals = {}
    for key in month_date_keys(year, month):
        day_schedule = schedule.get(key) or {}
        totals[key] = sum(1 for code in day_schedule.values() if code in WORK_CODES)
    return totals


@dataclass
class ScheduleResult:
    """Result of schedule generation"""
    success: bool
    schedule: Schedule
    warnings: List[str]
    statistics: Dict[str, Dict[str, Any]]
    message: str


class RosterScheduler:
    """Runs roster generation against the data manager's state"""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager

    def generate_schedule(self, year: int, month: int,
                          rng: Optional[random.Random] = None) -> ScheduleResult:
        """
        Generate the roster for a month, merge it into the history and save

        Args:
            year: Target year
            month: Target month, zero-indexed (0 = January)
            rng: Random source for tie-breaks
        """
        start_time = time.time()
        year, month = normalize_month(year, month)
        month_label = f"{year}-{month + 1:02d}"
        logger.info(f"Starting roster generation for {month_label}")

        schedule = generate_monthly_roster(
            year, month,
            self.data_manager.get_schedule(),
            self.data_manager.holidays,
            self.data_manager.closed_days,
            rng=rng
        )
        try:
            self.data_manager.replace_schedule(schedule)
        except DataSaveError as e:
            logger.error(f"Failed to save roster for {month_label}: {e}", exc_info=True)
            previous = self.data_manager.get_schedule()
            return ScheduleResult(
                success=False,
                schedule=previous,
                warnings=[],
                statistics=get_staff_statistics(previous, year, month),
                message=f"Failed to save roster for {month_label}: {e}"
            )

        warnings = validate_month(schedule, year, month)
        statistics = get_staff_statistics(schedule, year, month)

        message = f"Roster generated for {month_label}"
        if warnings:
            message += f" with {len(warnings)} pair warnings"
            for warning in warnings:
                logger.warning(warning)

        duration = time.time() - start_time
        logger.info(f"Roster generation completed in {duration:.3f}s")

        return ScheduleResult(
            success=True,
            schedule=schedule,
            warnings=warnings,
            statistics=statistics,
            message=message
        )

    def validate_day(self, key: str) -> ValidationResult:
        return validate_roster(self.data_manager.schedule, key)

    def get_schedule_statistics(self, year: int, month: int) -> Dict[str, Any]:
        """Staff statistics and daily totals for the displayed month"""
        schedule = self.data_manager.schedule
        return {
            "staff": get_staff_statistics(schedule, year, month),
            "daily_totals": get_daily_work_totals(schedule, year, month),
        }
