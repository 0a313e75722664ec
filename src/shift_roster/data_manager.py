"""
Data Manager for Monthly Shift Roster

Handles the roster data model, key-value persistence of the schedule,
holiday and closed-day sets, and the manual editing operations used by
the UI (cell edits with pair mirroring, day status cycling, reset).
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Any


logger = logging.getLogger(__name__)


class DataManagerError(Exception):
    """Base exception for DataManager operations"""
    pass


class DataSaveError(DataManagerError):
    """Raised when saving data fails"""
    pass


class ShiftCode(Enum):
    WORK_A = "A"
    WORK_B = "B"
    SHORT_SHIFT = "S"
    OFF = "-"
    PAID_LEAVE = "PL"
    MANUAL_CLOSED = "Closed"
    SHOP_CLOSED = "ShopClosed"

    @property
    def label(self) -> str:
        return SHIFT_LABELS[self]


SHIFT_LABELS = {
    ShiftCode.WORK_A: "A",
    ShiftCode.WORK_B: "B",
    ShiftCode.SHORT_SHIFT: "S",
    ShiftCode.OFF: "-",
    ShiftCode.PAID_LEAVE: "PL",
    ShiftCode.MANUAL_CLOSED: "Cls",
    ShiftCode.SHOP_CLOSED: "Shut",
}

VALID_CODES = {code.value for code in ShiftCode}
WORK_CODES = (ShiftCode.WORK_A.value, ShiftCode.WORK_B.value)


class DayStatus(Enum):
    NORMAL = "normal"
    HOLIDAY = "holiday"
    CLOSED = "closed"


@dataclass(frozen=True)
class Staff:
    """A member of the fixed shop roster"""
    id: str
    name: str


STAFF: Tuple[Staff, ...] = (
    Staff("u", "U"),
    Staff("i", "I"),
    Staff("k", "K"),
    Staff("t", "T"),
    Staff("m", "M"),
)

STAFF_IDS = tuple(s.id for s in STAFF)

# First member of each pair is the representative used for fairness counts
PAIRS: Tuple[Tuple[str, str], ...] = (("u", "i"), ("k", "t"))

SHORT_SHIFT_STAFF = "m"

# Storage keys
SCHEDULE_KEY = "monthly_roster"
HOLIDAYS_KEY = "shift_holidays"
CLOSED_KEY = "shift_closed"

Schedule = Dict[str, Dict[str, str]]


def get_staff_by_id(staff_id: str) -> Optional[Staff]:
    """Get staff record by ID"""
    for staff in STAFF:
        if staff.id == staff_id:
            return staff
    return None


def get_pair_partner(staff_id: str) -> Optional[str]:
    """Return the pair partner of a staff member, or None if unpaired"""
    for first, second in PAIRS:
        if staff_id == first:
            return second
        if staff_id == second:
            return first
    return None


def opposite_work_code(code: str) -> str:
    return ShiftCode.WORK_B.value if code == ShiftCode.WORK_A.value else ShiftCode.WORK_A.value


class MemoryStore:
    """In-memory key-value string store"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileStore:
    """
    Key-value string store backed by a single JSON file.

    Every write is atomic: the previous file is kept as a ``.bak`` backup and
    the new content goes through a ``.tmp`` file before being renamed into
    place. An unreadable main file is recovered from the backup; if both are
    unreadable the store starts empty.
    """

    def __init__(self, data_file: str):
        self.data_file = Path(data_file)
        self.values = self._load_or_create()

    def _read_file(self, path: Path) -> Dict[str, str]:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object in {path}")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _load_or_create(self) -> Dict[str, str]:
        """Load existing values, recovering from backup when needed"""
        backup_file = self.data_file.with_suffix('.bak')

        if self.data_file.exists():
            try:
                return self._read_file(self.data_file)
            except (json.JSONDecodeError, ValueError, IOError) as e:
                logger.error(f"Error loading data file {self.data_file}: {e}")

        if backup_file.exists():
            try:
                logger.info(f"Attempting recovery from backup file {backup_file}")
                values = self._read_file(backup_file)
                backup_file.replace(self.data_file)
                logger.info("Successfully recovered data from backup")
                return values
            except (json.JSONDecodeError, ValueError, IOError) as backup_e:
                logger.error(f"Backup file also unreadable: {backup_e}")

        logger.info("No usable data file found, starting empty")
        return {}

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        previous = dict(self.values)
        self.values[key] = value
        try:
            self._write()
        except DataSaveError:
            self.values = previous
            raise

    def remove(self, key: str) -> None:
        if key in self.values:
            previous = dict(self.values)
            del self.values[key]
            try:
                self._write()
            except DataSaveError:
                self.values = previous
                raise

    def _write(self):
        """Write all values to disk atomically"""
        temp_file = self.data_file.with_suffix('.tmp')
        backup_file = self.data_file.with_suffix('.bak')

        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)

            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(self.values, f, indent=2, ensure_ascii=False)

            if self.data_file.exists():
                self.data_file.replace(backup_file)
            temp_file.replace(self.data_file)

        except (IOError, OSError) as e:
            logger.error(f"I/O error during save operation: {e}", exc_info=True)
            raise DataSaveError(f"Failed to save data due to I/O error: {e}")

        finally:
            if temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError as cleanup_e:
                    logger.error(f"Failed to clean up temporary file {temp_file}: {cleanup_e}")


class DataManager:
    """Owns the roster state and persists it through a key-value store"""

    def __init__(self, data_file: Optional[str] = None, store=None):
        if store is None:
            if data_file is None:
                data_file = Path(__file__).parent.parent / "data" / "roster_data.json"
            store = JsonFileStore(str(data_file))
        self.store = store
        self.schedule: Schedule = {}
        self.holidays: Set[str] = set()
        self.closed_days: Set[str] = set()
        self.load_data()

    @property
    def data_file(self) -> Optional[Path]:
        return getattr(self.store, "data_file", None)

    # Loading

    def load_data(self):
        """Load schedule and day sets from the store, failing safe to empty"""
        self.schedule = self._load_schedule()
        self.holidays = self._load_date_set(HOLIDAYS_KEY)
        self.closed_days = self._load_date_set(CLOSED_KEY)

        overlap = self.holidays & self.closed_days
        if overlap:
            logger.warning(f"Dates marked both holiday and closed, treating as closed: {sorted(overlap)}")
            self.holidays -= overlap

    def _load_json(self, key: str) -> Any:
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"Stored value '{key}' is not valid JSON, resetting: {e}")
            return None

    def _load_schedule(self) -> Schedule:
        data = self._load_json(SCHEDULE_KEY)
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.error(f"Stored schedule has unexpected type {type(data).__name__}, resetting")
            return {}

        schedule: Schedule = {}
        dropped = 0
        for date_key, day_data in data.items():
            if not isinstance(day_data, dict):
                dropped += 1
                continue
            day_schedule = {}
            for staff_id, code in day_data.items():
                if staff_id in STAFF_IDS and code in VALID_CODES:
                    day_schedule[staff_id] = code
                else:
                    dropped += 1
            schedule[str(date_key)] = day_schedule

        if dropped:
            logger.warning(f"Dropped {dropped} malformed schedule entries while loading")
        return schedule

    def _load_date_set(self, key: str) -> Set[str]:
        data = self._load_json(key)
        if data is None:
            return set()
        if not isinstance(data, list):
            logger.error(f"Stored value '{key}' is not a list, resetting")
            return set()
        return {item for item in data if isinstance(item, str)}

    # Saving

    def save_schedule(self):
        """Persist the schedule map; an empty map is not written"""
        if self.schedule:
            self.store.set(SCHEDULE_KEY, json.dumps(self.schedule, ensure_ascii=False))

    def save_day_sets(self):
        self.store.set(HOLIDAYS_KEY, json.dumps(sorted(self.holidays)))
        self.store.set(CLOSED_KEY, json.dumps(sorted(self.closed_days)))

    def save_data(self) -> bool:
        """Persist all roster state"""
        self.save_schedule()
        self.save_day_sets()
        return True

    # Schedule access

    def get_schedule(self) -> Schedule:
        """Return a copy of the full schedule history"""
        return {date_key: dict(day) for date_key, day in self.schedule.items()}

    def replace_schedule(self, schedule: Schedule):
        """Swap in a new schedule map; the old one is kept if saving fails"""
        previous = self.schedule
        self.schedule = {date_key: dict(day) for date_key, day in schedule.items()}
        try:
            self.save_schedule()
        except DataSaveError:
            self.schedule = previous
            raise

    def get_shift(self, date_key: str, staff_id: str) -> str:
        """Get the code for a staff member on a day, Off when unset"""
        return self.schedule.get(date_key, {}).get(staff_id, ShiftCode.OFF.value)

    def set_shift(self, date_key: str, staff_id: str, code: str) -> Dict[str, str]:
        """
        Manually set a staff member's code for a day.

        Setting WorkA or WorkB on a paired staff member sets the partner to the
        opposite work code so the pair stays split.
        """
        if staff_id not in STAFF_IDS:
            raise ValueError(f"Unknown staff id: {staff_id}")
        if isinstance(code, ShiftCode):
            code = code.value
        if code not in VALID_CODES:
            raise ValueError(f"Unknown shift code: {code}")

        day_schedule = dict(self.schedule.get(date_key, {}))
        day_schedule[staff_id] = code

        partner = get_pair_partner(staff_id)
        if partner and code in WORK_CODES:
            day_schedule[partner] = opposite_work_code(code)

        previous = self.schedule.get(date_key)
        self.schedule[date_key] = day_schedule
        try:
            self.save_schedule()
        except DataSaveError:
            if previous is None:
                del self.schedule[date_key]
            else:
                self.schedule[date_key] = previous
            raise
        logger.debug(f"Set {staff_id} to {code} on {date_key}")
        return dict(day_schedule)

    def reset_schedule(self):
        """Clear the whole schedule history; holiday and closed days are kept"""
        self.store.remove(SCHEDULE_KEY)
        self.schedule = {}
        logger.info("Schedule reset")

    # Day status

    def is_holiday(self, date_key: str) -> bool:
        return date_key in self.holidays

    def is_closed_day(self, date_key: str) -> bool:
        return date_key in self.closed_days

    def get_day_status(self, date_key: str) -> DayStatus:
        if date_key in self.closed_days:
            return DayStatus.CLOSED
        if date_key in self.holidays:
            return DayStatus.HOLIDAY
        return DayStatus.NORMAL

    def toggle_day_status(self, date_key: str) -> DayStatus:
        """Cycle a date Normal -> Holiday -> Closed -> Normal"""
        previous = (set(self.holidays), set(self.closed_days))
        if date_key in self.holidays:
            self.holidays.discard(date_key)
            self.closed_days.add(date_key)
        elif date_key in self.closed_days:
            self.closed_days.discard(date_key)
        else:
            self.holidays.add(date_key)

        try:
            self.save_day_sets()
        except DataSaveError:
            self.holidays, self.closed_days = previous
            raise
        status = self.get_day_status(date_key)
        logger.info(f"Day {date_key} is now {status.value}")
        return status

    def get_holidays(self) -> List[str]:
        return sorted(self.holidays)

    def get_closed_days(self) -> List[str]:
        return sorted(self.closed_days)
