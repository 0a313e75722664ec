import pytest
import sys
from pathlib import Path
import tempfile
import os
import json

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_roster.data_manager import (
    DataManager, DataSaveError, DayStatus, JsonFileStore, MemoryStore,
    SCHEDULE_KEY, HOLIDAYS_KEY, CLOSED_KEY,
)


@pytest.fixture
def data_manager():
    """Fixture for a clean, isolated DataManager backed by a temp file."""
    with tempfile.NamedTemporaryFile(
        mode="w", suffix=".json", delete=False
    ) as temp_file:
        temp_path = temp_file.name
        json.dump({}, temp_file)

    dm = DataManager(temp_path)
    yield dm
    path = Path(temp_path)
    for leftover in (path, path.with_suffix(".bak"), path.with_suffix(".tmp")):
        if leftover.exists():
            os.unlink(leftover)


def test_empty_store_starts_empty():
    dm = DataManager(store=MemoryStore())
    assert dm.get_schedule() == {}
    assert dm.get_holidays() == []
    assert dm.get_closed_days() == []
    assert dm.get_shift("2025-04-02", "u") == "-"


def test_schedule_and_day_sets_survive_reload(data_manager):
    data_manager.set_shift("2025-04-02", "m", "PL")
    data_manager.toggle_day_status("2025-04-03")
    data_manager.toggle_day_status("2025-04-05")
    data_manager.toggle_day_status("2025-04-05")

    reloaded = DataManager(data_manager.data_file)
    assert reloaded.get_shift("2025-04-02", "m") == "PL"
    assert reloaded.get_holidays() == ["2025-04-03"]
    assert reloaded.get_closed_days() == ["2025-04-05"]


def test_toggle_cycles_normal_holiday_closed():
    dm = DataManager(store=MemoryStore())
    key = "2025-04-09"
    assert dm.get_day_status(key) == DayStatus.NORMAL
    assert dm.toggle_day_status(key) == DayStatus.HOLIDAY
    assert dm.is_holiday(key) and not dm.is_closed_day(key)
    assert dm.toggle_day_status(key) == DayStatus.CLOSED
    assert dm.is_closed_day(key) and not dm.is_holiday(key)
    assert dm.toggle_day_status(key) == DayStatus.NORMAL
    assert not dm.is_holiday(key) and not dm.is_closed_day(key)


@pytest.mark.parametrize(
    "staff_id, code, partner, partner_code",
    [
        ("u", "A", "i", "B"),
        ("i", "A", "u", "B"),
        ("k", "B", "t", "A"),
        ("t", "B", "k", "A"),
    ],
)
def test_set_work_code_mirrors_partner(staff_id, code, partner, partner_code):
    dm = DataManager(store=MemoryStore())
    day = dm.set_shift("2025-04-02", staff_id, code)
    assert day[staff_id] == code
    assert day[partner] == partner_code


def test_non_work_codes_do_not_touch_partner():
    dm = DataManager(store=MemoryStore())
    dm.set_shift("2025-04-02", "i", "A")
    dm.set_shift("2025-04-02", "u", "PL")
    assert dm.get_shift("2025-04-02", "u") == "PL"
    assert dm.get_shift("2025-04-02", "i") == "A"

    day = dm.set_shift("2025-04-02", "m", "B")
    assert day == {"u": "PL", "i": "A", "m": "B"}


def test_set_shift_rejects_unknown_values():
    dm = DataManager(store=MemoryStore())
    with pytest.raises(ValueError):
        dm.set_shift("2025-04-02", "z", "A")
    with pytest.raises(ValueError):
        dm.set_shift("2025-04-02", "u", "C")


def test_reset_clears_schedule_but_keeps_day_sets():
    store = MemoryStore()
    dm = DataManager(store=store)
    dm.set_shift("2025-04-02", "u", "PL")
    dm.toggle_day_status("2025-04-03")
    assert store.get(SCHEDULE_KEY) is not None

    dm.reset_schedule()

    assert dm.get_schedule() == {}
    assert store.get(SCHEDULE_KEY) is None
    assert DataManager(store=store).get_holidays() == ["2025-04-03"]


@pytest.mark.parametrize(
    "stored",
    [
        {SCHEDULE_KEY: "{not json", HOLIDAYS_KEY: "[oops", CLOSED_KEY: "nope"},
        {SCHEDULE_KEY: "[1, 2, 3]", HOLIDAYS_KEY: "{}", CLOSED_KEY: "42"},
    ],
)
def test_malformed_stored_values_fail_safe(stored):
    """
    Why this is important: a damaged store must not stop the application
    from starting; it falls back to an empty roster instead.
    """
    dm = DataManager(store=MemoryStore(stored))
    assert dm.get_schedule() == {}
    assert dm.get_holidays() == []
    assert dm.get_closed_days() == []


def test_unknown_codes_and_staff_are_dropped():
    stored = {
        SCHEDULE_KEY: json.dumps({
            "2025-04-02": {"u": "A", "i": "Z", "x": "B"},
            "2025-04-03": "broken",
        })
    }
    dm = DataManager(store=MemoryStore(stored))
    assert dm.get_schedule() == {"2025-04-02": {"u": "A"}}


def test_overlapping_day_sets_are_made_exclusive():
    stored = {
        HOLIDAYS_KEY: json.dumps(["2025-04-02", "2025-04-03"]),
        CLOSED_KEY: json.dumps(["2025-04-03"]),
    }
    dm = DataManager(store=MemoryStore(stored))
    assert dm.get_holidays() == ["2025-04-02"]
    assert dm.get_closed_days() == ["2025-04-03"]


def test_corrupted_file_recovers_from_backup(tmp_path):
    data_file = tmp_path / "roster.json"
    store = JsonFileStore(str(data_file))
    store.set(HOLIDAYS_KEY, json.dumps(["2025-04-03"]))
    store.set(CLOSED_KEY, json.dumps(["2025-04-05"]))

    # The backup holds the state before the last write
    data_file.write_text("{corrupted")
    dm = DataManager(str(data_file))
    assert dm.get_holidays() == ["2025-04-03"]
    assert dm.get_closed_days() == []


def test_corrupted_file_without_backup_starts_empty(tmp_path):
    data_file = tmp_path / "roster.json"
    data_file.write_text("not json at all")
    dm = DataManager(str(data_file))
    assert dm.get_schedule() == {}


def test_unwritable_store_raises_save_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    store = JsonFileStore(str(blocker / "roster.json"))
    with pytest.raises(DataSaveError):
        store.set(SCHEDULE_KEY, "{}")


class FailingStore(MemoryStore):
    """Store whose writes fail once ``failing`` is switched on"""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.failing = False

    def set(self, key, value):
        if self.failing:
            raise DataSaveError("disk full")
        super().set(key, value)

    def remove(self, key):
        if self.failing:
            raise DataSaveError("disk full")
        super().remove(key)


@pytest.fixture
def failing_store():
    store = FailingStore({
        SCHEDULE_KEY: json.dumps({"2025-04-02": {"u": "A", "i": "B"}}),
        HOLIDAYS_KEY: json.dumps(["2025-04-03"]),
    })
    return store


def test_failed_set_shift_leaves_schedule_unchanged(failing_store):
    """
    Why this is important: the grid re-reads the data manager after an error,
    so in-memory state must match what is on disk.
    """
    dm = DataManager(store=failing_store)
    failing_store.failing = True

    with pytest.raises(DataSaveError):
        dm.set_shift("2025-04-02", "u", "B")
    with pytest.raises(DataSaveError):
        dm.set_shift("2025-04-09", "k", "A")

    assert dm.get_schedule() == {"2025-04-02": {"u": "A", "i": "B"}}


def test_failed_toggle_leaves_day_sets_unchanged(failing_store):
    dm = DataManager(store=failing_store)
    failing_store.failing = True

    with pytest.raises(DataSaveError):
        dm.toggle_day_status("2025-04-03")

    assert dm.get_day_status("2025-04-03") == DayStatus.HOLIDAY
    assert dm.get_closed_days() == []


def test_failed_reset_keeps_schedule(failing_store):
    dm = DataManager(store=failing_store)
    failing_store.failing = True

    with pytest.raises(DataSaveError):
        dm.reset_schedule()

    assert dm.get_shift("2025-04-02", "u") == "A"


def test_json_store_rolls_back_values_on_failed_write(tmp_path):
    store = JsonFileStore(str(tmp_path / "roster.json"))
    store.set(HOLIDAYS_KEY, '["2025-04-03"]')

    blocker = tmp_path / "blocker"
    blocker.write_text("")
    store.data_file = blocker / "roster.json"

    with pytest.raises(DataSaveError):
        store.set(SCHEDULE_KEY, "{}")
    with pytest.raises(DataSaveError):
        store.remove(HOLIDAYS_KEY)

    assert store.get(SCHEDULE_KEY) is None
    assert store.get(HOLIDAYS_KEY) == '["2025-04-03"]'
