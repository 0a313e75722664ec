"""
Test Suite for the Roster Scheduler Service

Covers generation against the data manager, persistence of the result,
month warnings and statistics.
"""

import pytest
import random
import sys
from pathlib import Path
import tempfile
import os
import json

# Setup import path for src
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_roster.data_manager import DataManager, DataSaveError, MemoryStore, STAFF_IDS
from shift_roster.scheduler_logic import (
    RosterScheduler, get_staff_statistics, get_daily_work_totals,
)


@pytest.fixture
def data_manager():
    """Clean DataManager for each test - isolated temp file."""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as temp:
        temp_path = temp.name
        json.dump({}, temp)
    dm = DataManager(temp_path)
    yield dm
    path = Path(temp_path)
    for leftover in (path, path.with_suffix(".bak")):
        if leftover.exists():
            os.unlink(leftover)


@pytest.fixture
def scheduler(data_manager):
    """Clean RosterScheduler instance for each test."""
    return RosterScheduler(data_manager)


def test_generation_fills_and_saves_month(scheduler, data_manager):
    result = scheduler.generate_schedule(2025, 3, rng=random.Random(1))

    assert result.success
    assert not result.warnings
    assert "2025-04" in result.message
    assert len(result.schedule) == 30
    assert all(set(day) == set(STAFF_IDS) for day in result.schedule.values())

    reloaded = DataManager(data_manager.data_file)
    assert reloaded.get_schedule() == result.schedule


def test_generation_uses_manual_entries_and_day_sets(scheduler, data_manager):
    data_manager.set_shift("2025-04-02", "u", "PL")
    data_manager.toggle_day_status("2025-04-03")                     # holiday
    data_manager.toggle_day_status("2025-04-05")
    data_manager.toggle_day_status("2025-04-05")                     # closed

    result = scheduler.generate_schedule(2025, 3, rng=random.Random(2))

    assert result.schedule["2025-04-02"]["u"] == "PL"
    assert result.schedule["2025-04-03"]["m"] == "B"
    assert set(result.schedule["2025-04-05"].values()) == {"ShopClosed"}


def test_generation_keeps_other_months(scheduler, data_manager):
    data_manager.set_shift("2025-03-12", "k", "A")
    result = scheduler.generate_schedule(2025, 3)
    assert result.schedule["2025-03-12"] == {"k": "A", "t": "B"}


def test_generation_reports_pair_warnings(scheduler, data_manager):
    """
    Why this is important: a manual edit can leave a pair on the same shift.
    Generation keeps manual codes, so the conflict must surface as a warning.
    """
    data_manager.set_shift("2025-04-02", "u", "A")
    data_manager.schedule["2025-04-02"]["i"] = "A"

    result = scheduler.generate_schedule(2025, 3, rng=random.Random(3))

    assert result.success
    assert result.warnings == ["2025-04-02: Warning: U & I have same shift"]
    assert "1 pair warnings" in result.message
    assert not scheduler.validate_day("2025-04-02").valid


def test_statistics_for_generated_month(scheduler):
    result = scheduler.generate_schedule(2025, 3, rng=random.Random(4))
    stats = result.statistics

    # 21 open days in April 2025; Wed/Thu/Fri are short shifts for M
    assert stats["m"]["s_count"] == 13
    assert stats["m"]["b_count"] == 8
    assert stats["m"]["total_work"] == 8
    for staff_id in ("u", "i", "k", "t"):
        assert stats[staff_id]["total_work"] == 21
        assert stats[staff_id]["pl_count"] == 0

    totals = scheduler.get_schedule_statistics(2025, 3)["daily_totals"]
    assert totals["2025-04-01"] == 0
    assert totals["2025-04-02"] == 4
    assert totals["2025-04-05"] == 5


def test_statistics_helpers_on_manual_schedule():
    schedule = {
        "2025-04-02": {"u": "A", "i": "B", "m": "S", "k": "PL", "t": "A"},
        "2025-04-03": {"u": "B", "i": "A", "m": "PL", "k": "Closed"},
        "2025-05-01": {"u": "A"},
    }
    stats = get_staff_statistics(schedule, 2025, 3)
    assert stats["u"] == {"name": "U", "a_count": 1, "b_count": 1, "s_count": 0,
                          "pl_count": 0, "total_work": 2}
    assert stats["m"]["s_count"] == 1 and stats["m"]["pl_count"] == 1
    assert stats["k"]["pl_count"] == 1 and stats["k"]["total_work"] == 0

    totals = get_daily_work_totals(schedule, 2025, 3)
    assert totals["2025-04-02"] == 3
    assert totals["2025-04-03"] == 2
    assert totals["2025-04-30"] == 0


def test_scheduler_with_memory_store():
    dm = DataManager(store=MemoryStore())
    result = RosterScheduler(dm).generate_schedule(2024, 13)  # February 2025
    assert len(result.schedule) == 28
    assert "2025-02" in result.message


class FailingStore(MemoryStore):
    """Store whose writes fail once ``failing`` is switched on"""

    def __init__(self):
        super().__init__()
        self.failing = False

    def set(self, key, value):
        if self.failing:
            raise DataSaveError("disk full")
        super().set(key, value)


def test_generation_reports_save_failure():
    """
    Why this is important: a failed write must not crash the Generate button
    or leave an unsaved roster on screen that disappears on restart.
    """
    store = FailingStore()
    dm = DataManager(store=store)
    dm.set_shift("2025-04-02", "u", "PL")
    before = dm.get_schedule()

    store.failing = True
    result = RosterScheduler(dm).generate_schedule(2025, 3, rng=random.Random(5))

    assert not result.success
    assert "Failed to save roster for 2025-04" in result.message
    assert "disk full" in result.message
    assert result.warnings == []
    assert result.schedule == before
    assert dm.get_schedule() == before
    assert result.statistics["u"]["pl_count"] == 1
