"""
Unit tests for KPI metrics and run output.

Tests cover:
- MetricsCollector:
  - Population counts from known grid states
  - Energy statistics
  - Tick activity counters
  - History tracking and series extraction
  - Empty grid edge cases
- SnapshotManager:
  - Dict conversion and rebuild (ids preserved)
  - Save overwrites the previous snapshot
  - Missing snapshot error
  - Loaded ids stay unique once the grid ticks again
- RunManager:
  - Directory creation
  - Config copy
  - Summary file
  - Run listing, lookup and reload
"""

import json
from pathlib import Path

import pytest

from cellchain.core.config import SimConfig, load_config
from cellchain.core.entities import Cell, EntityKind, Food, reset_cell_id_counter
from cellchain.core.grid import Grid
from cellchain.core.rng import NumpyRandomSource
from cellchain.output.run_manager import RunManager
from cellchain.output.snapshot import (
    SNAPSHOT_FILENAME,
    SnapshotManager,
    grid_from_dict,
    grid_to_dict,
)
from cellchain.simulation.engine import SimulationEngine, TickStats
from cellchain.simulation.metrics import MetricsCollector


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def reset_ids():
    reset_cell_id_counter()
    yield
    reset_cell_id_counter()


@pytest.fixture
def small_grid() -> Grid:
    """3x3 grid: two cells (energy 2 and 4), three food."""
    grid = Grid(3, 3)
    grid.set(0, 0, Cell(value=1, max_value=9, energy=2))
    grid.set(2, 2, Cell(value=5, max_value=9, energy=4))
    grid.set(1, 0, Food(value=0, max_value=9))
    grid.set(1, 1, Food(value=3, max_value=9))
    grid.set(0, 2, Food(value=9, max_value=9))
    return grid


# ---------------------------------------------------------------------------
# MetricsCollector
# ---------------------------------------------------------------------------

class TestMetricsCollector:
    def test_population_counts(self, small_grid):
        kpis = MetricsCollector().collect(small_grid, tick=4)
        assert kpis["tick"] == 4
        assert kpis["cell_count"] == 2
        assert kpis["food_count"] == 3
        assert kpis["empty_count"] == 4

    def test_energy_stats(self, small_grid):
        kpis = MetricsCollector().collect(small_grid, tick=0)
        assert kpis["avg_energy"] == pytest.approx(3.0)
        assert kpis["min_energy"] == 2
        assert kpis["max_energy"] == 4

    def test_tick_activity(self, small_grid):
        stats = TickStats(food_eaten=2, cells_eaten=1, random_moves=3, starved=1)
        kpis = MetricsCollector().collect(small_grid, tick=1, stats=stats)
        assert kpis["food_eaten"] == 2
        assert kpis["cells_eaten"] == 1
        assert kpis["random_moves"] == 3
        assert kpis["starved"] == 1

    def test_no_stats_means_zero_activity(self, small_grid):
        kpis = MetricsCollector().collect(small_grid, tick=0)
        assert kpis["food_eaten"] == 0
        assert kpis["starved"] == 0

    def test_empty_grid(self):
        kpis = MetricsCollector().collect(Grid(2, 2), tick=0)
        assert kpis["cell_count"] == 0
        assert kpis["empty_count"] == 4
        assert kpis["avg_energy"] == 0.0
        assert kpis["max_energy"] == 0

    def test_all_kpis_present(self, small_grid):
        kpis = MetricsCollector().collect(small_grid, tick=0)
        assert list(kpis.keys()) == MetricsCollector.kpi_names()

    def test_history(self, small_grid):
        collector = MetricsCollector()
        assert collector.get_last() is None
        collector.collect(small_grid, tick=0)
        small_grid.set(0, 0, Food(value=2, max_value=9))
        collector.collect(small_grid, tick=1)
        assert len(collector.get_history()) == 2
        assert collector.get_last()["tick"] == 1
        assert collector.get_kpi_series("cell_count") == [2, 1]

    def test_clear(self, small_grid):
        collector = MetricsCollector()
        collector.collect(small_grid, tick=0)
        collector.clear()
        assert collector.get_history() == []


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------

class TestSnapshot:
    def test_grid_to_dict(self, small_grid):
        data = grid_to_dict(small_grid, tick=7)
        assert data["tick"] == 7
        assert data["width"] == 3
        assert data["cell_count"] == 2
        assert data["food_count"] == 3
        assert data["cells"][0] == {
            "id": 0, "x": 0, "y": 0, "value": 1, "max_value": 9, "energy": 2,
        }

    def test_rebuild_preserves_state(self, small_grid):
        rebuilt = grid_from_dict(grid_to_dict(small_grid))
        assert rebuilt.get(2, 2).kind is EntityKind.CELL
        assert rebuilt.get(2, 2).id == 1
        assert rebuilt.get(2, 2).energy == 4
        assert rebuilt.get(0, 2).value == 9
        assert rebuilt.get(2, 0).kind is EntityKind.EMPTY

    def test_save_and_load(self, small_grid, tmp_path):
        manager = SnapshotManager(tmp_path)
        path = manager.save(small_grid, tick=3)
        assert path.name == SNAPSHOT_FILENAME
        assert manager.load()["tick"] == 3
        assert manager.load_grid().cell_count == 2

    def test_save_overwrites(self, small_grid, tmp_path):
        manager = SnapshotManager(tmp_path)
        manager.save(small_grid, tick=1)
        small_grid.set(0, 0, Food(value=2, max_value=9))
        manager.save(small_grid, tick=2)
        data = manager.load()
        assert data["tick"] == 2
        assert data["cell_count"] == 1
        assert list(tmp_path.iterdir()) == [manager.snapshot_path]

    def test_missing_snapshot_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SnapshotManager(tmp_path / "empty").load()

    def test_loaded_ids_stay_unique_after_tick(self):
        """Cells born after loading never reuse an id held by a loaded cell."""
        data = {
            "width": 4, "height": 1,
            "cells": [
                {"id": 7, "x": 0, "y": 0, "value": 1, "max_value": 9, "energy": 3},
                {"id": 0, "x": 3, "y": 0, "value": 5, "max_value": 9, "energy": 3},
            ],
            "food": [{"x": 1, "y": 0, "value": 0, "max_value": 9}],
        }
        grid = grid_from_dict(data)
        engine = SimulationEngine(grid, cannibal_mode=True, rng=NumpyRandomSource(seed=0))
        engine.tick()

        ids = [c.id for c in grid.all_cells()]
        assert len(ids) == 3
        assert len(set(ids)) == 3
        assert grid.get(0, 0).id not in (0, 7)


# ---------------------------------------------------------------------------
# RunManager
# ---------------------------------------------------------------------------

class TestRunManager:
    def test_creates_run_dir_with_config(self, tmp_path):
        config = SimConfig()
        config.grid.seed = 5
        manager = RunManager(config, base_dir=tmp_path, run_name="run_a")
        assert manager.run_dir == tmp_path / "run_a"
        assert manager.config_path.exists()
        assert load_config(manager.config_path).grid.seed == 5

    def test_default_base_dir_from_config(self, tmp_path):
        config = SimConfig()
        config.run.output_dir = str(tmp_path / "out")
        manager = RunManager(config, run_name="r")
        assert manager.run_dir == Path(config.run.output_dir) / "r"

    def test_snapshot_and_summary(self, small_grid, tmp_path):
        manager = RunManager(SimConfig(), base_dir=tmp_path, run_name="run_b")
        manager.save_snapshot(small_grid, tick=9)
        manager.finalize({"total_ticks": 9, "extinct": False})
        assert (manager.run_dir / SNAPSHOT_FILENAME).exists()
        summary = json.loads(manager.summary_path.read_text())
        assert summary["total_ticks"] == 9

    def test_finalize_without_summary(self, tmp_path):
        manager = RunManager(SimConfig(), base_dir=tmp_path, run_name="run_c")
        manager.finalize()
        assert not manager.summary_path.exists()

    def test_list_runs(self, tmp_path):
        RunManager(SimConfig(), base_dir=tmp_path, run_name="b")
        RunManager(SimConfig(), base_dir=tmp_path, run_name="a")
        (tmp_path / "stray").mkdir()
        assert RunManager.list_runs(tmp_path) == ["a", "b"]
        assert RunManager.list_runs(tmp_path / "missing") == []

    def test_find_run_latest(self, tmp_path):
        RunManager(SimConfig(), base_dir=tmp_path, run_name="20260101_000000")
        RunManager(SimConfig(), base_dir=tmp_path, run_name="20260102_000000")
        assert RunManager.find_run(tmp_path).name == "20260102_000000"
        assert RunManager.find_run(tmp_path, "20260101_000000").name == "20260101_000000"

    def test_find_run_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RunManager.find_run(tmp_path)
        RunManager(SimConfig(), base_dir=tmp_path, run_name="a")
        with pytest.raises(FileNotFoundError):
            RunManager.find_run(tmp_path, "b")

    def test_load_run(self, small_grid, tmp_path):
        config = SimConfig()
        config.rules.cannibal_mode = True
        manager = RunManager(config, base_dir=tmp_path, run_name="r")
        manager.save_snapshot(small_grid, tick=6)

        loaded_config, grid, tick = RunManager.load_run(manager.run_dir)
        assert loaded_config.rules.cannibal_mode is True
        assert tick == 6
        assert grid.cell_count == 2
        assert grid.get(2, 2).energy == 4

    def test_load_run_without_snapshot(self, tmp_path):
        manager = RunManager(SimConfig(), base_dir=tmp_path, run_name="r")
        with pytest.raises(FileNotFoundError):
            RunManager.load_run(manager.run_dir)
