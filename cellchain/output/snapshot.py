"""
Snapshot manager for the Cell Chain Simulator.

Saves and loads the current grid state as JSON. Only the latest snapshot
is kept: each save overwrites the previous file.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np

from cellchain.core.entities import Cell, Food
from cellchain.core.grid import Grid

SNAPSHOT_FILENAME = "snapshot.json"


def grid_to_dict(grid: Grid, tick: int = 0) -> dict:
    """Convert grid state to a serializable dict."""
    return {
        "tick": tick,
        "width": grid.width,
        "height": grid.height,
        "cell_count": grid.cell_count,
        "food_count": grid.food_count,
        "cells": [_cell_to_dict(c) for c in grid.all_cells()],
        "food": [_food_to_dict(f) for f in grid.all_food()],
    }


def grid_from_dict(data: dict) -> Grid:
    """
    Rebuild a Grid from `grid_to_dict()` output.

    Cell ids are preserved.

    Raises:
        KeyError: If a required field is missing.
        InvalidValueError: If an entity value is out of range.
    """
    grid = Grid(int(data["width"]), int(data["height"]))
    for f in data.get("food", []):
        grid.set(int(f["x"]), int(f["y"]), Food(
            value=int(f["value"]),
            max_value=int(f["max_value"]),
        ))
    for c in data.get("cells", []):
        grid.set(int(c["x"]), int(c["y"]), Cell(
            value=int(c["value"]),
            max_value=int(c["max_value"]),
            energy=int(c["energy"]),
            cell_id=int(c["id"]),
        ))
    return grid


def _cell_to_dict(cell: Cell) -> dict:
    return {
        "id": cell.id,
        "x": cell.x,
        "y": cell.y,
        "value": cell.value,
        "max_value": cell.max_value,
        "energy": cell.energy,
    }


def _food_to_dict(food: Food) -> dict:
    return {
        "x": food.x,
        "y": food.y,
        "value": food.value,
        "max_value": food.max_value,
    }


class SnapshotManager:
    """
    Saves and loads the latest grid snapshot as a JSON file.

    The snapshot is saved to: {output_dir}/snapshot.json

    Attributes:
        output_dir: Base output directory for the run.
    """

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    @property
    def snapshot_path(self) -> Path:
        return self.output_dir / SNAPSHOT_FILENAME

    def save(self, grid: Grid, tick: int) -> Path:
        """
        Save a snapshot of the current grid, replacing any earlier one.

        Args:
            grid: Grid to snapshot.
            tick: Current tick number.

        Returns:
            Path to the saved snapshot file.
        """
        snapshot = grid_to_dict(grid, tick)
        with open(self.snapshot_path, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, indent=2, ensure_ascii=False, default=_json_default)
        return self.snapshot_path

    def load(self) -> dict:
        """
        Load the saved snapshot.

        Raises:
            FileNotFoundError: If no snapshot was saved.
        """
        if not self.snapshot_path.exists():
            raise FileNotFoundError(f"Snapshot not found: {self.snapshot_path}")

        with open(self.snapshot_path, "r", encoding="utf-8") as f:
            return json.load(f)

    def load_grid(self) -> Grid:
        """Load the saved snapshot and rebuild its Grid."""
        return grid_from_dict(self.load())


def _json_default(obj: Any) -> Any:
    """JSON serialization fallback for NumPy types."""
    if isinstance(obj, (np.integer,)):
        return int(obj)
    if isinstance(obj, (np.floating,)):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
