"""
KPI Metrics collection for the Cell Chain Simulator.

MetricsCollector gathers per-tick Key Performance Indicators (KPIs) from
the grid and the engine's TickStats. History lives in memory only and
backs the population charts of the current session.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from cellchain.core.grid import Grid
from cellchain.simulation.engine import TickStats


# ---------------------------------------------------------------------------
# MetricsCollector
# ---------------------------------------------------------------------------

class MetricsCollector:
    """
    Collects and computes KPIs per tick.

    Usage:
      1. After a tick, call `collect(grid, tick, engine.last_tick_stats)`
      2. Resulting dict is appended to `history`
      3. Call `get_history()` to retrieve all collected snapshots

    Attributes:
        history: List of KPI dicts, one per collected tick.
    """

    def __init__(self):
        self.history: list[dict] = []

    def collect(
        self,
        grid: Grid,
        tick: int,
        stats: Optional[TickStats] = None,
    ) -> dict:
        """
        Compute all KPIs for the current grid and append to history.

        Args:
            grid: Current grid state.
            tick: Tick number the grid corresponds to.
            stats: Counters from the tick that produced this grid. None = zeros.

        Returns:
            Dict of KPI_name → value.
        """
        if stats is None:
            stats = TickStats()

        kpis: dict = {}
        cells = grid.all_cells()
        food_count = grid.food_count

        # --- Population ---
        kpis["tick"] = tick
        kpis["cell_count"] = len(cells)
        kpis["food_count"] = food_count
        kpis["empty_count"] = grid.area - len(cells) - food_count

        # --- Energy statistics ---
        if cells:
            energies = np.array([c.energy for c in cells])
            kpis["avg_energy"] = float(np.mean(energies))
            kpis["min_energy"] = int(np.min(energies))
            kpis["max_energy"] = int(np.max(energies))
        else:
            kpis["avg_energy"] = 0.0
            kpis["min_energy"] = 0
            kpis["max_energy"] = 0

        # --- Tick activity ---
        kpis["food_eaten"] = stats.food_eaten
        kpis["cells_eaten"] = stats.cells_eaten
        kpis["random_moves"] = stats.random_moves
        kpis["starved"] = stats.starved

        self.history.append(kpis)
        return kpis

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_history(self) -> list[dict]:
        """Return all collected KPI snapshots."""
        return list(self.history)

    def get_last(self) -> Optional[dict]:
        """Return the last collected KPI snapshot, or None."""
        return self.history[-1] if self.history else None

    def get_kpi_series(self, kpi_name: str) -> list:
        """Extract a single KPI as a list across all ticks."""
        return [snap[kpi_name] for snap in self.history if kpi_name in snap]

    def clear(self) -> None:
        self.history = []

    @staticmethod
    def kpi_names() -> list[str]:
        """Return the ordered list of all KPI names."""
        return [
            "tick",
            "cell_count",
            "food_count",
            "empty_count",
            "avg_energy",
            "min_energy",
            "max_energy",
            "food_eaten",
            "cells_eaten",
            "random_moves",
            "starved",
        ]
