"""
Run Manager for the Cell Chain Simulator.

Manages output directories for simulation runs:
  - Creates timestamped run directories under a base output path
  - Copies the config used for the run
  - Stores the final grid snapshot and a run summary
  - Finds and reloads saved runs so they can be resumed
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from cellchain.core.config import SimConfig, load_config, save_config
from cellchain.core.grid import Grid
from cellchain.output.snapshot import SnapshotManager


class RunManager:
    """
    Manages a single simulation run's output directory.

    Directory structure:
        {base_dir}/{run_name}/
            config.json          - copy of the simulation config
            snapshot.json        - latest grid snapshot
            summary.json         - run summary (written by finalize)

    Attributes:
        run_dir: Path to this run's output directory.
        snapshot_manager: SnapshotManager instance for the grid snapshot.
    """

    def __init__(
        self,
        config: SimConfig,
        base_dir: Optional[str | Path] = None,
        run_name: Optional[str] = None,
    ):
        """
        Initialize a run manager and create the output directory.

        Args:
            config: Simulation configuration (will be saved as config.json).
            base_dir: Base output directory. None = use config.run.output_dir.
            run_name: Name for this run's subdirectory. None = timestamp.
        """
        if base_dir is None:
            base_dir = config.run.output_dir

        if run_name is None:
            run_name = datetime.now().strftime("%Y%m%d_%H%M%S")

        self.run_dir = Path(base_dir) / run_name
        self.run_dir.mkdir(parents=True, exist_ok=True)

        config_path = self.run_dir / "config.json"
        save_config(config, config_path)
        self._config_path = config_path

        self.snapshot_manager = SnapshotManager(self.run_dir)

    @property
    def config_path(self) -> Path:
        """Path to the saved config file."""
        return self._config_path

    @property
    def summary_path(self) -> Path:
        return self.run_dir / "summary.json"

    def save_snapshot(self, grid: Grid, tick: int) -> Path:
        """Save the current grid snapshot."""
        return self.snapshot_manager.save(grid, tick)

    def finalize(self, summary: Optional[dict] = None) -> None:
        """
        Finalize the run (write summary file if provided).

        Args:
            summary: Optional summary dict to save as summary.json.
        """
        if summary is not None:
            with open(self.summary_path, "w", encoding="utf-8") as f:
                json.dump(summary, f, indent=2, ensure_ascii=False)

    @staticmethod
    def list_runs(base_dir: str | Path) -> list[str]:
        """
        List all run directories under the base directory.

        Args:
            base_dir: Base output directory.

        Returns:
            Sorted list of run directory names.
        """
        base = Path(base_dir)
        if not base.exists():
            return []
        return sorted(
            d.name for d in base.iterdir()
            if d.is_dir() and (d / "config.json").exists()
        )

    @staticmethod
    def find_run(base_dir: str | Path, run_name: str = "latest") -> Path:
        """
        Locate a saved run under `base_dir`.

        Run names are timestamps, so "latest" is the last one in sort order.

        Raises:
            FileNotFoundError: If no matching run exists.
        """
        runs = RunManager.list_runs(base_dir)
        if run_name == "latest":
            if not runs:
                raise FileNotFoundError(f"No saved runs under {base_dir}")
            run_name = runs[-1]
        elif run_name not in runs:
            raise FileNotFoundError(f"Run '{run_name}' not found under {base_dir}")
        return Path(base_dir) / run_name

    @staticmethod
    def load_run(run_dir: str | Path) -> tuple[SimConfig, Grid, int]:
        """
        Load a saved run's config, final grid and tick.

        Raises:
            FileNotFoundError: If the config or snapshot is missing.
        """
        run_dir = Path(run_dir)
        config = load_config(run_dir / "config.json")
        snapshots = SnapshotManager(run_dir)
        tick = int(snapshots.load()["tick"])
        return config, snapshots.load_grid(), tick

    def __repr__(self) -> str:
        return f"RunManager(run_dir='{self.run_dir}')"
