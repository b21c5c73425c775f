"""
Simulation Engine: main tick loop for the Cell Chain Simulator.

One tick visits every live cell once, in a freshly shuffled order. Each
cell either eats an adjacent entity one below its own number (moving
onto it and leaving a "left-behind" entity numbered one above on its old
tile), or, when nothing is edible, optionally wanders and optionally
starves.

Cells act on the live grid, so earlier cells in the order can move or
eat later ones. Stale entries are skipped silently: a cell whose tile no
longer holds it, or that was eaten this tick, does not act.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from functools import partial
from typing import Callable, Optional

from cellchain.core.config import SimConfig
from cellchain.core.entities import EMPTY, Cell, EntityKind, Food
from cellchain.core.grid import Grid
from cellchain.core.rng import RandomSource, default_random_source
from cellchain.simulation.scheduler import RecurringTicker

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tick statistics: lightweight counters for one tick
# ---------------------------------------------------------------------------

@dataclass
class TickStats:
    """Statistics collected during a single tick."""
    food_eaten: int = 0
    cells_eaten: int = 0
    random_moves: int = 0
    starved: int = 0
    skipped_stale: int = 0

    @property
    def moved(self) -> bool:
        """True if any cell ate or wandered."""
        return self.food_eaten + self.cells_eaten + self.random_moves > 0


# ---------------------------------------------------------------------------
# Run result
# ---------------------------------------------------------------------------

@dataclass
class RunResult:
    """Result of a synchronous `SimulationEngine.run()`."""
    total_ticks: int = 0
    final_cell_count: int = 0
    final_food_count: int = 0
    extinct: bool = False
    stalled: bool = False


# ---------------------------------------------------------------------------
# Simulation Engine
# ---------------------------------------------------------------------------

class SimulationEngine:
    """
    Core simulation engine.

    Runs single ticks on demand (`tick()`) or continuously on a recurring
    scheduler (`start()` / `stop()`). Ticks are serialized by a lock, so a
    manual step never overlaps a scheduled one.

    Attributes:
        cells_die: Cells lose one energy per tick without food and die at 0.
        initial_energy: Energy restored on every successful meal.
        allow_random_move: Cells with nothing to eat step to a free tile.
        cannibal_mode: Cells may eat other cells; left-behind entities are cells.
        rng: Random source for ordering and tie-breaking.
        on_update: Called once after every tick.
        on_no_moves: Called once when a continuous run ends in extinction.
        last_tick_stats: Statistics for the most recent tick.
    """

    def __init__(
        self,
        grid: Grid,
        on_update: Optional[Callable[[], None]] = None,
        on_no_moves: Optional[Callable[[], None]] = None,
        cells_die: bool = False,
        initial_energy: int = 3,
        allow_random_move: bool = False,
        cannibal_mode: bool = False,
        rng: Optional[RandomSource] = None,
    ):
        """
        Create a simulation engine.

        Args:
            grid: Grid to simulate (mutated in place).
            on_update: Callback fired once per tick.
            on_no_moves: Callback fired when a continuous run stops on extinction.
            cells_die: Enable starvation.
            initial_energy: Energy a cell starts with and gets back when it eats (>= 1).
            allow_random_move: Enable wandering when no food is reachable.
            cannibal_mode: Allow cells to eat cells.
            rng: Random source. None = OS-seeded NumPy generator.
        """
        if initial_energy < 1:
            raise ValueError(f"initial_energy must be >= 1, got {initial_energy}")
        self._grid = grid
        self.on_update = on_update
        self.on_no_moves = on_no_moves
        self.cells_die = cells_die
        self.initial_energy = initial_energy
        self.allow_random_move = allow_random_move
        self.cannibal_mode = cannibal_mode
        self.rng = rng if rng is not None else default_random_source()

        self.last_tick_stats = TickStats()
        self._tick_count = 0
        self._lock = threading.RLock()
        self._ticker = RecurringTicker()
        # Bumped on every start(); workers of an earlier run see a mismatch
        self._run_generation = 0

    @classmethod
    def from_config(
        cls,
        config: SimConfig,
        grid: Grid,
        on_update: Optional[Callable[[], None]] = None,
        on_no_moves: Optional[Callable[[], None]] = None,
        rng: Optional[RandomSource] = None,
    ) -> SimulationEngine:
        """Build an engine whose rules come from `config.rules`."""
        rules = config.rules
        return cls(
            grid,
            on_update=on_update,
            on_no_moves=on_no_moves,
            cells_die=rules.cells_die,
            initial_energy=rules.initial_energy,
            allow_random_move=rules.allow_random_move,
            cannibal_mode=rules.cannibal_mode,
            rng=rng,
        )

    # ------------------------------------------------------------------
    # Core tick
    # ------------------------------------------------------------------

    def tick(self) -> bool:
        """
        Execute one simulation tick.

        Processing order:
          1. Snapshot every live cell with its position
          2. Shuffle the snapshot (Fisher-Yates on the injected rng)
          3. For each entry still valid: eat, else wander and/or starve
          4. Increment tick counter
          5. Fire the update callback

        Returns:
            True if any cell ate or moved randomly this tick.
        """
        with self._lock:
            grid = self._grid
            stats = TickStats()

            snapshot = [(cell, cell.position) for cell in grid.all_cells()]
            self.rng.shuffle(snapshot)

            # Ids of cells eaten earlier in this tick (cannibal mode)
            consumed: set[int] = set()

            for cell, origin in snapshot:
                if cell.id in consumed:
                    stats.skipped_stale += 1
                    continue

                if not self._occupied_by(origin, cell):
                    stats.skipped_stale += 1
                    continue

                if self.cannibal_mode and not self._is_live(cell):
                    stats.skipped_stale += 1
                    continue

                if self._try_eat(cell, origin, consumed, stats):
                    continue

                position = origin
                if self.allow_random_move and (cell.is_alive or not self.cells_die):
                    moved_to = self._try_random_move(cell, origin)
                    if moved_to is not None:
                        position = moved_to
                        stats.random_moves += 1

                if self.cells_die:
                    self._starve(cell, position, stats)

            self._tick_count += 1
            self.last_tick_stats = stats

            logger.debug(
                "Tick %d: ate=%d food/%d cells, wandered=%d, starved=%d, skipped=%d",
                self._tick_count, stats.food_eaten, stats.cells_eaten,
                stats.random_moves, stats.starved, stats.skipped_stale,
            )

            if self.on_update is not None:
                self.on_update()

            return stats.moved

    def _occupied_by(self, position: tuple[int, int], cell: Cell) -> bool:
        occupant = self._grid.get(*position)
        return occupant.kind is EntityKind.CELL and occupant.id == cell.id

    def _is_live(self, cell: Cell) -> bool:
        return any(c.id == cell.id for c in self._grid.all_cells())

    def _try_eat(
        self,
        cell: Cell,
        origin: tuple[int, int],
        consumed: set[int],
        stats: TickStats,
    ) -> bool:
        """Eat one edible neighbour, chosen uniformly. Returns False if none."""
        grid = self._grid
        targets = []
        for pos in grid.adjacent(origin):
            entity = grid.get(*pos)
            if entity.kind is EntityKind.FOOD and cell.can_consume(entity.value):
                targets.append(pos)
            elif (self.cannibal_mode
                  and entity.kind is EntityKind.CELL
                  and entity.id != cell.id
                  and cell.can_consume(entity.value)):
                targets.append(pos)

        if not targets:
            return False

        target_pos = self.rng.choice(targets)
        target = grid.get(*target_pos)

        cell.energy = self.initial_energy
        left_value = cell.left_behind_value()
        if self.cannibal_mode:
            left_behind = Cell(value=left_value, max_value=cell.max_value, energy=self.initial_energy)
        else:
            left_behind = Food(value=left_value, max_value=cell.max_value)

        grid.set(target_pos[0], target_pos[1], cell)
        grid.set(origin[0], origin[1], left_behind)

        if target.kind is EntityKind.CELL:
            consumed.add(target.id)
            stats.cells_eaten += 1
        else:
            stats.food_eaten += 1
        return True

    def _try_random_move(self, cell: Cell, origin: tuple[int, int]) -> Optional[tuple[int, int]]:
        """
        Step to a neighbouring EMPTY tile or swap with inedible food.

        Cells are never swap targets. Energy is untouched.

        Returns:
            The new position, or None if every neighbour was blocked.
        """
        grid = self._grid
        options = []
        for pos in grid.adjacent(origin):
            entity = grid.get(*pos)
            if entity.kind is EntityKind.EMPTY:
                options.append(pos)
            elif entity.kind is EntityKind.FOOD and not cell.can_consume(entity.value):
                options.append(pos)

        if not options:
            return None

        dest = self.rng.choice(options)
        displaced = grid.get(*dest)
        grid.set(dest[0], dest[1], cell)
        grid.set(origin[0], origin[1], displaced)
        return dest

    def _starve(self, cell: Cell, position: tuple[int, int], stats: TickStats) -> None:
        """Drain one energy; remove the cell at 0. Skips if `position` no longer holds it."""
        if not self._occupied_by(position, cell):
            stats.skipped_stale += 1
            return
        if cell.drain() == 0:
            self._grid.set(position[0], position[1], EMPTY)
            stats.starved += 1

    # ------------------------------------------------------------------
    # Continuous run
    # ------------------------------------------------------------------

    def start(self, delay_ms: int) -> None:
        """
        Tick every `delay_ms` milliseconds until stopped or extinct.

        No-op if already running.
        """
        if delay_ms <= 0:
            raise ValueError(f"delay_ms must be > 0, got {delay_ms}")
        with self._lock:
            if self._ticker.active:
                return
            self._run_generation += 1
            self._ticker.start(delay_ms / 1000.0, partial(self._scheduled_tick, self._run_generation))
            logger.info("Simulation started (delay=%dms, tick=%d)", delay_ms, self._tick_count)

    def stop(self) -> None:
        """Stop a continuous run. Idempotent."""
        with self._lock:
            if not self._ticker.active:
                return
            self._ticker.cancel()
            logger.info("Simulation stopped at tick %d", self._tick_count)

    def _scheduled_tick(self, generation: int) -> None:
        with self._lock:
            # A worker from a stopped run may wake after a restart
            if generation != self._run_generation or not self._ticker.active:
                return
            self.tick()
            if self._grid.is_extinct:
                self._ticker.cancel()
                logger.info("No cells left at tick %d; simulation stopped", self._tick_count)
                if self.on_no_moves is not None:
                    self.on_no_moves()

    def is_running(self) -> bool:
        return self._ticker.active

    @property
    def running(self) -> bool:
        return self._ticker.active

    def run(self, max_ticks: int) -> RunResult:
        """
        Run synchronously for up to `max_ticks` ticks.

        Stops early on extinction, or when a tick moved nothing and
        starvation is off (the grid can never change again).

        Returns:
            RunResult with summary statistics.
        """
        result = RunResult()
        ticks_run = 0
        while ticks_run < max_ticks:
            moved = self.tick()
            ticks_run += 1

            if self._grid.is_extinct:
                result.extinct = True
                break
            if not moved and not self.cells_die:
                result.stalled = True
                break

        result.total_ticks = ticks_run
        result.final_cell_count = self._grid.cell_count
        result.final_food_count = self._grid.food_count
        return result

    # ------------------------------------------------------------------
    # State management
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Stop the loop and zero the tick counter. Grid contents are kept."""
        self.stop()
        with self._lock:
            self._tick_count = 0
            self.last_tick_stats = TickStats()

    def set_grid(self, grid: Grid) -> None:
        """Replace the simulated grid and zero the tick counter."""
        with self._lock:
            self._grid = grid
            self._tick_count = 0

    def get_grid(self) -> Grid:
        return self._grid

    def get_tick_count(self) -> int:
        return self._tick_count

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def grid(self) -> Grid:
        return self._grid

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def alive_count(self) -> int:
        """Number of cells on the grid."""
        return self._grid.cell_count

    @property
    def is_extinct(self) -> bool:
        return self._grid.is_extinct

    def __repr__(self) -> str:
        return (
            f"SimulationEngine(tick={self._tick_count}, "
            f"cells={self.alive_count}, "
            f"food={self._grid.food_count}, "
            f"running={self.running})"
        )


def create_simulation(
    config: SimConfig,
    on_update: Optional[Callable[[], None]] = None,
    on_no_moves: Optional[Callable[[], None]] = None,
) -> SimulationEngine:
    """
    Build and populate a grid from `config.grid`, and wrap it in an engine.

    One NumPy source seeded with `config.grid.seed` drives both placement
    and ticks, so a fixed seed reproduces the whole run.

    Raises:
        CapacityExceededError: If the configured counts do not fit the grid.
    """
    g = config.grid
    rng = default_random_source(g.seed)
    grid = Grid(g.width, g.height, rng=rng)
    grid.initialize(
        food_count=g.food_count,
        cell_count=g.cell_count,
        max_value=g.max_value,
        energy=config.rules.initial_energy,
    )
    return SimulationEngine.from_config(
        config, grid, on_update=on_update, on_no_moves=on_no_moves, rng=rng,
    )


def restart_simulation(engine: SimulationEngine, config: SimConfig) -> Grid:
    """
    Re-scatter `config.grid` counts on the engine's grid and start over.

    Stops any continuous run, re-initializes the grid in place, then
    resets the engine and hands the grid back to it, so the tick counter
    and last tick's statistics start from zero.

    Returns:
        The re-initialized grid.

    Raises:
        CapacityExceededError: If the configured counts do not fit the grid.
    """
    engine.stop()
    grid = engine.get_grid()
    grid.initialize(
        food_count=config.grid.food_count,
        cell_count=config.grid.cell_count,
        max_value=config.grid.max_value,
        energy=config.rules.initial_energy,
    )
    engine.reset()
    engine.set_grid(grid)
    logger.info("Simulation restarted with %d food and %d cells", grid.food_count, grid.cell_count)
    return grid
