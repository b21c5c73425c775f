"""
Grid for the Cell Chain Simulator.

A fixed width x height rectangle of tiles. Every tile holds exactly one
entity (EMPTY, Food or Cell); the grid exclusively owns them and re-stamps
an entity's position whenever it is placed.

Tiles are stored in a dense NumPy object array indexed [y, x]. Access
outside the rectangle never raises: reads return EMPTY and writes are
ignored.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from cellchain.core.entities import (
    EMPTY,
    Cell,
    Entity,
    EntityKind,
    Food,
    InvalidValueError,
)
from cellchain.core.rng import RandomSource, default_random_source
from cellchain.utils.spatial import all_positions, in_bounds, von_neumann_neighbors

logger = logging.getLogger(__name__)


class CapacityExceededError(ValueError):
    """Raised when more entities are requested than the grid has tiles."""


# Codes used by kind_matrix()
KIND_CODES: dict[EntityKind, int] = {
    EntityKind.EMPTY: 0,
    EntityKind.FOOD: 1,
    EntityKind.CELL: 2,
}


class Grid:
    """
    Dense rectangular store of entities.

    Attributes:
        width: Number of columns.
        height: Number of rows.
        rng: Random source used by `initialize()` when none is passed.
    """

    def __init__(self, width: int, height: int, rng: Optional[RandomSource] = None):
        """
        Create an all-EMPTY grid.

        Args:
            width: Number of columns (>= 1).
            height: Number of rows (>= 1).
            rng: Random source for initialization. None = OS-seeded default.
        """
        if width < 1 or height < 1:
            raise ValueError(f"Grid dimensions must be >= 1, got {width}x{height}")
        self.width = width
        self.height = height
        self.rng = rng if rng is not None else default_random_source()
        self._tiles: NDArray[np.object_] = self._blank()

    def _blank(self) -> NDArray[np.object_]:
        return np.full((self.height, self.width), EMPTY, dtype=object)

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(
        self,
        food_count: int,
        cell_count: int,
        max_value: int = 9,
        energy: int = 3,
        rng: Optional[RandomSource] = None,
    ) -> None:
        """
        Clear the grid and scatter food and cells at distinct random tiles.

        Positions are drawn without replacement by shuffling every tile;
        the first `food_count` receive Food, the next `cell_count` receive
        Cells. Each value is uniform in [0, max_value].

        Args:
            food_count: Number of Food units.
            cell_count: Number of Cells.
            max_value: Top of the number chain.
            energy: Starting energy for every cell.
            rng: Random source override. None = the grid's own.

        Raises:
            CapacityExceededError: If food_count + cell_count > width * height.
            ValueError: If a count is negative.
            InvalidValueError: If max_value or energy are out of range.
        """
        if food_count < 0 or cell_count < 0:
            raise ValueError(
                f"Entity counts must be >= 0, got food={food_count}, cells={cell_count}"
            )
        if food_count + cell_count > self.area:
            raise CapacityExceededError(
                f"Too many entities for grid size: {food_count} food + "
                f"{cell_count} cells > {self.width}x{self.height} = {self.area} tiles"
            )
        if max_value < 0:
            raise InvalidValueError(f"max_value must be >= 0, got {max_value}")
        if energy < 0:
            raise InvalidValueError(f"energy must be >= 0, got {energy}")
        rng = rng if rng is not None else self.rng

        # Built off to the side; the live tiles are only replaced on success
        tiles = self._blank()
        positions = all_positions(self.width, self.height)
        rng.shuffle(positions)

        for x, y in positions[:food_count]:
            tiles[y, x] = Food(value=rng.randint(max_value + 1), max_value=max_value, x=x, y=y)

        for x, y in positions[food_count:food_count + cell_count]:
            tiles[y, x] = Cell(
                value=rng.randint(max_value + 1),
                max_value=max_value,
                energy=energy,
                x=x,
                y=y,
            )

        self._tiles = tiles

        logger.debug(
            "Initialized %dx%d grid with %d food and %d cells (max_value=%d)",
            self.width, self.height, food_count, cell_count, max_value,
        )

    # ------------------------------------------------------------------
    # Tile access
    # ------------------------------------------------------------------

    def get(self, x: int, y: int) -> Entity:
        """Entity at (x, y), or EMPTY when out of range."""
        if not in_bounds(x, y, self.width, self.height):
            return EMPTY
        return self._tiles[y, x]

    def set(self, x: int, y: int, entity: Entity) -> None:
        """
        Place `entity` at (x, y), re-stamping its position.

        Out-of-range coordinates are ignored.
        """
        if not in_bounds(x, y, self.width, self.height):
            return
        if entity.kind is not EntityKind.EMPTY:
            entity.x = x
            entity.y = y
        self._tiles[y, x] = entity

    def adjacent(self, pos: tuple[int, int]) -> list[tuple[int, int]]:
        """In-bounds up/right/down/left neighbours of `pos`."""
        return von_neumann_neighbors(pos[0], pos[1], self.width, self.height)

    # ------------------------------------------------------------------
    # Bulk queries
    # ------------------------------------------------------------------

    def all_cells(self) -> list[Cell]:
        """Every Cell in row-major order."""
        return [e for e in self._tiles.flat if e.kind is EntityKind.CELL]

    def all_food(self) -> list[Food]:
        """Every Food unit in row-major order."""
        return [e for e in self._tiles.flat if e.kind is EntityKind.FOOD]

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def cell_count(self) -> int:
        return len(self.all_cells())

    @property
    def food_count(self) -> int:
        return len(self.all_food())

    @property
    def occupied_count(self) -> int:
        """Number of non-EMPTY tiles."""
        return sum(1 for e in self._tiles.flat if e.kind is not EntityKind.EMPTY)

    @property
    def is_extinct(self) -> bool:
        """True if no cell is left."""
        return not any(e.kind is EntityKind.CELL for e in self._tiles.flat)

    def kind_matrix(self) -> NDArray[np.int8]:
        """
        Copy of the grid as kind codes (0 empty, 1 food, 2 cell), shape (height, width).
        """
        codes = np.zeros((self.height, self.width), dtype=np.int8)
        for y in range(self.height):
            for x in range(self.width):
                codes[y, x] = KIND_CODES[self._tiles[y, x].kind]
        return codes

    def value_matrix(self) -> NDArray[np.int16]:
        """Copy of the grid as entity values, -1 for EMPTY tiles."""
        values = np.full((self.height, self.width), -1, dtype=np.int16)
        for y in range(self.height):
            for x in range(self.width):
                entity = self._tiles[y, x]
                if entity.kind is not EntityKind.EMPTY:
                    values[y, x] = entity.value
        return values

    # ------------------------------------------------------------------
    # Copying
    # ------------------------------------------------------------------

    def clone(self) -> Grid:
        """
        Deep copy of the grid.

        Every entity is rebuilt with the same value, max_value and (for
        cells) energy and id. The clone shares this grid's random source.
        """
        new_grid = Grid(self.width, self.height, rng=self.rng)
        for y in range(self.height):
            for x in range(self.width):
                entity = self._tiles[y, x]
                if entity.kind is EntityKind.CELL:
                    new_grid.set(x, y, Cell(
                        value=entity.value,
                        max_value=entity.max_value,
                        energy=entity.energy,
                        cell_id=entity.id,
                    ))
                elif entity.kind is EntityKind.FOOD:
                    new_grid.set(x, y, Food(value=entity.value, max_value=entity.max_value))
        return new_grid

    def __repr__(self) -> str:
        return (
            f"Grid(size={self.width}x{self.height}, "
            f"cells={self.cell_count}, food={self.food_count})"
        )
