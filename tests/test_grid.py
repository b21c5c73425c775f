"""
Unit tests for the Grid.

Tests cover:
- Construction and bounded get/set (out of range is a no-op / EMPTY)
- Position re-stamping on placement
- Adjacency
- Bulk queries in row-major order
- Random initialization (counts, distinct tiles, value ranges, capacity)
- Deep cloning
- Matrix views for rendering
"""

import numpy as np
import pytest

from cellchain.core.entities import (
    EMPTY,
    Cell,
    EntityKind,
    Food,
    InvalidValueError,
    reset_cell_id_counter,
)
from cellchain.core.grid import CapacityExceededError, Grid
from cellchain.core.rng import NumpyRandomSource, ScriptedRandomSource


@pytest.fixture(autouse=True)
def reset_ids():
    reset_cell_id_counter()
    yield
    reset_cell_id_counter()


@pytest.fixture
def grid() -> Grid:
    return Grid(4, 3, rng=NumpyRandomSource(seed=42))


# ---------------------------------------------------------------------------
# Construction / access
# ---------------------------------------------------------------------------

class TestGridAccess:
    def test_starts_empty(self, grid):
        assert grid.width == 4
        assert grid.height == 3
        assert grid.occupied_count == 0
        assert grid.get(0, 0) is EMPTY

    def test_invalid_dimensions_raise(self):
        with pytest.raises(ValueError):
            Grid(0, 5)
        with pytest.raises(ValueError):
            Grid(5, -1)

    def test_out_of_range_get_returns_empty(self, grid):
        grid.set(3, 2, Food(value=1, max_value=9))
        assert grid.get(-1, 0) is EMPTY
        assert grid.get(0, -1) is EMPTY
        assert grid.get(4, 0) is EMPTY
        assert grid.get(0, 3) is EMPTY
        assert grid.get(100, 100) is EMPTY

    def test_negative_index_does_not_wrap(self, grid):
        """(-1, -1) must not alias the bottom-right tile."""
        grid.set(3, 2, Cell(value=1, max_value=9, energy=1))
        assert grid.get(-1, -1) is EMPTY

    def test_out_of_range_set_is_noop(self, grid):
        grid.set(10, 10, Food(value=1, max_value=9))
        grid.set(-1, 0, Food(value=1, max_value=9))
        assert grid.occupied_count == 0

    def test_set_stamps_position(self, grid):
        cell = Cell(value=1, max_value=9, energy=1)
        grid.set(2, 1, cell)
        assert cell.position == (2, 1)
        grid.set(0, 2, cell)
        assert cell.position == (0, 2)

    def test_set_empty_clears_tile(self, grid):
        grid.set(1, 1, Food(value=1, max_value=9))
        grid.set(1, 1, EMPTY)
        assert grid.get(1, 1) is EMPTY

    def test_adjacent(self, grid):
        assert grid.adjacent((0, 0)) == [(1, 0), (0, 1)]
        assert grid.adjacent((1, 1)) == [(1, 0), (2, 1), (1, 2), (0, 1)]

    def test_repr(self, grid):
        assert "4x3" in repr(grid)


# ---------------------------------------------------------------------------
# Bulk queries
# ---------------------------------------------------------------------------

class TestBulkQueries:
    def test_all_cells_row_major(self, grid):
        a = Cell(value=1, max_value=9, energy=1)
        b = Cell(value=2, max_value=9, energy=1)
        c = Cell(value=3, max_value=9, energy=1)
        grid.set(3, 2, a)
        grid.set(0, 1, b)
        grid.set(2, 0, c)
        assert [cell.value for cell in grid.all_cells()] == [3, 2, 1]

    def test_all_food_excludes_cells(self, grid):
        grid.set(0, 0, Food(value=4, max_value=9))
        grid.set(1, 0, Cell(value=5, max_value=9, energy=1))
        food = grid.all_food()
        assert len(food) == 1
        assert food[0].value == 4

    def test_counts(self, grid):
        grid.set(0, 0, Food(value=4, max_value=9))
        grid.set(1, 0, Cell(value=5, max_value=9, energy=1))
        assert grid.food_count == 1
        assert grid.cell_count == 1
        assert grid.occupied_count == 2
        assert grid.is_extinct is False

    def test_empty_grid_is_extinct(self, grid):
        assert grid.is_extinct is True


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

class TestInitialize:
    def test_counts(self, grid):
        grid.initialize(food_count=5, cell_count=4, max_value=9, energy=3)
        assert grid.food_count == 5
        assert grid.cell_count == 4
        assert grid.occupied_count == 9

    def test_values_and_energy(self, grid):
        grid.initialize(food_count=6, cell_count=6, max_value=4, energy=7)
        for food in grid.all_food():
            assert 0 <= food.value <= 4
            assert food.max_value == 4
        for cell in grid.all_cells():
            assert 0 <= cell.value <= 4
            assert cell.max_value == 4
            assert cell.energy == 7

    def test_positions_match_slots(self, grid):
        grid.initialize(food_count=4, cell_count=4)
        for y in range(grid.height):
            for x in range(grid.width):
                entity = grid.get(x, y)
                if entity.kind is not EntityKind.EMPTY:
                    assert entity.position == (x, y)

    def test_fill_entire_grid(self, grid):
        grid.initialize(food_count=6, cell_count=6)
        assert grid.occupied_count == 12

    def test_capacity_exceeded(self):
        g = Grid(3, 3)
        with pytest.raises(CapacityExceededError):
            g.initialize(food_count=5, cell_count=5)

    def test_capacity_error_leaves_grid_untouched(self, grid):
        grid.initialize(food_count=2, cell_count=2)
        before = grid.value_matrix()
        with pytest.raises(CapacityExceededError):
            grid.initialize(food_count=10, cell_count=10)
        np.testing.assert_array_equal(grid.value_matrix(), before)

    def test_invalid_energy_leaves_grid_untouched(self, grid):
        grid.initialize(food_count=3, cell_count=1)
        before_kinds = grid.kind_matrix()
        before_values = grid.value_matrix()
        with pytest.raises(InvalidValueError):
            grid.initialize(food_count=3, cell_count=1, energy=-1)
        np.testing.assert_array_equal(grid.kind_matrix(), before_kinds)
        np.testing.assert_array_equal(grid.value_matrix(), before_values)
        assert grid.occupied_count == 4

    def test_negative_max_value_raises_invalid_value(self, grid):
        with pytest.raises(InvalidValueError):
            grid.initialize(food_count=1, cell_count=0, max_value=-1)
        assert grid.occupied_count == 0

    def test_negative_count_raises(self, grid):
        with pytest.raises(ValueError):
            grid.initialize(food_count=-1, cell_count=1)

    def test_invalid_energy_raises(self, grid):
        with pytest.raises(InvalidValueError):
            grid.initialize(food_count=0, cell_count=1, energy=-3)

    def test_reinitialize_clears(self, grid):
        grid.initialize(food_count=8, cell_count=4)
        grid.initialize(food_count=1, cell_count=1)
        assert grid.occupied_count == 2

    def test_same_seed_same_layout(self):
        a = Grid(6, 6, rng=NumpyRandomSource(seed=9))
        b = Grid(6, 6, rng=NumpyRandomSource(seed=9))
        a.initialize(10, 5)
        b.initialize(10, 5)
        np.testing.assert_array_equal(a.kind_matrix(), b.kind_matrix())
        np.testing.assert_array_equal(a.value_matrix(), b.value_matrix())

    def test_rng_override(self):
        """An explicit rng replaces the grid's own for that call."""
        g = Grid(2, 1, rng=NumpyRandomSource(seed=0))
        g.initialize(food_count=1, cell_count=1, max_value=9, rng=ScriptedRandomSource([0]))
        # Shuffle [(0,0), (1,0)] with j=0 -> [(1,0), (0,0)]; all values 0
        assert g.get(1, 0).kind is EntityKind.FOOD
        assert g.get(0, 0).kind is EntityKind.CELL
        assert g.get(0, 0).value == 0


# ---------------------------------------------------------------------------
# Cloning
# ---------------------------------------------------------------------------

class TestClone:
    def test_clone_preserves_contents(self, grid):
        grid.initialize(food_count=4, cell_count=3, max_value=9, energy=5)
        grid.all_cells()[0].energy = 2
        copy = grid.clone()
        np.testing.assert_array_equal(copy.kind_matrix(), grid.kind_matrix())
        np.testing.assert_array_equal(copy.value_matrix(), grid.value_matrix())
        assert [c.energy for c in copy.all_cells()] == [c.energy for c in grid.all_cells()]
        assert [c.id for c in copy.all_cells()] == [c.id for c in grid.all_cells()]
        assert [c.max_value for c in copy.all_cells()] == [c.max_value for c in grid.all_cells()]

    def test_clone_is_deep(self, grid):
        cell = Cell(value=3, max_value=9, energy=4)
        grid.set(1, 1, cell)
        copy = grid.clone()
        copied = copy.get(1, 1)
        assert copied is not cell
        copied.energy = 1
        copy.set(0, 0, Food(value=1, max_value=9))
        assert cell.energy == 4
        assert grid.get(0, 0) is EMPTY


# ---------------------------------------------------------------------------
# Matrix views
# ---------------------------------------------------------------------------

class TestMatrices:
    def test_kind_matrix(self, grid):
        grid.set(0, 0, Food(value=4, max_value=9))
        grid.set(3, 2, Cell(value=5, max_value=9, energy=1))
        kinds = grid.kind_matrix()
        assert kinds.shape == (3, 4)
        assert kinds[0, 0] == 1
        assert kinds[2, 3] == 2
        assert kinds.sum() == 3

    def test_value_matrix(self, grid):
        grid.set(1, 0, Food(value=4, max_value=9))
        values = grid.value_matrix()
        assert values[0, 1] == 4
        assert values[0, 0] == -1
