"""
Grid entities for the Cell Chain Simulator.

Every grid tile holds exactly one entity:
  - EMPTY: the shared "nothing here" tile
  - Food: a numbered food unit
  - Cell: a numbered living cell with an energy countdown

Entities form a closed tagged variant discriminated by `EntityKind`.
All eating decisions go through the cyclic number-chain rule implemented
by `can_consume()` and `left_behind_value()`.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import ClassVar, Union


class InvalidValueError(ValueError):
    """Raised when an entity is built with a value outside [0, max_value]."""


class EntityKind(Enum):
    """Discriminator for the three tile variants."""
    EMPTY = auto()
    FOOD = auto()
    CELL = auto()


# ---------------------------------------------------------------------------
# Number-chain rule
# ---------------------------------------------------------------------------

def can_consume(value: int, food_value: int, max_value: int) -> bool:
    """
    Check whether an entity of `value` may eat one of `food_value`.

    An eater consumes the value one below its own, with 0 wrapping to
    eat `max_value`.

    Args:
        value: Value of the eating cell.
        food_value: Value of the Food or Cell being considered.
        max_value: Largest value in the chain (modulus is max_value + 1).

    Returns:
        True if the target is edible.
    """
    modulus = max_value + 1
    return food_value == (value - 1 + modulus) % modulus


def left_behind_value(value: int, max_value: int) -> int:
    """Value deposited on the tile a cell of `value` leaves when it eats."""
    return (value + 1) % (max_value + 1)


def _check_value(value: int, max_value: int) -> None:
    if max_value < 0:
        raise InvalidValueError(f"max_value must be >= 0, got {max_value}")
    if not (0 <= value <= max_value):
        raise InvalidValueError(
            f"value must be between 0 and {max_value}, got {value}"
        )


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------

class Empty:
    """An unoccupied tile. Use the module-level `EMPTY` instance."""

    __slots__ = ()
    kind: ClassVar[EntityKind] = EntityKind.EMPTY

    def __repr__(self) -> str:
        return "EMPTY"


EMPTY = Empty()


class Food:
    """
    A food unit on the grid.

    Attributes:
        value: Number in [0, max_value] that cells match against.
        max_value: Top of the number chain this food belongs to (read-only).
        x: Grid x-coordinate (re-stamped by Grid.set).
        y: Grid y-coordinate (re-stamped by Grid.set).
    """

    __slots__ = ("value", "_max_value", "x", "y")

    kind: ClassVar[EntityKind] = EntityKind.FOOD

    def __init__(self, value: int, max_value: int, x: int = 0, y: int = 0):
        _check_value(value, max_value)
        self.value = value
        self._max_value = max_value
        self.x = x
        self.y = y

    @property
    def max_value(self) -> int:
        return self._max_value

    @property
    def position(self) -> tuple[int, int]:
        """Grid position as (x, y) tuple."""
        return (self.x, self.y)

    def __repr__(self) -> str:
        return f"Food(value={self.value}/{self.max_value}, pos=({self.x},{self.y}))"


# Unique ID counter for cells
_next_cell_id: int = 0


def _get_next_id() -> int:
    """Generate a globally unique cell ID."""
    global _next_cell_id
    cid = _next_cell_id
    _next_cell_id += 1
    return cid


def _claim_id(cell_id: int) -> int:
    """Reserve an explicit ID so later generated IDs never collide with it."""
    global _next_cell_id
    _next_cell_id = max(_next_cell_id, cell_id + 1)
    return cell_id


def reset_cell_id_counter() -> None:
    """Reset the ID counter (useful for tests)."""
    global _next_cell_id
    _next_cell_id = 0


class Cell:
    """
    A living cell on the grid.

    The cell's `id` is a stable handle assigned at creation. The engine
    uses it to tell whether the occupant of a tile is still the same cell
    and whether a cell was eaten earlier in the current tick.

    Attributes:
        id: Unique identifier.
        value: Number in [0, max_value]; decides what this cell can eat.
        max_value: Top of the number chain (read-only).
        energy: Ticks left before starvation when dying is enabled.
        x: Current x-coordinate on the grid.
        y: Current y-coordinate on the grid.
    """

    __slots__ = ("id", "value", "_max_value", "energy", "x", "y")

    kind: ClassVar[EntityKind] = EntityKind.CELL

    def __init__(
        self,
        value: int,
        max_value: int,
        energy: int,
        x: int = 0,
        y: int = 0,
        cell_id: int | None = None,
    ):
        """
        Create a cell.

        Args:
            value: Cell number in [0, max_value].
            max_value: Top of the number chain.
            energy: Starting energy (>= 0).
            x, y: Initial grid position.
            cell_id: Explicit id (cloning, snapshot loading). Reserved so
                generated ids skip it. None = next free id.

        Raises:
            InvalidValueError: If value, max_value or energy are out of range.
        """
        _check_value(value, max_value)
        if energy < 0:
            raise InvalidValueError(f"energy must be >= 0, got {energy}")
        self.id = _get_next_id() if cell_id is None else _claim_id(cell_id)
        self.value = value
        self._max_value = max_value
        self.energy = energy
        self.x = x
        self.y = y

    @property
    def max_value(self) -> int:
        return self._max_value

    @property
    def position(self) -> tuple[int, int]:
        """Current grid position."""
        return (self.x, self.y)

    @property
    def is_alive(self) -> bool:
        return self.energy > 0

    def can_consume(self, other_value: int) -> bool:
        """Whether this cell may eat a Food or Cell numbered `other_value`."""
        return can_consume(self.value, other_value, self._max_value)

    def left_behind_value(self) -> int:
        """Value of the entity this cell leaves on its origin tile after eating."""
        return left_behind_value(self.value, self._max_value)

    def drain(self) -> int:
        """Decrement energy by one, floored at zero. Returns the new energy."""
        self.energy = max(0, self.energy - 1)
        return self.energy

    def __repr__(self) -> str:
        return (
            f"Cell(id={self.id}, value={self.value}/{self._max_value}, "
            f"energy={self.energy}, pos=({self.x},{self.y}))"
        )


Entity = Union[Empty, Food, Cell]
