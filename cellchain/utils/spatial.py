"""
Spatial utilities for the Cell Chain Simulator.

Bounded (non-wrapping) rectangular grid math: bounds checks and the
four orthogonal Von Neumann neighbours. No diagonals, no wraparound.
"""

from __future__ import annotations


# Fixed neighbour order: up, right, down, left
NEIGHBOR_OFFSETS: tuple[tuple[int, int], ...] = (
    (0, -1),
    (1, 0),
    (0, 1),
    (-1, 0),
)


def in_bounds(x: int, y: int, width: int, height: int) -> bool:
    """True if (x, y) lies inside a width x height grid."""
    return 0 <= x < width and 0 <= y < height


def von_neumann_neighbors(
    x: int, y: int,
    width: int, height: int,
) -> list[tuple[int, int]]:
    """
    Enumerate the orthogonal neighbours of (x, y) that lie inside the grid.

    Args:
        x, y: Center position.
        width, height: Grid dimensions.

    Returns:
        Neighbour positions in up, right, down, left order.
    """
    neighbors = []
    for dx, dy in NEIGHBOR_OFFSETS:
        nx, ny = x + dx, y + dy
        if in_bounds(nx, ny, width, height):
            neighbors.append((nx, ny))
    return neighbors


def all_positions(width: int, height: int) -> list[tuple[int, int]]:
    """Every position of the grid in row-major order."""
    return [(x, y) for y in range(height) for x in range(width)]
