"""
Plain-text grid rendering for the command line.

Cells are shown as their number in brackets, food as the bare number,
empty tiles as dots. Every column is padded to the width of max_value.
"""

from __future__ import annotations

from cellchain.core.entities import EntityKind
from cellchain.core.grid import Grid


def render_text(grid: Grid, max_value: int = 9) -> str:
    """
    Render the grid as lines of text, one per row.

    Args:
        grid: Grid to draw.
        max_value: Largest value on the grid (sets column width).

    Returns:
        Multi-line string.
    """
    digits = len(str(max_value))
    lines = []
    for y in range(grid.height):
        tiles = []
        for x in range(grid.width):
            entity = grid.get(x, y)
            if entity.kind is EntityKind.CELL:
                tiles.append(f"[{entity.value:>{digits}}]")
            elif entity.kind is EntityKind.FOOD:
                tiles.append(f" {entity.value:>{digits}} ")
            else:
                tiles.append(" " + "." * digits + " ")
        lines.append("".join(tiles))
    return "\n".join(lines)
