"""
2D Grid View component for the Cell Chain Simulator UI.

Renders the grid as one Plotly heatmap coloured by tile kind:
  - Food tiles green, annotated with their value
  - Cells blue, annotated with their value
  - Empty tiles light grey and blank
"""

from typing import Optional

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from cellchain.core.entities import EntityKind
from cellchain.core.grid import KIND_CODES, Grid


def render_grid(
    grid: Grid,
    title: Optional[str] = None,
    tick: Optional[int] = None,
    width: int = 650,
    height: int = 650,
) -> go.Figure:
    """
    Render a snapshot of the grid.

    Args:
        grid: Grid to draw (read through its matrix copies only).
        title: Optional chart title.
        tick: Tick number shown in the default title.
        width: Plot width in pixels.
        height: Plot height in pixels.

    Returns:
        Plotly figure.
    """
    kinds = grid.kind_matrix()
    values = grid.value_matrix()

    if title is None:
        title = f"Grid ({grid.width}×{grid.height})"
        if tick is not None:
            title += f" | Tick {tick}"

    text = np.where(values >= 0, values.astype(str), "")

    fig = go.Figure()
    fig.add_trace(go.Heatmap(
        z=kinds,
        text=text,
        texttemplate="%{text}",
        colorscale=[
            [0.0, "#f4f4f4"],
            [0.5, "#2ecc71"],
            [1.0, "#3498db"],
        ],
        zmin=0, zmax=KIND_CODES[EntityKind.CELL],
        showscale=False,
        xgap=1, ygap=1,
        hovertemplate="(%{x}, %{y}) value %{text}<extra></extra>",
    ))

    fig.update_layout(
        title=title,
        width=width,
        height=height,
        xaxis=dict(showgrid=False, zeroline=False, constrain="domain", title="X"),
        yaxis=dict(showgrid=False, zeroline=False, autorange="reversed",
                   scaleanchor="x", scaleratio=1, title="Y"),
        template="plotly_white",
        margin=dict(l=40, r=40, t=60, b=40),
    )
    return fig


def population_frame(history: list[dict]) -> pd.DataFrame:
    """Cell and food counts per tick, indexed by tick, for line charts."""
    df = pd.DataFrame(history, columns=["tick", "cell_count", "food_count"])
    return df.set_index("tick").rename(columns={"cell_count": "Cells", "food_count": "Food"})
