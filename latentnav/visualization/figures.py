"""Plotly map figure: training scatter on the bound axes plus the selection marker."""

from typing import Optional, Tuple

import pandas as pd
import plotly.graph_objects as go

from latentnav.data.training import component_column


def create_map_figure(
    training_df: pd.DataFrame,
    x_index: int,
    y_index: int,
    range_x: float,
    range_y: float,
    size: int = 600,
    marker: Optional[Tuple[float, float]] = None,
) -> go.Figure:
    """Create the square map figure for the current axis binding.

    Args:
        training_df: Training scatter (columns c0..cN)
        x_index: Component on the horizontal axis
        y_index: Component on the vertical axis
        range_x: Half-range shown horizontally
        range_y: Half-range shown vertically
        size: Figure side in pixels (must match the coordinate mapper)
        marker: Current exact selection (x, y), drawn as a red cross

    Returns:
        Plotly Figure object
    """
    fig = go.Figure()

    x_col, y_col = component_column(x_index), component_column(y_index)
    if not training_df.empty and x_col in training_df.columns and y_col in training_df.columns:
        fig.add_trace(go.Scatter(
            x=training_df[x_col].tolist(),
            y=training_df[y_col].tolist(),
            mode="markers",
            marker=dict(color="#2ecc71", opacity=0.6, size=6),
            hoverinfo="none",
            name="training",
        ))

    if marker is not None:
        fig.add_trace(go.Scatter(
            x=[marker[0]],
            y=[marker[1]],
            mode="markers",
            marker=dict(color="red", size=15, symbol="x", line=dict(width=3, color="white")),
            hoverinfo="none",
            name="selection",
        ))

    # Zero margins and fixed ranges so pixel offsets map straight onto the axes
    fig.update_layout(
        width=size,
        height=size,
        showlegend=False,
        hovermode=False,
        dragmode=False,
        margin=dict(l=0, r=0, t=0, b=0),
        xaxis=dict(range=[-range_x, range_x], fixedrange=True, visible=False),
        yaxis=dict(range=[-range_y, range_y], fixedrange=True, visible=False),
        plot_bgcolor="white",
        paper_bgcolor="white",
    )
    return fig
