"""Training-point scatter as a DataFrame (one column per latent component)."""

from typing import Sequence

import pandas as pd


def component_column(index: int) -> str:
    return f"c{index}"


def training_frame(vectors: Sequence[Sequence[float]], latent_dim: int) -> pd.DataFrame:
    """Build the background scatter table.

    Vectors longer than latent_dim are truncated and shorter ones padded
    with zeros, so any component can be plotted against any other.
    """
    columns = [component_column(i) for i in range(latent_dim)]
    rows = []
    for vec in vectors:
        row = [float(v) for v in list(vec)[:latent_dim]]
        row += [0.0] * (latent_dim - len(row))
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)
