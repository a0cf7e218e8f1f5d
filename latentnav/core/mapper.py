"""Pixel <-> latent-axis conversion for the square map viewport."""

from typing import Tuple


class CoordinateMapper:
    """Maps pointer positions on an S x S viewport to latent coordinates.

    The viewport spans [-rx, rx] horizontally and [-ry, ry] vertically.
    Pixel y grows downward while latent y grows upward, so the vertical
    axis is inverted. No clamping: positions outside the plot still map
    to valid coordinates. Hover and click both go through this class so
    the preview and the committed point always agree.
    """

    def __init__(self, size: float):
        if size <= 0:
            raise ValueError(f"Viewport size must be positive, got {size}")
        self.size = float(size)

    def to_latent(self, pixel_x: float, pixel_y: float, rx: float, ry: float) -> Tuple[float, float]:
        """Convert a pixel position to (x, y) on the bound latent axes."""
        x = (pixel_x / self.size) * (2 * rx) - rx
        y = -((pixel_y / self.size) * (2 * ry) - ry)
        return x, y

    def to_pixel(self, x: float, y: float, rx: float, ry: float) -> Tuple[float, float]:
        """Inverse of to_latent for the same size and ranges."""
        pixel_x = (x + rx) / (2 * rx) * self.size
        pixel_y = (ry - y) / (2 * ry) * self.size
        return pixel_x, pixel_y

    def __repr__(self) -> str:
        return f"CoordinateMapper(size={self.size})"
