"""Mapping between the pixel grid and the region of the complex plane it shows."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

import numpy as np

from .config import DEFAULT_HEIGHT, DEFAULT_WIDTH, DEFAULT_X_RANGE, DEFAULT_Y_RANGE, check_dimensions


def normalize(n: float, r_min: float, r_max: float, t_min: float, t_max: float) -> float:
    """Linearly remap ``n`` from ``[r_min, r_max]`` onto ``[t_min, t_max]``."""

    return ((n - r_min) / (r_max - r_min)) * (t_max - t_min) + t_min


@dataclass
class Viewport:
    """Rectangle of the complex plane mapped onto a ``width`` x ``height`` grid.

    Pixel ``(0, 0)`` is the top-left corner of the frame and maps to
    ``(x_min, y_min)``.
    """

    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    x_min: float = DEFAULT_X_RANGE[0]
    x_max: float = DEFAULT_X_RANGE[1]
    y_min: float = DEFAULT_Y_RANGE[0]
    y_max: float = DEFAULT_Y_RANGE[1]

    def __post_init__(self) -> None:
        check_dimensions(self.width, self.height)
        if not (self.x_max > self.x_min and self.y_max > self.y_min):
            raise ValueError(
                f"Empty plane region x=[{self.x_min}, {self.x_max}] y=[{self.y_min}, {self.y_max}]."
            )

    @property
    def x_range(self) -> float:
        return self.x_max - self.x_min

    @property
    def y_range(self) -> float:
        return self.y_max - self.y_min

    @property
    def center(self) -> tuple[float, float]:
        return (self.x_min + self.x_max) / 2.0, (self.y_min + self.y_max) / 2.0

    def copy(self) -> "Viewport":
        return replace(self)

    def to_plane(self, px: float, py: float) -> tuple[float, float]:
        """Map pixel ``(px, py)`` to the plane; the last pixel lands on the max bound."""

        if self.width > 1:
            x0 = normalize(px, 0.0, self.width - 1, self.x_min, self.x_max)
        else:
            x0 = self.x_min
        if self.height > 1:
            y0 = normalize(py, 0.0, self.height - 1, self.y_min, self.y_max)
        else:
            y0 = self.y_min
        return x0, y0

    def to_pixel(self, x0: float, y0: float) -> tuple[float, float]:
        px = normalize(x0, self.x_min, self.x_max, 0.0, self.width - 1) if self.width > 1 else 0.0
        py = normalize(y0, self.y_min, self.y_max, 0.0, self.height - 1) if self.height > 1 else 0.0
        return px, py

    def axes(self) -> tuple[np.ndarray, np.ndarray]:
        """Plane coordinates of every column and every row, as used by the evaluator."""

        xs = np.linspace(self.x_min, self.x_max, self.width, dtype=np.float64) if self.width > 1 else np.array([self.x_min], dtype=np.float64)
        ys = np.linspace(self.y_min, self.y_max, self.height, dtype=np.float64) if self.height > 1 else np.array([self.y_min], dtype=np.float64)
        return xs, ys

    def zoom(self, coords: tuple[float, float], factor: float) -> None:
        """Recenter on the pointer position ``coords`` and scale both ranges by ``factor``.

        ``coords`` is a pointer position inside the window, so the full
        ``width``/``height`` is the denominator here. ``factor < 1`` zooms in.
        """

        factor = float(factor)
        if not math.isfinite(factor) or factor <= 0.0:
            raise ValueError(f"zoom factor must be a positive finite number, got {factor!r}.")
        px, py = coords

        x_center = normalize(float(px), 0.0, self.width, self.x_min, self.x_max)
        y_center = normalize(float(py), 0.0, self.height, self.y_min, self.y_max)

        half_x = self.x_range * factor / 2.0
        half_y = self.y_range * factor / 2.0

        self.x_min = x_center - half_x
        self.x_max = x_center + half_x
        self.y_min = y_center - half_y
        self.y_max = y_center + half_y

    def resize(self, width: int, height: int) -> None:
        """Change the pixel size while keeping the plane distance per pixel.

        Growing the window reveals more of the plane, shrinking it crops
        around the current center.
        """

        check_dimensions(width, height)
        x_ratio = width / self.width
        y_ratio = height / self.height

        x_range = abs(self.x_range)
        y_range = abs(self.y_range)

        new_x_range_diff = (x_ratio * x_range) - x_range
        new_y_range_diff = (y_ratio * y_range) - y_range

        self.x_min = self.x_min - new_x_range_diff / 2.0
        self.x_max = self.x_max + new_x_range_diff / 2.0
        self.y_min = self.y_min - new_y_range_diff / 2.0
        self.y_max = self.y_max + new_y_range_diff / 2.0

        self.width = int(width)
        self.height = int(height)

    def reset(self) -> None:
        """Restore the default plane bounds; the pixel size is kept."""

        self.x_min, self.x_max = DEFAULT_X_RANGE
        self.y_min, self.y_max = DEFAULT_Y_RANGE
