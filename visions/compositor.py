"""Turn iteration fields into RGBA8 frames."""

from __future__ import annotations

import numpy as np

from .config import COLORINGS
from .palette import Palette


def smooth_coordinates(field: np.ndarray, max_iterations: int) -> np.ndarray:
    return field


def histogram_coordinates(field: np.ndarray, max_iterations: int) -> np.ndarray:
    """Equalize escaped pixels so each palette band covers a similar share of the frame.

    Escaped values are ranked through the cumulative histogram of their integer
    escape counts, interpolating inside a bin by the fractional part, and
    spread over ``[0, max_iterations - 1]``. Interior pixels keep
    ``max_iterations``.
    """

    coords = np.full(field.shape, float(max_iterations), dtype=np.float64)
    escaped = field < max_iterations
    if not np.any(escaped):
        return coords

    values = field[escaped]
    counts = np.floor(values).astype(np.int64)
    histogram = np.bincount(counts, minlength=max_iterations)
    cumulative = np.cumsum(histogram).astype(np.float64)
    total = cumulative[-1]

    below = cumulative[counts] - histogram[counts]
    ranked = (below + histogram[counts] * (values - counts)) / total
    coords[escaped] = np.clip(ranked, 0.0, 1.0) * (max_iterations - 1)
    return coords


_STRATEGIES = {
    "smooth": smooth_coordinates,
    "histogram": histogram_coordinates,
}


def compose_frame(field: np.ndarray, palette: Palette, coloring: str = "smooth") -> np.ndarray:
    """RGBA8 frame of shape ``(height, width, 4)`` for ``field`` colored with ``palette``."""

    if coloring not in _STRATEGIES:
        raise ValueError(f"Unknown coloring '{coloring}'. Valid choices: {', '.join(COLORINGS)}.")

    coords = _STRATEGIES[coloring](field, palette.max_iterations)
    rgb = palette.color_at(coords)

    rgba = np.empty(field.shape + (4,), dtype=np.uint8)
    rgba[..., :3] = np.uint8(np.clip(rgb * 255, 0, 255))
    rgba[..., 3] = 255
    return rgba
