"""Utilities for planning animated zoom sequences."""

from __future__ import annotations

from typing import Optional

import numpy as np


def _smoothstep(t: np.ndarray) -> np.ndarray:
    return t * t * (3.0 - 2.0 * t)


EASINGS = {"linear": lambda t: t, "ease": _smoothstep}


def compute_zoom_factors(frames: int, zoom_factor: float, *, final_zoom: Optional[float] = None, easing: str = "ease") -> np.ndarray:
    """Per-frame zoom multipliers for an animation of ``frames`` frames.

    Without ``final_zoom`` every frame scales by ``zoom_factor``. With it, the
    factors multiply out to ``final_zoom`` and the eased progress curve decides
    how much of the total each frame takes; unknown easings fall back to "ease".
    """

    if frames <= 0:
        return np.array([], dtype=np.float64)
    if final_zoom is None or final_zoom <= 0:
        return np.full(frames, float(zoom_factor), dtype=np.float64)

    curve = EASINGS.get(easing.lower(), _smoothstep)
    t = np.linspace(0.0, 1.0, frames) if frames > 1 else np.ones(1)
    progress = np.clip(curve(t), 0.0, 1.0)
    return np.power(float(final_zoom), np.diff(progress, prepend=0.0))


def boundary_mask(field: np.ndarray, max_iterations: int) -> np.ndarray:
    """Pixels where the interior of the set meets escaping points along a column."""

    inside = field >= max_iterations
    return np.logical_xor(np.roll(inside, 1, axis=0), inside)


def select_zoom_center(field: np.ndarray, max_iterations: int) -> np.ndarray:
    """Select a deterministic ``(row, col)`` on the set's boundary near the image center."""

    edges = boundary_mask(field, max_iterations)
    height, width = edges.shape
    center_row = height // 2
    center_col = width // 2

    for radius in range(max(height, width)):
        row_start = max(center_row - radius, 0)
        row_end = min(center_row + radius + 1, height)
        col_start = max(center_col - radius, 0)
        col_end = min(center_col + radius + 1, width)
        region = edges[row_start:row_end, col_start:col_end]
        if np.any(region):
            indices = np.argwhere(region)
            indices[:, 0] += row_start
            indices[:, 1] += col_start
            return _closest_to_center(indices, edges.shape)

    return np.array([center_row, center_col], dtype=np.int64)


def _closest_to_center(edge_indices: np.ndarray, shape: tuple[int, int]) -> np.ndarray:
    center = np.array([(shape[0] - 1) / 2.0, (shape[1] - 1) / 2.0], dtype=np.float64)
    indices = edge_indices.astype(np.float64, copy=False)
    distances = np.sum((indices - center) ** 2, axis=1)
    return edge_indices[int(np.argmin(distances))]


def pixel_to_pointer(row: int, col: int, width: int, height: int) -> tuple[float, float]:
    """Pointer position whose zoom center is the plane point of pixel ``(row, col)``."""

    px = col * width / (width - 1) if width > 1 else 0.0
    py = row * height / (height - 1) if height > 1 else 0.0
    return float(px), float(py)
