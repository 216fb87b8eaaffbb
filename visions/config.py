"""Configuration for an interactive Mandelbrot view."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DEFAULT_WIDTH = 640
DEFAULT_HEIGHT = 480
DEFAULT_MAX_ITERATIONS = 1000
DEFAULT_X_RANGE = (-2.00, 0.47)
DEFAULT_Y_RANGE = (-1.12, 1.12)

COLORINGS = ("smooth", "histogram")


@dataclass(frozen=True)
class ViewConfig:
    """Startup parameters of a :class:`~visions.controller.MandelbrotView`."""

    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    palette: str = "rainbow"
    coloring: str = "smooth"
    inside_color: Optional[str] = None
    seed: Optional[int] = None
    device: Optional[str] = None

    def __post_init__(self) -> None:
        check_dimensions(self.width, self.height)
        check_max_iterations(self.max_iterations)
        if self.coloring not in COLORINGS:
            raise ValueError(f"Unknown coloring '{self.coloring}'. Valid choices: {', '.join(COLORINGS)}.")


def check_dimensions(width: int, height: int) -> None:
    if int(width) != width or int(height) != height:
        raise ValueError(f"width and height must be integers, got {width!r}x{height!r}.")
    if width <= 0 or height <= 0:
        raise ValueError(f"width and height must be positive, got {width}x{height}.")


def check_max_iterations(max_iterations: int) -> None:
    if int(max_iterations) != max_iterations or max_iterations <= 0:
        raise ValueError(f"max_iterations must be a positive integer, got {max_iterations!r}.")
