"""Color gradients and the iteration-indexed palettes built from them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np
from matplotlib import colormaps as _mpl_colormaps
from matplotlib.colors import to_rgb

from .config import check_max_iterations
from .console import log

RED = (1.0, 0.0, 0.0)
GREEN = (0.0, 1.0, 0.0)
BLUE = (0.0, 0.0, 1.0)

# Relative weights; only their spacing matters.
RAINBOW_POSITIONS = (0.0, 1.5, 5.0, 8.5, 10.0)
RANDOM_POSITIONS = (0.0, 1.0, 2.5, 5.0, 10.0)

BUILTIN_RECIPES = ("rainbow", "random")

ColorLike = Union[str, Sequence[float]]


class ColorGradient:
    """Piecewise-linear gradient through ``(position, color)`` stops.

    Positions must be non-decreasing but are otherwise arbitrary; queries
    outside the first or last stop clamp to that stop's color.
    """

    def __init__(self, stops: Sequence[tuple[float, ColorLike]]):
        if len(stops) < 2:
            raise ValueError("A gradient needs at least two stops.")
        positions = np.array([float(position) for position, _ in stops], dtype=np.float64)
        if np.any(np.diff(positions) < 0):
            raise ValueError("Gradient stop positions must be non-decreasing.")
        if positions[-1] <= positions[0]:
            raise ValueError("Gradient stops must span a non-empty domain.")
        self.positions = positions
        self.colors = np.array([to_rgb(color) for _, color in stops], dtype=np.float64)

    @property
    def domain(self) -> tuple[float, float]:
        return float(self.positions[0]), float(self.positions[-1])

    def at_position(self, position) -> np.ndarray:
        """Color at ``position`` in stop coordinates; arrays get a trailing RGB axis."""

        position = np.asarray(position, dtype=np.float64)
        channels = [np.interp(position, self.positions, self.colors[:, k]) for k in range(3)]
        return np.stack(channels, axis=-1)

    def at(self, t) -> np.ndarray:
        """Color at the normalized position ``t`` in ``[0, 1]`` across the stop domain."""

        start, end = self.domain
        return self.at_position(start + np.asarray(t, dtype=np.float64) * (end - start))

    def sample(self, count: int) -> np.ndarray:
        return self.at(np.linspace(0.0, 1.0, count, dtype=np.float64))


def rainbow_stops() -> list[tuple[float, tuple[float, float, float]]]:
    colors = (RED, GREEN, BLUE, GREEN, RED)
    return list(zip(RAINBOW_POSITIONS, colors))


def random_stops(rng: np.random.Generator) -> list[tuple[float, tuple[float, float, float]]]:
    """Stops at fixed positions whose channels are drawn uniformly from ``[0, 1)``."""

    channels = rng.random((len(RANDOM_POSITIONS), 3))
    return [(position, tuple(float(c) for c in rgb)) for position, rgb in zip(RANDOM_POSITIONS, channels)]


@dataclass(frozen=True, eq=False)
class Palette:
    """Lookup table of ``max_iterations + 1`` RGB colors in ``[0, 1]``.

    Index ``max_iterations`` is the color of points that never escape.
    """

    name: str
    colors: np.ndarray

    @property
    def max_iterations(self) -> int:
        return len(self.colors) - 1

    @property
    def inside_color(self) -> np.ndarray:
        return self.colors[-1]

    def __len__(self) -> int:
        return len(self.colors)

    def color_at(self, value) -> np.ndarray:
        """Interpolate between neighbouring entries for a smoothed iteration value."""

        value = np.clip(np.asarray(value, dtype=np.float64), 0.0, float(self.max_iterations))
        index = np.clip(np.floor(value).astype(np.int64), 0, self.max_iterations - 1)
        fraction = (value - index)[..., np.newaxis]
        return self.colors[index] * (1.0 - fraction) + self.colors[index + 1] * fraction


def gradient_for(recipe: str, rng: Optional[np.random.Generator] = None) -> ColorGradient:
    if recipe == "rainbow":
        return ColorGradient(rainbow_stops())
    if recipe == "random":
        return ColorGradient(random_stops(rng if rng is not None else np.random.default_rng()))
    raise ValueError(f"'{recipe}' is not a gradient recipe. Valid choices: {', '.join(BUILTIN_RECIPES)}.")


def build_palette(
    recipe: str,
    max_iterations: int,
    *,
    rng: Optional[np.random.Generator] = None,
    inside_color: Optional[ColorLike] = None,
) -> Palette:
    """Sample ``recipe`` at ``max_iterations + 1`` evenly spaced points.

    ``recipe`` is ``"rainbow"``, ``"random"`` (drawn from ``rng``) or the name
    of a matplotlib colormap. ``inside_color`` overrides the last entry.
    """

    check_max_iterations(max_iterations)
    count = max_iterations + 1

    if recipe in BUILTIN_RECIPES:
        colors = gradient_for(recipe, rng).sample(count)
    else:
        try:
            cmap = _mpl_colormaps[recipe]
        except KeyError:
            raise ValueError(
                f"Unknown palette '{recipe}'. Use {', '.join(BUILTIN_RECIPES)} or a matplotlib colormap name."
            ) from None
        colors = np.array(cmap(np.linspace(0.0, 1.0, count))[:, :3], dtype=np.float64)

    if inside_color is not None:
        colors[-1] = to_rgb(inside_color)

    log("built %s palette with %d entries" % (recipe, count))
    return Palette(name=recipe, colors=colors)
