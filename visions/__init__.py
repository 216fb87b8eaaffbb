"""Public API for the interactive Mandelbrot view."""

from .console import cli_requested_verbose as _cli_requested_verbose
from .console import quiet_tensorflow as _quiet_tensorflow

# Has to happen before TensorFlow is first imported.
_quiet_tensorflow(_cli_requested_verbose())

from .config import ViewConfig
from .viewport import Viewport, normalize
from .renderer import EscapeTimeEvaluator, compute_field, escape_time, evaluate_pixel, select_device
from .palette import ColorGradient, Palette, build_palette, rainbow_stops, random_stops
from .compositor import compose_frame
from .controller import Dirty, MandelbrotView
from .planner import compute_zoom_factors, select_zoom_center

__all__ = [
    "ColorGradient",
    "Dirty",
    "EscapeTimeEvaluator",
    "MandelbrotView",
    "Palette",
    "ViewConfig",
    "Viewport",
    "build_palette",
    "compose_frame",
    "compute_field",
    "compute_zoom_factors",
    "escape_time",
    "evaluate_pixel",
    "normalize",
    "rainbow_stops",
    "random_stops",
    "select_device",
    "select_zoom_center",
]
