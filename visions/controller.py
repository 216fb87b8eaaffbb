"""The interactive Mandelbrot view: commands in, RGBA frames out."""

from __future__ import annotations

import enum
from typing import Optional

import numpy as np

from .compositor import compose_frame
from .config import COLORINGS, ViewConfig, check_max_iterations
from .console import log
from .palette import Palette, build_palette
from .renderer import EscapeTimeEvaluator
from .viewport import Viewport


class Dirty(enum.Flag):
    """Derived artifacts that are stale.

    ``RECALC`` means the iteration field no longer matches the viewport,
    ``REDRAW`` means the frame no longer matches the field or the palette.
    """

    CLEAN = 0
    RECALC = enum.auto()
    REDRAW = enum.auto()


class MandelbrotView:
    """Owns the viewport, iteration field, palette and frame of one view.

    Commands mark what they invalidate; :meth:`draw` rebuilds the field and
    then the frame only when flagged, and copies the result into the
    caller's buffer.
    """

    def __init__(self, config: Optional[ViewConfig] = None, *, evaluator: Optional[EscapeTimeEvaluator] = None):
        self.config = config if config is not None else ViewConfig()
        self.evaluator = evaluator if evaluator is not None else EscapeTimeEvaluator(self.config.device)
        self.rng = np.random.default_rng(self.config.seed)

        self.viewport = Viewport(width=self.config.width, height=self.config.height)
        self.max_iterations = self.config.max_iterations
        self.coloring = self.config.coloring
        self._palette_name = self.config.palette
        self.palette = self._build_palette(self._palette_name)

        self._field: Optional[np.ndarray] = None
        self._frame = np.full((self.viewport.height, self.viewport.width, 4), 0xFF, dtype=np.uint8)
        self._dirty = Dirty.RECALC | Dirty.REDRAW
        self._drawing = False

    @property
    def state(self) -> Dirty:
        return self._dirty

    @property
    def recalc_needed(self) -> bool:
        return bool(self._dirty & Dirty.RECALC)

    @property
    def redraw_needed(self) -> bool:
        return bool(self._dirty & Dirty.REDRAW)

    @property
    def width(self) -> int:
        return self.viewport.width

    @property
    def height(self) -> int:
        return self.viewport.height

    @property
    def field(self) -> Optional[np.ndarray]:
        return self._field

    @property
    def frame(self) -> np.ndarray:
        """The last published frame; read-only."""

        view = self._frame.view()
        view.flags.writeable = False
        return view

    def _build_palette(self, recipe: str) -> Palette:
        return build_palette(
            recipe,
            self.max_iterations,
            rng=self.rng,
            inside_color=self.config.inside_color,
        )

    def _viewport_changed(self) -> None:
        self._dirty |= Dirty.RECALC | Dirty.REDRAW

    def _palette_changed(self) -> None:
        self._dirty |= Dirty.REDRAW

    # Commands

    def zoom(self, coords: tuple[float, float], factor: float) -> None:
        self.viewport.zoom(coords, factor)
        self._viewport_changed()

    def resize(self, width: int, height: int) -> None:
        self.viewport.resize(width, height)
        self._viewport_changed()

    def randomize_palette(self) -> None:
        self.set_palette("random")

    def set_palette(self, recipe: str) -> None:
        self.palette = self._build_palette(recipe)
        self._palette_name = recipe
        self._palette_changed()

    def set_coloring(self, coloring: str) -> None:
        if coloring not in COLORINGS:
            raise ValueError(f"Unknown coloring '{coloring}'. Valid choices: {', '.join(COLORINGS)}.")
        if coloring != self.coloring:
            self.coloring = coloring
            self._palette_changed()

    def set_max_iterations(self, max_iterations: int) -> None:
        check_max_iterations(max_iterations)
        if max_iterations == self.max_iterations:
            return
        previous = self.max_iterations
        self.max_iterations = max_iterations
        try:
            palette = self._build_palette(self._palette_name)
        except ValueError:
            self.max_iterations = previous
            raise
        self.palette = palette
        self._viewport_changed()

    def reset(self) -> None:
        """Default plane bounds and the rainbow palette; the pixel size is kept."""

        self.viewport.reset()
        self.palette = self._build_palette("rainbow")
        self._palette_name = "rainbow"
        self._viewport_changed()

    # Drawing

    def _target(self, output, expected: int) -> np.ndarray:
        try:
            target = np.asarray(memoryview(output))
        except TypeError:
            raise ValueError(f"draw target must support the buffer protocol, got {type(output).__name__}.") from None
        if target.dtype.itemsize != 1 or target.dtype.kind not in "ui":
            raise ValueError(f"draw target must hold bytes, got dtype {target.dtype}.")
        if not target.flags.writeable:
            raise ValueError("draw target is read-only.")
        if target.size != expected:
            raise ValueError(f"draw target holds {target.size} bytes, expected {expected}.")
        return target

    def _rebuild(self) -> None:
        self._drawing = True
        try:
            if self._dirty & Dirty.RECALC:
                snapshot = self.viewport.copy()
                max_iterations = self.max_iterations
                self._dirty &= ~Dirty.RECALC
                try:
                    self._field = self.evaluator(snapshot, max_iterations)
                except BaseException:
                    self._dirty |= Dirty.RECALC
                    raise
                self._dirty |= Dirty.REDRAW

            if self._dirty & Dirty.REDRAW:
                self._dirty &= ~Dirty.REDRAW
                try:
                    frame = compose_frame(self._field, self.palette, self.coloring)
                except BaseException:
                    self._dirty |= Dirty.REDRAW
                    raise
                # Published by reference swap; readers never see a half-written frame.
                self._frame = frame
                log("redrew %dx%d frame" % (frame.shape[1], frame.shape[0]))
        finally:
            self._drawing = False

    def draw(self, output) -> None:
        """Fill ``output`` with the current RGBA8 frame.

        ``output`` must hold ``width * height * 4`` writable bytes. A draw
        issued while a rebuild is running gets the last published frame
        instead, so it is sized to that frame.
        """

        if self._drawing:
            frame = self._frame
            target = self._target(output, frame.size)
        else:
            target = self._target(output, self.width * self.height * 4)
            if self._dirty:
                self._rebuild()
            frame = self._frame
        np.copyto(target, frame.reshape(target.shape).view(target.dtype))
