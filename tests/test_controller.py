import numpy as np
import pytest

from visions.config import DEFAULT_X_RANGE, DEFAULT_Y_RANGE, ViewConfig
from visions.controller import Dirty, MandelbrotView
from visions.renderer import EscapeTimeEvaluator


def small_view(**overrides):
    options = dict(width=32, height=24, max_iterations=40, seed=5)
    options.update(overrides)
    return MandelbrotView(ViewConfig(**options))


def frame_bytes(view):
    buffer = bytearray(view.width * view.height * 4)
    view.draw(buffer)
    return bytes(buffer)


def test_starts_fully_dirty():
    view = small_view()
    assert view.state == Dirty.RECALC | Dirty.REDRAW
    assert view.recalc_needed and view.redraw_needed
    assert view.field is None


def test_draw_twice_is_identical_and_computes_once():
    view = small_view()
    first = frame_bytes(view)
    assert view.evaluator.passes == 1
    assert view.state == Dirty.CLEAN

    second = frame_bytes(view)
    assert first == second
    assert view.evaluator.passes == 1


def test_zoom_marks_recalc_and_redraw():
    view = small_view()
    frame_bytes(view)
    view.zoom((16, 12), 0.5)
    assert view.state == Dirty.RECALC | Dirty.REDRAW
    frame_bytes(view)
    assert view.evaluator.passes == 2
    assert view.state == Dirty.CLEAN


def test_palette_change_only_redraws():
    view = small_view()
    before = frame_bytes(view)
    field = view.field

    view.randomize_palette()
    assert view.state == Dirty.REDRAW
    after = frame_bytes(view)

    assert view.evaluator.passes == 1
    assert view.field is field
    assert before != after


def test_coloring_change_only_redraws():
    view = small_view()
    frame_bytes(view)
    view.set_coloring("histogram")
    assert view.state == Dirty.REDRAW
    view.set_coloring("histogram")
    frame_bytes(view)
    assert view.evaluator.passes == 1
    with pytest.raises(ValueError):
        view.set_coloring("banded")
    assert view.state == Dirty.CLEAN


def test_resize_reallocates_frame():
    view = small_view()
    frame_bytes(view)
    view.resize(40, 10)
    assert view.state == Dirty.RECALC | Dirty.REDRAW
    with pytest.raises(ValueError):
        view.draw(bytearray(32 * 24 * 4))
    data = frame_bytes(view)
    assert len(data) == 40 * 10 * 4
    assert view.field.shape == (10, 40)
    assert view.frame.shape == (10, 40, 4)


def bounds(view):
    return (view.viewport.x_min, view.viewport.x_max, view.viewport.y_min, view.viewport.y_max)


@pytest.mark.parametrize("size", [(32, 24), (800, 600)])
def test_views_of_any_size_start_on_the_default_bounds(size):
    view = small_view(width=size[0], height=size[1])
    assert bounds(view) == (*DEFAULT_X_RANGE, *DEFAULT_Y_RANGE)


def test_small_view_shows_both_escaping_and_interior_points():
    view = small_view()
    frame_bytes(view)
    assert np.any(view.field == view.max_iterations)
    assert np.any(view.field < view.max_iterations)


def test_reset_restores_viewport_and_rainbow_palette():
    view = small_view(palette="viridis")
    view.resize(50, 20)
    view.zoom((3, 4), 0.25)
    view.reset()
    assert view.state == Dirty.RECALC | Dirty.REDRAW
    assert view.palette.name == "rainbow"
    assert bounds(view) == (*DEFAULT_X_RANGE, *DEFAULT_Y_RANGE)
    assert (view.width, view.height) == (50, 20)


def test_set_max_iterations_rebuilds_palette_and_field():
    view = small_view()
    frame_bytes(view)
    view.set_max_iterations(80)
    assert len(view.palette) == 81
    assert view.state == Dirty.RECALC | Dirty.REDRAW
    frame_bytes(view)
    assert view.field.max() <= 80
    assert view.evaluator.passes == 2


def test_invalid_commands_leave_state_untouched():
    view = small_view()
    frame_bytes(view)
    before = (view.viewport.x_min, view.viewport.x_max)
    with pytest.raises(ValueError):
        view.zoom((1, 1), 0.0)
    with pytest.raises(ValueError):
        view.resize(0, 10)
    with pytest.raises(ValueError):
        view.set_max_iterations(-3)
    with pytest.raises(ValueError):
        view.set_palette("not-a-colormap")
    assert view.state == Dirty.CLEAN
    assert (view.viewport.x_min, view.viewport.x_max) == before
    assert view.max_iterations == 40


@pytest.mark.parametrize("target", [
    bytearray(10),
    bytes(32 * 24 * 4),
    np.zeros((24, 32, 4), dtype=np.float32),
    "not a buffer",
])
def test_bad_draw_targets_are_rejected(target):
    view = small_view()
    with pytest.raises(ValueError):
        view.draw(target)
    assert view.evaluator.passes == 0
    assert view.state == Dirty.RECALC | Dirty.REDRAW


def test_draw_into_numpy_array():
    view = small_view()
    target = np.zeros((24, 32, 4), dtype=np.uint8)
    view.draw(target)
    np.testing.assert_array_equal(target, view.frame)
    assert np.all(target[..., 3] == 255)


def test_frame_is_read_only():
    view = small_view()
    frame_bytes(view)
    with pytest.raises(ValueError):
        view.frame[0, 0, 0] = 1


class ReentrantEvaluator(EscapeTimeEvaluator):
    """Issues an overlapping draw from inside a recompute pass."""

    def __init__(self):
        super().__init__()
        self.view = None
        self.inner = None

    def __call__(self, viewport, max_iterations):
        self.inner = bytearray(viewport.width * viewport.height * 4)
        self.view.draw(self.inner)
        return super().__call__(viewport, max_iterations)


def test_overlapping_draw_does_not_start_another_recompute():
    evaluator = ReentrantEvaluator()
    view = MandelbrotView(ViewConfig(width=16, height=12, max_iterations=30), evaluator=evaluator)
    evaluator.view = view

    outer = frame_bytes(view)

    assert evaluator.passes == 1
    # The overlapping draw saw the last published frame, not a partial one.
    assert evaluator.inner == bytearray([0xFF]) * (16 * 12 * 4)
    assert outer != bytes(evaluator.inner)


class ResizingEvaluator(EscapeTimeEvaluator):
    """Resizes the view mid-pass, then draws into a buffer of the old size."""

    def __init__(self):
        super().__init__()
        self.view = None
        self.inner = None

    def __call__(self, viewport, max_iterations):
        field = super().__call__(viewport, max_iterations)
        if self.passes == 1:
            self.view.resize(20, 10)
            self.inner = bytearray(viewport.width * viewport.height * 4)
            self.view.draw(self.inner)
        return field


def test_overlapping_draw_after_resize_copies_published_frame():
    evaluator = ResizingEvaluator()
    view = MandelbrotView(ViewConfig(width=16, height=12, max_iterations=30), evaluator=evaluator)
    evaluator.view = view

    # The outer draw was sized before the resize and gets the frame of that size.
    outer = frame_bytes(view)
    assert len(outer) == 16 * 12 * 4
    assert evaluator.inner == bytearray([0xFF]) * (16 * 12 * 4)
    assert view.recalc_needed

    data = frame_bytes(view)
    assert len(data) == 20 * 10 * 4
    assert view.frame.shape == (10, 20, 4)


def test_overlapping_draw_rejects_buffer_not_matching_published_frame():
    view = small_view()

    class Evaluator(EscapeTimeEvaluator):
        def __call__(self, viewport, max_iterations):
            with pytest.raises(ValueError):
                view.draw(bytearray(10))
            return super().__call__(viewport, max_iterations)

    view.evaluator = Evaluator()
    frame_bytes(view)
    assert view.state == Dirty.CLEAN


class ZoomingEvaluator(EscapeTimeEvaluator):
    """Issues a zoom while a recompute pass is running."""

    def __init__(self):
        super().__init__()
        self.view = None

    def __call__(self, viewport, max_iterations):
        field = super().__call__(viewport, max_iterations)
        if self.passes == 1:
            self.view.zoom((8, 6), 0.5)
        return field


def test_zoom_during_recompute_forces_another_pass():
    evaluator = ZoomingEvaluator()
    view = MandelbrotView(ViewConfig(width=16, height=12, max_iterations=30), evaluator=evaluator)
    evaluator.view = view

    frame_bytes(view)
    assert view.recalc_needed
    frame_bytes(view)
    assert evaluator.passes == 2
    assert view.state == Dirty.CLEAN


def test_default_view_center_renders_interior_color():
    view = MandelbrotView(ViewConfig())
    buffer = bytearray(640 * 480 * 4)
    view.draw(buffer)

    assert view.field[240, 320] == 1000
    frame = np.frombuffer(bytes(buffer), dtype=np.uint8).reshape(480, 640, 4)
    expected = np.uint8(np.clip(view.palette.colors[1000] * 255, 0, 255))
    np.testing.assert_array_equal(frame[240, 320, :3], expected)
    assert frame[240, 320, 3] == 255
