"""Escape-time evaluation of the Mandelbrot set."""

from __future__ import annotations

import math
import time
from typing import Optional

import numpy as np
import tensorflow as tf

from .config import check_max_iterations
from .console import log
from .viewport import Viewport

# Squared escape radius.
HORIZON = 4.0
# Iterations between orbit snapshots for periodicity detection.
PERIOD_CHECK = 20

_LOG10_2 = math.log10(2.0)


def select_device() -> str:
    """Pick the first visible GPU when there is one, otherwise the CPU."""

    gpus = tf.config.list_physical_devices('GPU')
    if not gpus:
        log("No GPU found, using CPU")
        return '/CPU:0'
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
    except RuntimeError as e:
        # Memory growth can only be set before the GPU is initialised.
        log(e)
        return '/CPU:0'
    log("GPU found, using %s" % gpus[0].name)
    return '/GPU:0'


def in_main_cardioid(x0: float, y0: float) -> bool:
    p = math.sqrt((x0 - 0.25) ** 2 + y0 ** 2)
    return x0 <= p - 2.0 * p ** 2 + 0.25


def in_period2_bulb(x0: float, y0: float) -> bool:
    return (x0 + 1.0) ** 2 + y0 ** 2 <= 1.0 / 16.0


def smooth_iteration(iteration: int, x2: float, y2: float) -> float:
    """Continuous escape count for an orbit that left the horizon at ``iteration``."""

    log_zn = math.log10(x2 + y2) / 2.0
    nu = math.log10(log_zn / _LOG10_2) / _LOG10_2
    return iteration + 1.0 - nu


def escape_time(x0: float, y0: float, max_iterations: int) -> float:
    """Smoothed iteration count of ``c = x0 + i*y0``.

    Returns exactly ``max_iterations`` for points classified as non-escaping
    (cardioid, period-2 bulb or a detected periodic orbit), otherwise a value
    in ``[0, max_iterations)``.
    """

    if in_main_cardioid(x0, y0) or in_period2_bulb(x0, y0):
        return float(max_iterations)

    x = y = x2 = y2 = 0.0
    x_old = y_old = 0.0
    period = 0
    iteration = 0

    while x2 + y2 <= HORIZON and iteration < max_iterations:
        y = 2.0 * x * y + y0
        x = x2 - y2 + x0
        x2 = x * x
        y2 = y * y
        iteration += 1

        if x == x_old and y == y_old:
            return float(max_iterations)

        period += 1
        if period == PERIOD_CHECK:
            period = 0
            x_old = x
            y_old = y

    if iteration < max_iterations:
        return min(max(smooth_iteration(iteration, x2, y2), 0.0), float(max_iterations))
    return float(max_iterations)


def evaluate_pixel(viewport: Viewport, px: int, py: int, max_iterations: int) -> float:
    x0, y0 = viewport.to_plane(px, py)
    return escape_time(x0, y0, max_iterations)


@tf.function
def _interior_mask(x0: tf.Tensor, y0: tf.Tensor) -> tf.Tensor:
    """Points inside the main cardioid or the period-2 bulb."""

    q = x0 - 0.25
    p = tf.sqrt(q * q + y0 * y0)
    cardioid = x0 <= p - 2.0 * p * p + 0.25
    bulb = (x0 + 1.0) * (x0 + 1.0) + y0 * y0 <= 1.0 / 16.0
    return tf.logical_or(cardioid, bulb)


@tf.function
def _mandelbrot_step(i, x0, y0, x, y, x2, y2, x_old, y_old, ns, active, periodic):
    """Advance every orbit that is still active by one iteration."""

    y_new = 2.0 * x * y + y0
    x_new = x2 - y2 + x0
    x = tf.where(active, x_new, x)
    y = tf.where(active, y_new, y)
    x2 = x * x
    y2 = y * y
    ns = ns + tf.cast(active, tf.int32)

    repeated = tf.logical_and(active, tf.logical_and(tf.equal(x, x_old), tf.equal(y, y_old)))
    periodic = tf.logical_or(periodic, repeated)
    escaped = x2 + y2 > HORIZON
    active = tf.logical_and(active, tf.logical_not(tf.logical_or(repeated, escaped)))

    snapshot = tf.equal(tf.math.floormod(i + 1, PERIOD_CHECK), 0)
    x_old = tf.where(snapshot, x, x_old)
    y_old = tf.where(snapshot, y, y_old)
    return x, y, x2, y2, x_old, y_old, ns, active, periodic


@tf.function
def _mandelbrot_run(x0: tf.Tensor, y0: tf.Tensor, max_iterations: tf.Tensor) -> tf.Tensor:
    """Iterate the whole grid in a TensorFlow while loop and smooth the escape counts."""

    max_iterations = tf.cast(max_iterations, tf.int32)
    interior = _interior_mask(x0, y0)

    zeros = tf.zeros_like(x0)
    ns = tf.zeros_like(x0, dtype=tf.int32)
    active = tf.logical_not(interior)
    periodic = tf.zeros_like(active)
    i = tf.constant(0, dtype=tf.int32)

    def cond(i, x, y, x2, y2, x_old, y_old, ns, active, periodic):
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i, x, y, x2, y2, x_old, y_old, ns, active, periodic):
        state = _mandelbrot_step(i, x0, y0, x, y, x2, y2, x_old, y_old, ns, active, periodic)
        return (i + 1,) + tuple(state)

    _, _, _, x2, y2, _, _, ns, _, periodic = tf.while_loop(
        cond, body, (i, zeros, zeros, zeros, zeros, zeros, zeros, ns, active, periodic)
    )

    ceiling = tf.cast(max_iterations, tf.float64)
    escaped = tf.logical_and(
        tf.logical_not(tf.logical_or(interior, periodic)),
        tf.less(ns, max_iterations),
    )
    # Non-escaped points get a stand-in magnitude so the logs stay finite.
    magnitude = tf.where(escaped, x2 + y2, tf.constant(HORIZON * HORIZON, dtype=tf.float64))
    log2 = tf.math.log(tf.constant(2.0, dtype=tf.float64))
    log_zn = tf.math.log(magnitude) / 2.0
    nu = tf.math.log(log_zn / log2) / log2
    smooth = tf.cast(ns, tf.float64) + 1.0 - nu
    smooth = tf.clip_by_value(smooth, 0.0, ceiling)
    return tf.where(escaped, smooth, tf.fill(tf.shape(smooth), ceiling))


def compute_field(viewport: Viewport, max_iterations: int, *, device: Optional[str] = None) -> np.ndarray:
    """Smoothed iteration counts for every pixel, shape ``(height, width)``."""

    check_max_iterations(max_iterations)
    xs, ys = viewport.axes()

    with tf.device(device if device is not None else "/CPU:0"):
        x_tf = tf.convert_to_tensor(xs, dtype=tf.float64)
        y_tf = tf.convert_to_tensor(ys, dtype=tf.float64)
        X, Y = tf.meshgrid(x_tf, y_tf)
        field = _mandelbrot_run(X, Y, tf.constant(max_iterations, dtype=tf.int32))

    return field.numpy()


class EscapeTimeEvaluator:
    """Fills iteration fields on one device and counts the passes it has run."""

    def __init__(self, device: Optional[str] = None):
        self.device = device
        self.passes = 0

    def __call__(self, viewport: Viewport, max_iterations: int) -> np.ndarray:
        start = time.perf_counter()
        field = compute_field(viewport, max_iterations, device=self.device)
        self.passes += 1
        log(
            "recomputed %dx%d field, %d iterations, %.3fs"
            % (viewport.width, viewport.height, max_iterations, time.perf_counter() - start)
        )
        return field
