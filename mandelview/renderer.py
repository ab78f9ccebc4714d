"""Rendering primitives for Mandelbrot frames."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import tensorflow as tf

from .state import ViewportState

# Plane units spanned by the larger output dimension at zoom 1.
PLANE_SPAN = 3
ESCAPE_THRESHOLD = 1.0
NOT_ESCAPED = -1


@dataclass(frozen=True)
class PixelBuffer:
    """Row-major 8-bit intensities for a rendered frame, origin top-left."""

    width: int
    height: int
    data: np.ndarray

    def __post_init__(self) -> None:
        if self.data.dtype != np.uint8 or self.data.ndim != 1:
            raise ValueError("PixelBuffer data must be a flat uint8 array.")
        if self.data.size != self.width * self.height:
            raise ValueError(
                f"PixelBuffer holds {self.data.size} pixels, expected {self.width * self.height}."
            )
        self.data.setflags(write=False)

    @classmethod
    def empty(cls, width: int = 0, height: int = 0) -> "PixelBuffer":
        return cls(width=width, height=height, data=np.zeros(0, dtype=np.uint8))

    def __len__(self) -> int:
        return int(self.data.size)

    def as_array(self) -> np.ndarray:
        """Return a read-only ``(height, width)`` view of the intensities."""

        return self.data.reshape(self.height, self.width)


@tf.function
def _escape_step(
    i: tf.Tensor,
    real: tf.Tensor,
    imag: tf.Tensor,
    xs: tf.Tensor,
    ys: tf.Tensor,
    escape: tf.Tensor,
    active: tf.Tensor,
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Advance ``z <- z**2 + c`` once for every pixel that has not escaped."""

    new_real = real * real - imag * imag + xs
    new_imag = 2.0 * real * imag + ys
    real = tf.where(active, new_real, real)
    imag = tf.where(active, new_imag, imag)
    threshold = tf.cast(ESCAPE_THRESHOLD, real.dtype)
    escaped_now = tf.logical_and(active, real * imag > threshold)
    escape = tf.where(escaped_now, i, escape)
    active = tf.logical_and(active, tf.logical_not(escaped_now))
    return real, imag, escape, active


@tf.function
def _escape_run(xs: tf.Tensor, ys: tf.Tensor, iterations: tf.Tensor) -> tf.Tensor:
    """Iterate until every pixel escaped or the budget is spent."""

    iterations = tf.cast(iterations, tf.int32)
    i = tf.constant(0, dtype=tf.int32)
    real = tf.zeros_like(xs)
    imag = tf.zeros_like(ys)
    escape = tf.fill(tf.shape(xs), tf.constant(NOT_ESCAPED, dtype=tf.int32))
    active = tf.ones_like(xs, tf.bool)

    def cond(i, real, imag, escape, active):
        return tf.logical_and(tf.less(i, iterations), tf.reduce_any(active))

    def body(i, real, imag, escape, active):
        real, imag, escape, active = _escape_step(i, real, imag, xs, ys, escape, active)
        return i + 1, real, imag, escape, active

    _, _, _, escape, _ = tf.while_loop(cond, body, (i, real, imag, escape, active))
    return escape


def plane_coordinates(state: ViewportState) -> tuple[np.ndarray, np.ndarray]:
    """Map every pixel of ``state`` to complex-plane coordinates.

    Increasing ``center_x`` moves the view left because the center is
    subtracted from the pixel offset.
    """

    width = state.width
    height = state.height
    scale = np.float64(max(width, height)) / np.float64(PLANE_SPAN)
    unit = scale * np.float64(state.zoom)

    px = np.arange(width, dtype=np.float64)
    py = np.arange(height, dtype=np.float64)
    x = (px - np.float64(width) / 2.0) / unit - np.float64(state.center_x)
    y = (py - np.float64(height) / 2.0) / unit - np.float64(state.center_y)
    return np.meshgrid(x, y)


def escape_indices(state: ViewportState, *, device: Optional[str] = None) -> np.ndarray:
    """Return the zero-based escape iteration per pixel, ``-1`` for bounded points."""

    if state.width == 0 or state.height == 0:
        return np.full((state.height, state.width), NOT_ESCAPED, dtype=np.int32)

    xs, ys = plane_coordinates(state)
    with tf.device(device if device is not None else "/CPU:0"):
        xs_tf = tf.convert_to_tensor(xs, dtype=tf.float64)
        ys_tf = tf.convert_to_tensor(ys, dtype=tf.float64)
        escape = _escape_run(xs_tf, ys_tf, tf.constant(state.iterations, dtype=tf.int32))
    return escape.numpy()


def escape_values(state: ViewportState, *, device: Optional[str] = None) -> np.ndarray:
    """Normalized escape values ``i / iterations`` in ``[0, 1)``, 0 where bounded."""

    indices = escape_indices(state, device=device)
    values = indices.astype(np.float64) / np.float64(state.iterations)
    return np.where(indices == NOT_ESCAPED, 0.0, values)


def render(state: ViewportState, *, device: Optional[str] = None) -> PixelBuffer:
    """Render ``state`` into a fresh :class:`PixelBuffer`."""

    if state.width == 0 or state.height == 0:
        return PixelBuffer.empty(state.width, state.height)

    values = escape_values(state, device=device)
    intensity = np.rint(255.0 - 255.0 * values)
    data = np.clip(intensity, 0, 255).astype(np.uint8).ravel()
    return PixelBuffer(width=state.width, height=state.height, data=data)
