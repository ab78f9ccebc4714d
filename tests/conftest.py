"""Shared fixtures: small viewport snapshots and a pure-Python reference renderer."""

from __future__ import annotations

import numpy as np
import pytest

from mandelview import ViewportState


def reference_value(x: float, y: float, iterations: int) -> float:
    """Per-pixel escape value computed one point at a time."""
    real = 0.0
    imag = 0.0
    for i in range(iterations):
        real, imag = real * real - imag * imag + x, 2.0 * real * imag + y
        if real * imag > 1:
            return i / iterations
    return 0.0


def reference_render(state: ViewportState) -> np.ndarray:
    width, height = state.width, state.height
    scale = max(width, height) / 3
    out = np.zeros((height, width), dtype=np.float64)
    for py in range(height):
        for px in range(width):
            x = (px - width / 2) / (scale * state.zoom) - state.center_x
            y = (py - height / 2) / (scale * state.zoom) - state.center_y
            out[py, px] = reference_value(x, y, state.iterations)
    return out


@pytest.fixture()
def small_state() -> ViewportState:
    return ViewportState(iterations=64, width=12, height=9)


@pytest.fixture()
def origin_state() -> ViewportState:
    # Pixel (2, 2) of a 4x4 frame centered on 0 maps exactly to the origin.
    return ViewportState(width=4, height=4, center_x=0.0, center_y=0.0)
