from dataclasses import FrozenInstanceError, replace

import numpy as np
import pytest

from mandelview import InvalidDimensions, InvalidIterationBudget, InvalidZoom, ViewportError, ViewportState
from mandelview.state import DEFAULT_CENTER_X, DEFAULT_CENTER_Y


def test_defaults():
    state = ViewportState()
    assert state.iterations == 256
    assert (state.width, state.height) == (0, 0)
    assert state.center_x == 0.7237730127387282
    assert state.center_y == 0.23171775385796425
    assert state.zoom == 1
    assert state.last_action is None


def test_snapshot_is_immutable():
    state = ViewportState()
    with pytest.raises(FrozenInstanceError):
        state.zoom = 2.0


@pytest.mark.parametrize("width,height", [(-1, 10), (10, -1), (1.5, 10)])
def test_rejects_bad_dimensions(width, height):
    with pytest.raises(InvalidDimensions):
        ViewportState(width=width, height=height)


@pytest.mark.parametrize("iterations", [0, -5, 2.5])
def test_rejects_bad_iteration_budget(iterations):
    with pytest.raises(InvalidIterationBudget):
        ViewportState(iterations=iterations)


@pytest.mark.parametrize("zoom", [0.0, -1.0, float("inf"), float("nan")])
def test_rejects_bad_zoom(zoom):
    with pytest.raises(InvalidZoom):
        ViewportState(zoom=zoom)


def test_errors_are_value_errors():
    assert issubclass(ViewportError, ValueError)
    with pytest.raises(ValueError):
        replace(ViewportState(), zoom=0.0)


def test_zero_dimensions_are_valid():
    assert ViewportState(width=0, height=7).pixel_count == 0


def test_resized_clears_action():
    state = ViewportState(width=4, height=4, last_action="in", zoom=8.0)
    resized = state.resized(20, 10)
    assert (resized.width, resized.height) == (20, 10)
    assert resized.last_action is None
    assert resized.zoom == 8.0
    assert state.width == 4


def test_reset_keeps_dimensions():
    state = ViewportState(iterations=12, width=30, height=20, center_x=1.0, center_y=-2.0, zoom=64.0)
    assert state.reset() == ViewportState(width=30, height=20)
    assert state.reset().center_x == DEFAULT_CENTER_X
    assert state.reset().center_y == DEFAULT_CENTER_Y


@pytest.mark.parametrize(
    "iterations,width,height",
    [(np.int64(64), np.int64(4), np.int32(3)), (np.uint16(8), np.int8(0), np.int64(2))],
)
def test_accepts_numpy_integers(iterations, width, height):
    state = ViewportState(iterations=iterations, width=width, height=height)
    assert (state.iterations, state.width, state.height) == (int(iterations), int(width), int(height))
    assert all(type(value) is int for value in (state.iterations, state.width, state.height))


def test_rejects_numpy_bool():
    with pytest.raises(InvalidDimensions):
        ViewportState(width=np.bool_(True))
