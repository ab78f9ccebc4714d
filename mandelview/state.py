"""Viewport state shared between the input layer and the render engine."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

DEFAULT_ITERATIONS = 256
DEFAULT_CENTER_X = 0.7237730127387282
DEFAULT_CENTER_Y = 0.23171775385796425
DEFAULT_ZOOM = 1.0


class ViewportError(ValueError):
    """Base class for rejected viewport parameters."""


class InvalidDimensions(ViewportError):
    pass


class InvalidIterationBudget(ViewportError):
    pass


class InvalidZoom(ViewportError):
    pass


def _is_int(value: object) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, (bool, np.bool_))


@dataclass(frozen=True)
class ViewportState:
    """Navigation and render parameters for a single frame.

    Instances are immutable snapshots; every navigation step produces a new
    one through :func:`dataclasses.replace`, which re-runs validation.
    """

    iterations: int = DEFAULT_ITERATIONS
    width: int = 0
    height: int = 0
    center_x: float = DEFAULT_CENTER_X
    center_y: float = DEFAULT_CENTER_Y
    zoom: float = DEFAULT_ZOOM
    last_action: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("width", "height"):
            value = getattr(self, name)
            if not _is_int(value) or value < 0:
                raise InvalidDimensions(f"{name} must be a non-negative integer, got {value!r}.")
            object.__setattr__(self, name, int(value))
        if not _is_int(self.iterations) or self.iterations <= 0:
            raise InvalidIterationBudget(f"iterations must be a positive integer, got {self.iterations!r}.")
        object.__setattr__(self, "iterations", int(self.iterations))
        if not math.isfinite(self.zoom) or self.zoom <= 0:
            raise InvalidZoom(f"zoom must be a positive finite number, got {self.zoom!r}.")

    @classmethod
    def default(cls, width: int = 0, height: int = 0) -> "ViewportState":
        return cls(width=width, height=height)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def resized(self, width: int, height: int) -> "ViewportState":
        """Return a copy sized to ``width`` x ``height`` with no action tag."""

        return replace(self, width=width, height=height, last_action=None)

    def reset(self) -> "ViewportState":
        """Restore the default navigation while keeping the output size."""

        return ViewportState.default(self.width, self.height)
