"""Public API for the Mandelbrot viewport renderer."""

from .state import (
    InvalidDimensions,
    InvalidIterationBudget,
    InvalidZoom,
    ViewportError,
    ViewportState,
)
from .renderer import PixelBuffer, escape_indices, escape_values, plane_coordinates, render
from .commands import (
    COMMAND_HANDLERS,
    KEY_BINDINGS,
    Command,
    apply_command,
    command_for_key,
    parse_command,
)
from .coordinator import RenderCoordinator, RenderPolicy
from .display import device_dimensions, to_image, to_rgba

__all__ = [
    "COMMAND_HANDLERS",
    "Command",
    "InvalidDimensions",
    "InvalidIterationBudget",
    "InvalidZoom",
    "KEY_BINDINGS",
    "PixelBuffer",
    "RenderCoordinator",
    "RenderPolicy",
    "ViewportError",
    "ViewportState",
    "apply_command",
    "command_for_key",
    "device_dimensions",
    "escape_indices",
    "escape_values",
    "parse_command",
    "plane_coordinates",
    "render",
    "to_image",
    "to_rgba",
]
