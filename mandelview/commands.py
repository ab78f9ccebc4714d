"""Navigation commands and the state transforms they trigger."""

from __future__ import annotations

import enum
from dataclasses import replace
from typing import Callable, Optional

from .state import ViewportState

PAN_STEP = 0.05
ZOOM_STEP = 2


class Command(enum.Enum):
    """Interactive commands; each value doubles as the ``last_action`` tag."""

    PAN_UP = "up"
    PAN_DOWN = "down"
    PAN_LEFT = "left"
    PAN_RIGHT = "right"
    ZOOM_IN = "in"
    ZOOM_OUT = "out"
    RESET = "reset"


KEY_BINDINGS: dict[str, Command] = {
    "KeyW": Command.PAN_UP,
    "KeyA": Command.PAN_LEFT,
    "KeyS": Command.PAN_DOWN,
    "KeyD": Command.PAN_RIGHT,
    "ArrowUp": Command.ZOOM_IN,
    "ArrowDown": Command.ZOOM_OUT,
    "Escape": Command.RESET,
}


def pan_step(state: ViewportState) -> float:
    """Plane distance covered by one pan; shrinks as the zoom grows."""

    return 1 / state.zoom * PAN_STEP


def pan_up(state: ViewportState) -> ViewportState:
    return replace(state, center_y=state.center_y + pan_step(state), last_action=Command.PAN_UP.value)


def pan_down(state: ViewportState) -> ViewportState:
    return replace(state, center_y=state.center_y - pan_step(state), last_action=Command.PAN_DOWN.value)


def pan_left(state: ViewportState) -> ViewportState:
    return replace(state, center_x=state.center_x + pan_step(state), last_action=Command.PAN_LEFT.value)


def pan_right(state: ViewportState) -> ViewportState:
    return replace(state, center_x=state.center_x - pan_step(state), last_action=Command.PAN_RIGHT.value)


def zoom_in(state: ViewportState) -> ViewportState:
    return replace(state, zoom=state.zoom * ZOOM_STEP, last_action=Command.ZOOM_IN.value)


def zoom_out(state: ViewportState) -> ViewportState:
    return replace(state, zoom=state.zoom / ZOOM_STEP, last_action=Command.ZOOM_OUT.value)


def reset(state: ViewportState) -> ViewportState:
    return replace(state.reset(), last_action=Command.RESET.value)


COMMAND_HANDLERS: dict[Command, Callable[[ViewportState], ViewportState]] = {
    Command.PAN_UP: pan_up,
    Command.PAN_DOWN: pan_down,
    Command.PAN_LEFT: pan_left,
    Command.PAN_RIGHT: pan_right,
    Command.ZOOM_IN: zoom_in,
    Command.ZOOM_OUT: zoom_out,
    Command.RESET: reset,
}


def apply_command(state: ViewportState, command: Command) -> ViewportState:
    """Return the state produced by ``command``.

    Raises a :class:`~mandelview.state.ViewportError` when the result would be
    invalid (e.g. zooming out until the zoom underflows); ``state`` itself is
    never touched.
    """

    return COMMAND_HANDLERS[command](state)


def command_for_key(code: str) -> Optional[Command]:
    return KEY_BINDINGS.get(code)


def parse_command(text: str) -> Command:
    """Resolve a key code, enum name or action tag to a :class:`Command`."""

    token = text.strip()
    if token in KEY_BINDINGS:
        return KEY_BINDINGS[token]
    normalized = token.lower().replace("-", "_")
    for command in Command:
        if normalized in (command.name.lower(), command.value):
            return command
    raise ValueError(f"Unknown command '{text}'.")
