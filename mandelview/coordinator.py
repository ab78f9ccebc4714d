"""Background render scheduling with at most one render in flight.

The coordinator owns the live :class:`ViewportState`. Each accepted command or
resize replaces it with a new frozen snapshot, and that snapshot object is what
the worker thread renders, so the render never aliases state that can still
change. Finished buffers are handed to the ``display`` callback on the worker
thread, after which the gate re-opens.
"""

from __future__ import annotations

import enum
import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, Optional

from .commands import Command, apply_command, command_for_key
from .renderer import PixelBuffer, render
from .state import ViewportError, ViewportState

logger = logging.getLogger(__name__)

RenderFn = Callable[[ViewportState], PixelBuffer]
DisplayFn = Callable[[PixelBuffer], None]


class RenderPolicy(enum.Enum):
    """What happens to commands that arrive while a render is in flight."""

    DROP = "drop"
    COALESCE = "coalesce"


class RenderCoordinator:
    """Serialize renders of the live viewport state onto a background worker."""

    def __init__(
        self,
        display: DisplayFn,
        *,
        state: Optional[ViewportState] = None,
        policy: RenderPolicy = RenderPolicy.DROP,
        render_fn: Optional[RenderFn] = None,
        executor: Optional[Executor] = None,
        device: Optional[str] = None,
    ) -> None:
        self._display = display
        self._state = state if state is not None else ViewportState()
        self._policy = RenderPolicy(policy)
        self._device = device
        self._render_fn = render_fn
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="mandelview-render")
        self._gate = threading.Condition()
        self._busy = False
        self._pending = False
        self._closed = False
        self._generation = 0

    @property
    def state(self) -> ViewportState:
        with self._gate:
            return self._state

    @property
    def policy(self) -> RenderPolicy:
        return self._policy

    @property
    def busy(self) -> bool:
        with self._gate:
            return self._busy

    @property
    def generation(self) -> int:
        """Number of renders dispatched so far."""

        with self._gate:
            return self._generation

    def submit(self, command: Command) -> bool:
        """Apply ``command`` and schedule a render.

        Returns False when the command was dropped because a render is in
        flight (drop policy) or rejected because the resulting state is
        invalid; the live state is unchanged in both cases.
        """

        with self._gate:
            self._check_open()
            if self._busy and self._policy is RenderPolicy.DROP:
                logger.debug("Dropping %s, render %d still in flight", command.value, self._generation)
                return False
            try:
                new_state = apply_command(self._state, command)
            except ViewportError as exc:
                logger.warning("Rejected %s: %s", command.value, exc)
                return False
            self._state = new_state
            if self._busy:
                self._pending = True
            else:
                self._dispatch_locked()
            return True

    def press(self, code: str) -> bool:
        """Handle a key code; unbound keys are ignored."""

        command = command_for_key(code)
        if command is None:
            return False
        return self.submit(command)

    def reset(self) -> bool:
        return self.submit(Command.RESET)

    def resize(self, width: int, height: int) -> None:
        """Adopt new output dimensions and render them.

        A resize is never dropped: while busy it is rendered right after the
        in-flight frame.
        """

        with self._gate:
            self._check_open()
            self._state = self._state.resized(width, height)
            if self._busy:
                self._pending = True
            else:
                self._dispatch_locked()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no render is in flight; False if ``timeout`` expired."""

        with self._gate:
            return self._gate.wait_for(lambda: not self._busy, timeout)

    def close(self, wait: bool = True) -> None:
        with self._gate:
            self._closed = True
            self._pending = False
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> "RenderCoordinator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("RenderCoordinator is closed.")

    def _dispatch_locked(self) -> None:
        self._busy = True
        self._generation += 1
        snapshot = self._state
        logger.debug(
            "Dispatching render %d (%dx%d, zoom=%g, action=%s)",
            self._generation,
            snapshot.width,
            snapshot.height,
            snapshot.zoom,
            snapshot.last_action,
        )
        try:
            self._executor.submit(self._run, self._generation, snapshot)
        except RuntimeError:
            self._busy = False
            self._gate.notify_all()
            raise

    def _render(self, snapshot: ViewportState) -> PixelBuffer:
        if self._render_fn is not None:
            return self._render_fn(snapshot)
        return render(snapshot, device=self._device)

    def _run(self, generation: int, snapshot: ViewportState) -> None:
        try:
            buffer = self._render(snapshot)
            self._display(buffer)
        except Exception:
            logger.exception("Render %d failed", generation)
        finally:
            self._finish(generation)

    def _finish(self, generation: int) -> None:
        with self._gate:
            if self._pending and not self._closed:
                self._pending = False
                logger.debug("Render %d done, dispatching pending state", generation)
                self._dispatch_locked()
            else:
                self._busy = False
                self._gate.notify_all()
