"""
Frame scheduling for the simulation loop.

The loop asks a scheduler for one callback per frame. Displays supply
their own scheduler; tests use ManualScheduler to step deterministically.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol, Union

from .simulation import Simulation
from .structure import VisualState, VizState, as_visual_state

logger = logging.getLogger(__name__)

FrameCallback = Callable[[], None]


class Scheduler(Protocol):
    """Source of frame callbacks."""

    def request_frame(self, callback: FrameCallback) -> Any:
        """Schedule callback for the next frame and return a handle."""
        ...

    def cancel(self, handle: Any) -> None:
        """Cancel a pending callback."""
        ...


class ManualScheduler:
    """Scheduler that only runs frames when step() is called."""

    def __init__(self):
        self._queue: dict[int, FrameCallback] = {}
        self._next_handle = 0

    def request_frame(self, callback: FrameCallback) -> int:
        self._next_handle += 1
        self._queue[self._next_handle] = callback
        return self._next_handle

    def cancel(self, handle: int) -> None:
        self._queue.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self._queue)

    def step(self, frames: int = 1) -> int:
        """
        Run the callbacks queued for the next frame, repeatedly.

        Callbacks scheduled while a frame runs wait for the following frame.

        Returns:
            Number of callbacks run
        """
        ran = 0
        for _ in range(frames):
            queue = self._queue
            self._queue = {}
            for callback in queue.values():
                callback()
                ran += 1
        return ran


class AsyncioScheduler:
    """Scheduler driven by an asyncio event loop at a fixed frame rate."""

    def __init__(self, fps: float = 60.0, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.interval = 1.0 / fps
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def request_frame(self, callback: FrameCallback) -> asyncio.TimerHandle:
        return self.loop.call_later(self.interval, callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


class FrameLoop:
    """
    Runs one simulation step per scheduled frame until stopped.

    Each frame runs the input hook first and the physics step second, so a
    drag applied in a frame is never overwritten by that frame's step.
    """

    def __init__(
        self,
        simulation: Simulation,
        scheduler: Scheduler,
        before_tick: Optional[Callable[[Simulation], None]] = None,
        after_tick: Optional[Callable[[Simulation], None]] = None
    ):
        self.simulation = simulation
        self.scheduler = scheduler
        self.before_tick = before_tick
        self.after_tick = after_tick
        self.frames = 0
        self._handle: Any = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> FrameLoop:
        """Start scheduling frames. Starting a running loop does nothing."""
        if self._running:
            return self
        self._running = True
        self._handle = self.scheduler.request_frame(self._frame)
        logger.debug("Frame loop started")
        return self

    def stop(self) -> FrameLoop:
        """Cancel the pending frame and end the simulation. Idempotent."""
        if not self._running:
            return self
        self._running = False
        if self._handle is not None:
            self.scheduler.cancel(self._handle)
            self._handle = None
        self.simulation.stop()
        logger.debug("Frame loop stopped after %d frames", self.frames)
        return self

    def replace_state(self, state: Union[VisualState, VizState, dict]) -> FrameLoop:
        """
        Load a new description between frames.

        A change of structure type tears the loop down and starts it again;
        otherwise the running loop simply picks up the new node set.
        """
        new_state = as_visual_state(state)
        if self.simulation.structure_type is not new_state.type and self._running:
            self.stop()
            self.simulation.state(new_state)
            return self.start()
        self.simulation.state(new_state)
        return self

    def _frame(self) -> None:
        self._handle = None
        if not self._running:
            return
        if self.before_tick is not None:
            self.before_tick(self.simulation)
        if self.simulation.state() is not None:
            self.simulation.tick()
        if self.after_tick is not None:
            self.after_tick(self.simulation)
        self.frames += 1
        if self._running:
            self._handle = self.scheduler.request_frame(self._frame)
