"""
Playback of a step trace.

A Timeline walks a list of AnimationStep objects, either on demand
(next/prev/seek) or automatically as frame time elapses. Listeners get the
new step whenever the position changes, which is where a simulation or
gesture controller picks up the step's state between frames.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from .errors import ValidationError
from .structure import AnimationStep

logger = logging.getLogger(__name__)

StepListener = Callable[[AnimationStep], None]


class Timeline:
    """Position, play state and speed over a list of steps."""

    def __init__(self, steps: Sequence[AnimationStep], interval: float = 1.0):
        """
        Args:
            steps: Steps in playback order
            interval: Seconds between automatic advances
        """
        self.steps = list(steps)
        self.index = 0
        self.playing = False
        self._interval = 1.0
        self._elapsed = 0.0
        self._listeners: list[StepListener] = []
        self.set_interval(interval)

    @property
    def current(self) -> Optional[AnimationStep]:
        return self.steps[self.index] if self.steps else None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def at_end(self) -> bool:
        return self.index >= len(self.steps) - 1

    @property
    def progress(self) -> int:
        """Position as a whole percentage."""
        return round(self.index / max(1, len(self.steps) - 1) * 100)

    def on_step(self, listener: StepListener) -> Timeline:
        self._listeners.append(listener)
        return self

    def set_interval(self, seconds: float) -> None:
        if seconds <= 0:
            raise ValidationError("interval", seconds, "positive number of seconds")
        self._interval = float(seconds)

    def _goto(self, index: int) -> bool:
        if not self.steps:
            return False
        index = max(0, min(len(self.steps) - 1, index))
        if index == self.index:
            return False
        self.index = index
        step = self.steps[index]
        for listener in self._listeners:
            listener(step)
        return True

    def next(self) -> bool:
        return self._goto(self.index + 1)

    def prev(self) -> bool:
        return self._goto(self.index - 1)

    def seek(self, index: int) -> bool:
        """Jump to index, clamped to the available steps."""
        self._elapsed = 0.0
        return self._goto(index)

    def play(self) -> None:
        if not self.steps:
            return
        self.playing = True
        self._elapsed = 0.0

    def pause(self) -> None:
        self.playing = False

    def toggle(self) -> None:
        if self.playing:
            self.pause()
        else:
            self.play()

    def advance(self, dt: float) -> int:
        """
        Account for dt seconds of playback.

        Moves forward once per whole interval elapsed. Playback stops when
        an interval elapses on the last step.

        Returns:
            Number of steps moved
        """
        if not self.playing:
            return 0
        self._elapsed += dt
        moved = 0
        while self._elapsed >= self._interval:
            self._elapsed -= self._interval
            if not self.next():
                self.playing = False
                self._elapsed = 0.0
                logger.debug("Timeline reached step %d, stopping", self.index)
                break
            moved += 1
        return moved
