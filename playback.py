# playback.py

import logging
from enum import Enum
from typing import Sequence, TypeVar

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

DEFAULT_TICK_INTERVAL_MS = 50

T = TypeVar("T")


class PlaybackState(Enum):
    IDLE = "idle"
    REVEALING = "revealing"


def reveal_step(ordered: Sequence[T], visible_count: int) -> tuple[int, list[T]]:
    """Grows the visible prefix by one item and returns (new count, visible prefix)."""
    new_count = min(visible_count + 1, len(ordered))
    return new_count, list(ordered[:new_count])


class PlaybackController(QObject):
    """
    Reveals an ordered list one item per timer tick.

    Idle -> Revealing on ``start`` with a non-empty list, back to Idle once the
    whole list is visible. Every emission carries the generation of the run that
    produced it, so receivers can drop anything from a cancelled run.
    """

    started = pyqtSignal(int)  # generation
    revealed = pyqtSignal(int, list)  # (generation, visible prefix)
    finished = pyqtSignal(int)  # generation

    def __init__(self, interval_ms: int = DEFAULT_TICK_INTERVAL_MS, parent=None):
        super().__init__(parent)
        self._ordered: list = []
        self._visible_count = 0
        self._state = PlaybackState.IDLE
        self._generation = 0

        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self.tick)

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_revealing(self) -> bool:
        return self._state is PlaybackState.REVEALING

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def visible_count(self) -> int:
        return self._visible_count

    @property
    def visible(self) -> list:
        return list(self._ordered[: self._visible_count])

    def set_interval(self, interval_ms: int):
        self._timer.setInterval(interval_ms)

    def start(self, ordered: Sequence) -> bool:
        """Starts a new reveal run, cancelling any run in progress. An empty list does nothing."""
        if not ordered:
            return False
        self.stop()
        self._generation += 1
        self._ordered = list(ordered)
        self._visible_count = 0
        self._state = PlaybackState.REVEALING
        logging.debug("Playback %d started with %d items", self._generation, len(self._ordered))
        self.started.emit(self._generation)
        self._timer.start()
        return True

    def stop(self):
        """Halts the current run without any further emissions."""
        self._timer.stop()
        if self._state is PlaybackState.REVEALING:
            logging.debug("Playback %d stopped at %d/%d", self._generation, self._visible_count, len(self._ordered))
        self._state = PlaybackState.IDLE

    def tick(self):
        if self._state is not PlaybackState.REVEALING:
            return
        generation = self._generation
        self._visible_count, visible = reveal_step(self._ordered, self._visible_count)
        self.revealed.emit(generation, visible)

        if self._visible_count >= len(self._ordered):
            self._timer.stop()
            self._state = PlaybackState.IDLE
            logging.info("Playback %d finished (%d items)", generation, len(self._ordered))
            self.finished.emit(generation)
