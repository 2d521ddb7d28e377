#!/usr/bin/env python3
"""Cooperative per-frame tracking loop.

The loop never runs freely: every tick asks a scheduler for the next one, so
frame processing, rendering and result dispatch all happen on the thread
that drives the scheduler, strictly one after another.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Protocol

import cv2
import numpy as np

from hand_tracking_system import monotonic_ms
from hand_tracking_types import HandTrackingResult


logger = logging.getLogger(__name__)

Tick = Callable[[], None]
ResultHandler = Callable[[HandTrackingResult], None]


class Scheduler(Protocol):
    def schedule_next(self, tick: Tick) -> None:
        ...

    def cancel(self) -> None:
        ...

    def quit(self) -> None:
        ...


class ManualScheduler:
    """Holds at most one pending tick and runs it when stepped."""

    def __init__(self) -> None:
        self.pending: Tick | None = None
        self.ticks_run = 0
        self.quit_requested = False

    def schedule_next(self, tick: Tick) -> None:
        self.pending = tick

    def cancel(self) -> None:
        self.pending = None

    def quit(self) -> None:
        self.quit_requested = True
        self.pending = None

    def step(self) -> bool:
        tick, self.pending = self.pending, None
        if tick is None:
            return False
        tick()
        self.ticks_run += 1
        return True

    def run(self, max_ticks: int) -> int:
        ran = 0
        while ran < max_ticks and self.step():
            ran += 1
        return ran


class DisplayScheduler:
    """Runs one pending tick per preview-window refresh.

    After each refresh ``present`` redraws the window and key presses are
    passed to ``on_key``; ``quit()`` ends ``run()``.
    """

    def __init__(
        self,
        present: Callable[[], None] | None = None,
        on_key: Callable[[int], None] | None = None,
        delay_ms: int = 1,
        idle_delay_ms: int = 15,
    ) -> None:
        self.present = present
        self.on_key = on_key
        self.delay_ms = delay_ms
        self.idle_delay_ms = idle_delay_ms
        self._pending: Tick | None = None
        self._running = False

    def schedule_next(self, tick: Tick) -> None:
        self._pending = tick

    def cancel(self) -> None:
        self._pending = None

    def quit(self) -> None:
        self._running = False

    def run(self) -> None:
        self._running = True
        while self._running:
            tick, self._pending = self._pending, None
            if tick is not None:
                tick()
            if self.present is not None:
                self.present()
            delay = self.delay_ms if self._pending is not None else self.idle_delay_ms
            key = cv2.waitKey(delay) & 0xFF
            if key != 0xFF and self.on_key is not None:
                self.on_key(key)


class LoopState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class TrackingLoop:
    def __init__(
        self,
        camera,
        adapter,
        renderer,
        scheduler: Scheduler,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.camera = camera
        self.adapter = adapter
        self.renderer = renderer
        self.scheduler = scheduler
        self._clock = clock or monotonic_ms
        self._handler: ResultHandler | None = None
        self.state = LoopState.IDLE
        self.surface: np.ndarray | None = None

    def set_result_handler(self, handler: ResultHandler | None) -> None:
        self._handler = handler

    def prerequisites_met(self) -> bool:
        return self.camera.is_attached() and self.adapter.is_ready()

    def is_running(self) -> bool:
        return self.state is LoopState.RUNNING

    def start(self) -> bool:
        if self.is_running():
            return False
        if not self.prerequisites_met():
            logger.debug("Not starting: camera not attached or adapter not ready")
            return False
        self.state = LoopState.RUNNING
        self.scheduler.schedule_next(self._tick)
        logger.info("Tracking started")
        return True

    def stop(self) -> None:
        if not self.is_running():
            return
        self.state = LoopState.IDLE
        self.scheduler.cancel()
        logger.info("Tracking stopped")

    def _tick(self) -> None:
        if not self.is_running():
            return
        if self.prerequisites_met():
            self._process_current_frame()
        if self.is_running():
            self.scheduler.schedule_next(self._tick)

    def _surface_for(self, frame: np.ndarray) -> np.ndarray:
        height, width = frame.shape[:2]
        if self.surface is None or self.surface.shape[:2] != (height, width):
            self.surface = np.zeros((height, width, 3), dtype=np.uint8)
        return self.surface

    def _process_current_frame(self) -> None:
        frame = self.camera.current_frame()
        if frame is None:
            return
        result = self.adapter.process_frame(frame, int(self._clock()))
        if result is None:
            return
        self.renderer.render(result, self._surface_for(frame))
        if self._handler is not None:
            self._handler(result)
