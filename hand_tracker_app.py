#!/usr/bin/env python3
"""
Live hand tracking viewer using OpenCV + MediaPipe.

Captures the camera, detects up to ``--num-hands`` hands per frame, draws the
hand skeleton colored by handedness and shows the processed frame rate.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Callable, Sequence


def _configure_local_cache_dirs() -> None:
    """
    Keep MediaPipe/fontconfig cache writes local to this project so imports
    don't fail when the default home cache path is not writable.
    """
    cache_dir = Path(__file__).resolve().parent / ".cache"
    (cache_dir / "fontconfig").mkdir(parents=True, exist_ok=True)
    os.environ.setdefault("XDG_CACHE_HOME", str(cache_dir))


_configure_local_cache_dirs()

import cv2
import numpy as np

from camera_utils import CameraSource, FrameSink, list_available_cameras
from hand_tracking_system import HandTrackingSystem
from hand_tracking_types import HandTrackingResult, landmark_name
from overlay_renderer import LABELED_LANDMARKS, OverlayRenderer, compose
from tracking_config import AppConfig, parse_args
from tracking_errors import HandTrackingError
from tracking_loop import DisplayScheduler, Scheduler, TrackingLoop


logger = logging.getLogger(__name__)

WINDOW_NAME = "Hand Tracker"
HUD_COLOR = (255, 255, 0)


def draw_status(
    output: np.ndarray,
    status: str,
    result: HandTrackingResult | None,
    num_hands: int,
    acceleration: str | None = None,
    show_raw: bool = False,
) -> np.ndarray:
    lines = [f"Status: {status}"]
    if acceleration:
        lines.append(f"Acceleration: {acceleration}")
    if result is not None:
        lines.append(f"Frame Rate: {result.frame_rate:.1f} FPS")
        lines.append(f"Hands Detected: {len(result.hands)}/{num_hands}")
        for hand in result.hands:
            lines.append(
                f"{hand.handedness.value} Hand - Confidence: {hand.confidence * 100:.1f}%"
            )
            if show_raw:
                lines.extend(raw_landmark_lines(hand))

    y = 30
    for line in lines:
        cv2.putText(
            output,
            line,
            (10, y),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.6,
            HUD_COLOR,
            2,
            cv2.LINE_AA,
        )
        y += 26
    cv2.putText(
        output,
        "Keys: space=start/stop, l=landmarks, d=raw data, q/esc=quit",
        (10, output.shape[0] - 12),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.5,
        (220, 220, 220),
        1,
        cv2.LINE_AA,
    )
    return output


def raw_landmark_lines(hand) -> list[str]:
    lines = []
    for index in LABELED_LANDMARKS:
        point = hand.landmarks[index]
        lines.append(
            f"  {landmark_name(index)}: "
            f"({point.x:.3f}, {point.y:.3f}, {point.z:.3f})"
        )
    return lines


class HandTrackingSession:
    """One tracking session: ``open()`` brings the pipeline up, ``close()``
    tears it down in reverse order. A second session needs a second engine.
    """

    def __init__(
        self,
        config: AppConfig,
        engine_factory=None,
        opener=None,
        scheduler: Scheduler | None = None,
        sink: FrameSink | None = None,
    ) -> None:
        self.config = config
        self.adapter = HandTrackingSystem(config.tracking, engine_factory)
        self.camera = CameraSource(opener)
        self.sink = sink or FrameSink()
        self.renderer = OverlayRenderer(mirror=config.mirror)
        self.scheduler = scheduler or DisplayScheduler(
            present=self.present, on_key=self.handle_key
        )
        self.loop = TrackingLoop(self.camera, self.adapter, self.renderer, self.scheduler)
        self.loop.set_result_handler(self._on_result)
        self.show_landmarks = config.show_landmarks
        self.show_raw = False
        self.latest_result: HandTrackingResult | None = None
        self.status = "Initializing..."
        self._consumer: Callable[[HandTrackingResult], None] | None = None

    def set_result_handler(self, handler: Callable[[HandTrackingResult], None] | None) -> None:
        self._consumer = handler

    def _on_result(self, result: HandTrackingResult) -> None:
        self.latest_result = result
        if self._consumer is not None:
            self._consumer(result)

    def open(self) -> None:
        try:
            self.adapter.initialize()
            self.camera.request_access(self.config.camera)
            self.camera.attach(self.sink)
        except HandTrackingError as exc:
            self.status = f"Error: {exc}"
            self.close()
            raise
        self.status = "Ready"
        if self.loop.start():
            self.status = "Tracking"

    def close(self) -> None:
        try:
            self.loop.stop()
            self.adapter.dispose()
        finally:
            self.camera.stop()

    def __enter__(self) -> "HandTrackingSession":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def toggle_tracking(self) -> None:
        if self.loop.is_running():
            self.loop.stop()
            self.status = "Ready"
        elif self.loop.start():
            self.status = "Tracking"

    def handle_key(self, key: int) -> None:
        if key in (27, ord("q")):
            self.scheduler.quit()
        elif key == ord(" "):
            self.toggle_tracking()
        elif key == ord("l"):
            self.show_landmarks = not self.show_landmarks
        elif key == ord("d"):
            self.show_raw = not self.show_raw

    def compose_view(self) -> np.ndarray | None:
        if not self.loop.is_running() and self.camera.is_attached():
            # No tick is pulling frames; keep the preview live.
            self.camera.current_frame()
        frame = self.sink.last_frame
        if frame is None:
            return None
        output = frame.copy() if self.config.show_video else np.zeros_like(frame)
        if self.config.mirror:
            output = cv2.flip(output, 1)
        if (
            self.show_landmarks
            and self.loop.is_running()
            and self.loop.surface is not None
            and self.loop.surface.shape[:2] == output.shape[:2]
        ):
            output = compose(output, self.loop.surface)
        return draw_status(
            output,
            self.status,
            self.latest_result,
            self.config.tracking.num_hands,
            acceleration=getattr(self.adapter.engine, "acceleration_mode", None),
            show_raw=self.show_raw,
        )

    def present(self) -> None:
        view = self.compose_view()
        if view is not None:
            cv2.imshow(WINDOW_NAME, view)

    def run(self) -> None:
        with self:
            try:
                self.scheduler.run()
            finally:
                cv2.destroyAllWindows()


def main(argv: Sequence[str] | None = None) -> int:
    config = parse_args(argv)
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if config.list_cameras:
        cameras = list_available_cameras(config.camera)
        if cameras:
            print("Available cameras:")
            for camera_index, backend_name in cameras:
                print(f"  - index {camera_index} via {backend_name}")
        else:
            print("No camera was detected.")
        return 0

    session = HandTrackingSession(config)
    try:
        session.run()
    except HandTrackingError as exc:
        logger.debug("Setup failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
