#!/usr/bin/env python3
from __future__ import annotations

import logging
import sys
import time
from typing import Callable

import cv2

from tracking_config import CameraConstraints, fallback_for
from tracking_errors import CameraAccessError, VideoAttachError


logger = logging.getLogger(__name__)


def camera_backend_candidates(backend_choice: str):
    if backend_choice == "any":
        return [("any", cv2.CAP_ANY)]
    if backend_choice == "avfoundation":
        return [("avfoundation", cv2.CAP_AVFOUNDATION)]
    if sys.platform == "darwin":
        return [("avfoundation", cv2.CAP_AVFOUNDATION), ("any", cv2.CAP_ANY)]
    return [("any", cv2.CAP_ANY)]


def try_open_capture(constraints: CameraConstraints):
    for backend_name, backend_code in camera_backend_candidates(constraints.backend):
        capture = cv2.VideoCapture(constraints.camera_index, backend_code)
        # Requested size/FPS are ideals: the driver may pick something else,
        # so callers read back the real values.
        capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        capture.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*"MJPG"))
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.height)
        capture.set(cv2.CAP_PROP_FPS, constraints.frame_rate)
        if not capture.isOpened():
            capture.release()
            continue

        read_ok = False
        for _ in range(5):
            ok, _ = capture.read()
            if ok:
                read_ok = True
                break
            time.sleep(0.03)

        if read_ok:
            return capture, backend_name

        capture.release()
    return None, None


def open_stream(constraints: CameraConstraints):
    """Default stream opener: an opened ``cv2.VideoCapture`` or an error."""
    capture, backend_name = try_open_capture(constraints)
    if capture is None:
        raise OSError(
            f"Unable to open camera index {constraints.camera_index} "
            f"using backend='{constraints.backend}' at {constraints.describe()}"
        )
    logger.info(
        "Opened camera index %d via %s (%s requested)",
        constraints.camera_index,
        backend_name,
        constraints.describe(),
    )
    return capture


def list_available_cameras(constraints: CameraConstraints, max_index: int = 6):
    found = []
    for camera_index in range(max_index):
        candidate = CameraConstraints(
            width=constraints.width,
            height=constraints.height,
            frame_rate=constraints.frame_rate,
            camera_index=camera_index,
            backend=constraints.backend,
        )
        capture, backend_name = try_open_capture(candidate)
        if capture is None:
            continue
        found.append((camera_index, backend_name))
        capture.release()
    return found


def permission_hint() -> str:
    if sys.platform == "darwin":
        return (
            " macOS fix: System Settings -> Privacy & Security -> Camera, "
            "then enable access for your Terminal app and restart Terminal."
        )
    return " Close other camera apps or try another --camera index."


class FrameSink:
    """Presentation sink bound to a capture stream.

    ``load`` blocks until the stream delivers a first frame; ``play`` then
    lets ``current_frame`` pull live frames.
    """

    def __init__(self, ready_attempts: int = 10, retry_delay: float = 0.03) -> None:
        self.ready_attempts = ready_attempts
        self.retry_delay = retry_delay
        self._stream = None
        self._ready = False
        self._playing = False
        self.last_frame = None

    def load(self, stream) -> None:
        self._stream = stream
        self._ready = False
        for _ in range(self.ready_attempts):
            ok, frame = stream.read()
            if ok and frame is not None:
                self.last_frame = frame
                self._ready = True
                return
            time.sleep(self.retry_delay)
        self._stream = None
        raise OSError("Failed to load video stream")

    def play(self) -> None:
        if not self._ready:
            raise OSError("Video stream is not ready")
        self._playing = True

    def is_playing(self) -> bool:
        return self._playing and self._stream is not None

    def current_frame(self):
        if not self.is_playing():
            return None
        ok, frame = self._stream.read()
        if not ok:
            return None
        self.last_frame = frame
        return frame

    def frame_size(self) -> tuple[int, int]:
        if self.last_frame is None:
            return (0, 0)
        height, width = self.last_frame.shape[:2]
        return (width, height)

    def detach(self) -> None:
        self._stream = None
        self._ready = False
        self._playing = False
        self.last_frame = None


class CameraSource:
    """Owns one live capture stream until ``stop()``."""

    def __init__(self, opener: Callable[[CameraConstraints], object] | None = None) -> None:
        self._opener = opener or open_stream
        self._stream = None
        self._sink: FrameSink | None = None
        self.constraints: CameraConstraints | None = None

    @property
    def stream(self):
        return self._stream

    @property
    def sink(self) -> FrameSink | None:
        return self._sink

    def request_access(self, constraints: CameraConstraints | None = None):
        requested = constraints or CameraConstraints()
        if self._stream is not None:
            self.stop()
        try:
            self._stream = self._opener(requested)
            self.constraints = requested
            return self._stream
        except Exception as exc:
            logger.warning(
                "Camera request for %s failed (%s); retrying with fallback",
                requested.describe(),
                exc,
            )

        fallback = fallback_for(requested)
        try:
            self._stream = self._opener(fallback)
        except Exception as exc:
            logger.error("Fallback camera access failed: %s", exc)
            raise CameraAccessError(
                "Unable to access camera. Please check your camera permissions."
                + permission_hint(),
                cause=exc,
            ) from exc
        self.constraints = fallback
        return self._stream

    def attach(self, sink: FrameSink) -> None:
        if self._stream is None:
            raise VideoAttachError("No camera stream available")
        try:
            sink.load(self._stream)
            sink.play()
        except Exception as exc:
            sink.detach()
            raise VideoAttachError(f"Failed to attach video stream: {exc}") from exc
        self._sink = sink

    def is_attached(self) -> bool:
        return self._sink is not None and self._sink.is_playing()

    def current_frame(self):
        if self._sink is None:
            return None
        return self._sink.current_frame()

    def stop(self) -> None:
        if self._stream is not None:
            self._stream.release()
            self._stream = None
        if self._sink is not None:
            self._sink.detach()
            self._sink = None

    def is_active(self) -> bool:
        return self._stream is not None and bool(self._stream.isOpened())
