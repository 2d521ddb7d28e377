#!/usr/bin/env python3
"""Detection engine adapter: lifecycle, per-frame invocation, normalization."""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable

from hand_tracking_types import (
    LANDMARK_COUNT,
    HandData,
    Handedness,
    HandTrackingResult,
    Landmark,
)
from tracking_config import HandTrackingConfig
from tracking_errors import AdapterStateError, InitializationError


logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class FrameRateEstimator:
    """Frames counted per ~1 s window, published at most once per window."""

    def __init__(self, clock: Callable[[], float] | None = None, window_ms: float = 1000.0) -> None:
        self._clock = clock or monotonic_ms
        self.window_ms = window_ms
        self.reset()

    def reset(self) -> None:
        self._frame_count = 0
        self._rate = 0.0
        self._last_publication = self._clock()

    @property
    def rate(self) -> float:
        return self._rate

    def tick(self) -> float:
        self._frame_count += 1
        now = self._clock()
        if now - self._last_publication > self.window_ms:
            self._rate = float(self._frame_count)
            self._frame_count = 0
            self._last_publication = now
        return self._rate


class AdapterState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    DISPOSED = "disposed"


def _default_engine_factory(config: HandTrackingConfig):
    from mediapipe_engine import MediaPipeHandEngine

    return MediaPipeHandEngine.create(config)


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def _to_landmark(raw) -> Landmark:
    visibility = getattr(raw, "visibility", None)
    return Landmark(
        x=float(raw.x),
        y=float(raw.y),
        z=float(raw.z),
        visibility=None if visibility is None else _clamp_unit(visibility),
    )


class HandTrackingSystem:
    def __init__(
        self,
        config: HandTrackingConfig,
        engine_factory: Callable[[HandTrackingConfig], object] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.config = config
        self._engine_factory = engine_factory or _default_engine_factory
        self._engine = None
        self.state = AdapterState.UNINITIALIZED
        self.frame_rate = FrameRateEstimator(clock)

    def initialize(self) -> None:
        if self.state is AdapterState.READY:
            raise AdapterStateError(
                "Hand tracking is already initialized; dispose() it first"
            )
        try:
            engine = self._engine_factory(self.config)
        except Exception as exc:
            logger.error("Failed to initialize hand landmarker: %s", exc)
            raise InitializationError(
                f"Failed to initialize hand tracking: {exc}"
            ) from exc
        self._engine = engine
        self.frame_rate.reset()
        self.state = AdapterState.READY
        logger.info(
            "Hand tracking ready (num_hands=%d, model=%s)",
            self.config.num_hands,
            self.config.model_asset_path,
        )

    def is_ready(self) -> bool:
        return self.state is AdapterState.READY and self._engine is not None

    @property
    def engine(self):
        return self._engine

    def process_frame(self, frame, timestamp_ms: int) -> HandTrackingResult | None:
        if not self.is_ready():
            return None

        timestamp_ms = int(timestamp_ms)
        try:
            raw = self._engine.detect(frame, timestamp_ms)
        except Exception:
            logger.exception("Error processing frame at %d ms", timestamp_ms)
            return None

        frame_rate = self.frame_rate.tick()
        return HandTrackingResult(
            timestamp=timestamp_ms,
            frame_rate=frame_rate,
            hands=tuple(self._normalize_hands(raw, timestamp_ms)),
        )

    def _normalize_hands(self, raw, timestamp_ms: int) -> list[HandData]:
        hand_landmarks = getattr(raw, "hand_landmarks", None) or []
        world_landmarks = getattr(raw, "hand_world_landmarks", None) or []
        handedness = getattr(raw, "handedness", None) or []

        hands = []
        for i, landmarks in enumerate(hand_landmarks):
            if len(hands) >= self.config.num_hands:
                break
            if i >= len(handedness) or not handedness[i]:
                logger.warning("Dropping hand %d: no handedness reported", i)
                continue
            top_category = handedness[i][0]
            try:
                label = Handedness(top_category.category_name)
            except ValueError:
                logger.warning(
                    "Dropping hand %d: unknown handedness %r",
                    i,
                    top_category.category_name,
                )
                continue

            world = world_landmarks[i] if i < len(world_landmarks) else None
            if not world:
                world = landmarks
            if len(landmarks) != LANDMARK_COUNT or len(world) != LANDMARK_COUNT:
                logger.warning(
                    "Dropping hand %d: expected %d landmarks, got %d/%d",
                    i,
                    LANDMARK_COUNT,
                    len(landmarks),
                    len(world),
                )
                continue

            hands.append(
                HandData(
                    handedness=label,
                    landmarks=tuple(_to_landmark(point) for point in landmarks),
                    world_landmarks=tuple(_to_landmark(point) for point in world),
                    timestamp=timestamp_ms,
                    confidence=_clamp_unit(top_category.score),
                )
            )
        return hands

    def dispose(self) -> None:
        engine, self._engine = self._engine, None
        if self.state is AdapterState.READY:
            self.state = AdapterState.DISPOSED
        if engine is not None:
            engine.close()
            logger.info("Hand tracking disposed")
