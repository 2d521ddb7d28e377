#!/usr/bin/env python3
"""MediaPipe Tasks HandLandmarker bound to the detection-engine interface.

The engine returns MediaPipe's raw ``HandLandmarkerResult``; turning that
into the canonical result model is the adapter's job.
"""

from __future__ import annotations

import logging
import shutil
import urllib.error
import urllib.request
from pathlib import Path

import cv2
import mediapipe as mp

from tracking_config import HandTrackingConfig


logger = logging.getLogger(__name__)

MODEL_CACHE_DIR = Path(__file__).resolve().parent / "models"


def _is_url(locator: str) -> bool:
    return locator.startswith(("http://", "https://"))


def resolve_model_path(model_asset_path: str, cache_dir: Path | None = None) -> Path:
    if not _is_url(model_asset_path):
        path = Path(model_asset_path).expanduser().resolve()
        if not path.exists():
            raise FileNotFoundError(
                f"Model file not found at {path}. "
                "Pass a valid --model-path to a hand_landmarker.task file."
            )
        return path

    cache_dir = cache_dir or MODEL_CACHE_DIR
    model_path = cache_dir / Path(model_asset_path).name
    if model_path.exists():
        return model_path

    cache_dir.mkdir(parents=True, exist_ok=True)
    tmp_path = model_path.with_suffix(".task.tmp")
    logger.info("Downloading hand landmarker model from %s", model_asset_path)
    try:
        with urllib.request.urlopen(model_asset_path, timeout=60) as response:
            with open(tmp_path, "wb") as output_file:
                shutil.copyfileobj(response, output_file)
        tmp_path.replace(model_path)
    except (urllib.error.URLError, TimeoutError, OSError) as exc:
        tmp_path.unlink(missing_ok=True)
        raise RuntimeError(
            "Failed to download the hand landmarker model automatically. "
            "Download it manually from "
            f"{model_asset_path} and run with --model-path."
        ) from exc

    return model_path


class MediaPipeHandEngine:
    def __init__(self, hand_landmarker, acceleration_mode: str) -> None:
        self._hand_landmarker = hand_landmarker
        self.acceleration_mode = acceleration_mode
        self._last_timestamp_ms = -1

    @classmethod
    def create(cls, config: HandTrackingConfig) -> "MediaPipeHandEngine":
        model_path = resolve_model_path(config.model_asset_path)
        vision = mp.tasks.vision

        def _create_with_delegate(delegate):
            base_options = mp.tasks.BaseOptions(
                model_asset_path=str(model_path),
                delegate=delegate,
            )
            options = vision.HandLandmarkerOptions(
                base_options=base_options,
                running_mode=vision.RunningMode.VIDEO,
                num_hands=config.num_hands,
                min_hand_detection_confidence=config.min_hand_detection_confidence,
                min_hand_presence_confidence=config.min_hand_presence_confidence,
                min_tracking_confidence=config.min_tracking_confidence,
            )
            return vision.HandLandmarker.create_from_options(options)

        has_delegate = hasattr(mp.tasks.BaseOptions, "Delegate")
        if config.use_gpu_delegate and has_delegate:
            try:
                landmarker = _create_with_delegate(mp.tasks.BaseOptions.Delegate.GPU)
                return cls(landmarker, "GPU delegate")
            except Exception as exc:
                logger.warning("GPU delegate unavailable (%s); using CPU delegate", exc)

        landmarker = _create_with_delegate(
            mp.tasks.BaseOptions.Delegate.CPU if has_delegate else None
        )
        return cls(landmarker, "CPU delegate")

    def _monotonic_timestamp(self, timestamp_ms: int) -> int:
        # detect_for_video rejects timestamps that do not strictly increase.
        timestamp_ms = int(timestamp_ms)
        if timestamp_ms <= self._last_timestamp_ms:
            timestamp_ms = self._last_timestamp_ms + 1
        self._last_timestamp_ms = timestamp_ms
        return timestamp_ms

    def detect(self, frame, timestamp_ms: int):
        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_frame)
        return self._hand_landmarker.detect_for_video(
            mp_image, self._monotonic_timestamp(timestamp_ms)
        )

    def close(self) -> None:
        self._hand_landmarker.close()
