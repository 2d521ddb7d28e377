#!/usr/bin/env python3
from __future__ import annotations

import argparse
from dataclasses import dataclass, field, replace
from typing import Sequence


DEFAULT_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/1/hand_landmarker.task"
)

FACING_MODES = ("user", "environment")
CAMERA_BACKENDS = ("auto", "avfoundation", "any")


@dataclass(frozen=True)
class HandTrackingConfig:
    model_asset_path: str = DEFAULT_MODEL_URL
    num_hands: int = 2
    min_hand_detection_confidence: float = 0.5
    min_hand_presence_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    use_gpu_delegate: bool = True

    def __post_init__(self) -> None:
        if self.num_hands < 1:
            raise ValueError(f"num_hands must be >= 1, got {self.num_hands}")
        for name in (
            "min_hand_detection_confidence",
            "min_hand_presence_confidence",
            "min_tracking_confidence",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")


@dataclass(frozen=True)
class CameraConstraints:
    # Width, height and frame rate are hints; drivers may ignore them.
    width: int = 1280
    height: int = 720
    frame_rate: int = 30
    facing_mode: str = "user"
    camera_index: int = 0
    backend: str = "auto"

    def describe(self) -> str:
        return f"{self.width}x{self.height} @ {self.frame_rate} FPS"


FALLBACK_CONSTRAINTS = CameraConstraints(width=640, height=480, frame_rate=15)


def fallback_for(constraints: CameraConstraints) -> CameraConstraints:
    """Lower resolution/frame rate on the same device and backend."""
    return replace(
        FALLBACK_CONSTRAINTS,
        facing_mode=constraints.facing_mode,
        camera_index=constraints.camera_index,
        backend=constraints.backend,
    )


@dataclass
class AppConfig:
    tracking: HandTrackingConfig = field(default_factory=HandTrackingConfig)
    camera: CameraConstraints = field(default_factory=CameraConstraints)
    show_video: bool = True
    show_landmarks: bool = True
    mirror: bool = True
    list_cameras: bool = False
    log_level: str = "INFO"


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def parse_args(argv: Sequence[str] | None = None) -> AppConfig:
    parser = argparse.ArgumentParser(
        description="Live hand landmark tracking with skeleton overlay."
    )
    parser.add_argument("--camera", type=int, default=0, help="Camera index (default: 0)")
    parser.add_argument(
        "--camera-backend",
        type=str,
        choices=CAMERA_BACKENDS,
        default="auto",
        help="Video backend selection (default: auto)",
    )
    parser.add_argument(
        "--facing-mode",
        type=str,
        choices=FACING_MODES,
        default="user",
        help="Which way the camera faces; 'user' mirrors the preview (default: user)",
    )
    parser.add_argument(
        "--width", type=int, default=1280, help="Requested camera width (default: 1280)"
    )
    parser.add_argument(
        "--height", type=int, default=720, help="Requested camera height (default: 720)"
    )
    parser.add_argument(
        "--frame-rate", type=int, default=30, help="Requested camera FPS (default: 30)"
    )
    parser.add_argument("--num-hands", type=int, default=2, help="Max hands to detect")
    parser.add_argument(
        "--min-detection-confidence",
        type=float,
        default=0.5,
        help="Minimum hand detection confidence",
    )
    parser.add_argument(
        "--min-presence-confidence",
        type=float,
        default=0.5,
        help="Minimum hand presence confidence",
    )
    parser.add_argument(
        "--min-tracking-confidence",
        type=float,
        default=0.5,
        help="Minimum hand tracking confidence",
    )
    parser.add_argument(
        "--model-path",
        type=str,
        default=DEFAULT_MODEL_URL,
        help="hand_landmarker.task file path or URL (default: public float16 model)",
    )
    parser.add_argument(
        "--cpu-only",
        action="store_true",
        help="Skip the GPU delegate attempt",
    )
    parser.add_argument(
        "--hide-video",
        action="store_true",
        help="Draw the overlay on a black background instead of the camera image",
    )
    parser.add_argument(
        "--hide-landmarks",
        action="store_true",
        help="Start with the landmark overlay hidden (toggle with 'l')",
    )
    parser.add_argument(
        "--list-cameras",
        action="store_true",
        help="Check camera indices 0..5 and print available devices, then exit",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="INFO",
        help="Logging verbosity (default: INFO)",
    )
    args = parser.parse_args(argv)

    tracking = HandTrackingConfig(
        model_asset_path=args.model_path,
        num_hands=max(1, int(args.num_hands)),
        min_hand_detection_confidence=_clamp_unit(args.min_detection_confidence),
        min_hand_presence_confidence=_clamp_unit(args.min_presence_confidence),
        min_tracking_confidence=_clamp_unit(args.min_tracking_confidence),
        use_gpu_delegate=not args.cpu_only,
    )
    camera = CameraConstraints(
        width=max(160, int(args.width)),
        height=max(120, int(args.height)),
        frame_rate=max(1, int(args.frame_rate)),
        facing_mode=args.facing_mode,
        camera_index=args.camera,
        backend=args.camera_backend,
    )
    return AppConfig(
        tracking=tracking,
        camera=camera,
        show_video=not args.hide_video,
        show_landmarks=not args.hide_landmarks,
        mirror=args.facing_mode == "user",
        list_cameras=args.list_cameras,
        log_level=args.log_level,
    )
