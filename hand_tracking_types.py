#!/usr/bin/env python3
"""Canonical result model produced once per processed frame.

Results are frozen: a consumer owns what it receives and nothing is shared
across frames.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum


LANDMARK_COUNT = 21

LANDMARK_NAMES = (
    "WRIST",
    "THUMB_CMC",
    "THUMB_MCP",
    "THUMB_IP",
    "THUMB_TIP",
    "INDEX_FINGER_MCP",
    "INDEX_FINGER_PIP",
    "INDEX_FINGER_DIP",
    "INDEX_FINGER_TIP",
    "MIDDLE_FINGER_MCP",
    "MIDDLE_FINGER_PIP",
    "MIDDLE_FINGER_DIP",
    "MIDDLE_FINGER_TIP",
    "RING_FINGER_MCP",
    "RING_FINGER_PIP",
    "RING_FINGER_DIP",
    "RING_FINGER_TIP",
    "PINKY_MCP",
    "PINKY_PIP",
    "PINKY_DIP",
    "PINKY_TIP",
)


def landmark_name(index: int) -> str:
    if 0 <= index < len(LANDMARK_NAMES):
        return LANDMARK_NAMES[index]
    return f"LANDMARK_{index}"


class Handedness(str, Enum):
    LEFT = "Left"
    RIGHT = "Right"


@dataclass(frozen=True)
class Landmark:
    # Image landmarks are normalized to the frame; world landmarks are metric
    # and centered on the hand.
    x: float
    y: float
    z: float
    visibility: float | None = None

    def to_dict(self) -> dict:
        data = {"x": self.x, "y": self.y, "z": self.z}
        if self.visibility is not None:
            data["visibility"] = self.visibility
        return data


@dataclass(frozen=True)
class HandData:
    handedness: Handedness
    landmarks: tuple[Landmark, ...]
    world_landmarks: tuple[Landmark, ...]
    timestamp: int
    confidence: float

    def __post_init__(self) -> None:
        if len(self.landmarks) != LANDMARK_COUNT:
            raise ValueError(
                f"expected {LANDMARK_COUNT} landmarks, got {len(self.landmarks)}"
            )
        if len(self.world_landmarks) != LANDMARK_COUNT:
            raise ValueError(
                f"expected {LANDMARK_COUNT} world landmarks, "
                f"got {len(self.world_landmarks)}"
            )

    def to_dict(self) -> dict:
        return {
            "handedness": self.handedness.value,
            "landmarks": [landmark.to_dict() for landmark in self.landmarks],
            "worldLandmarks": [
                landmark.to_dict() for landmark in self.world_landmarks
            ],
            "timestamp": self.timestamp,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class HandTrackingResult:
    timestamp: int
    frame_rate: float
    hands: tuple[HandData, ...] = ()

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "frameRate": self.frame_rate,
            "hands": [hand.to_dict() for hand in self.hands],
        }

    def to_json(self) -> str:
        """Pretty-printed UTF-8 export document."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
