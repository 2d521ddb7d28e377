#!/usr/bin/env python3
from __future__ import annotations

import cv2
import numpy as np

from hand_tracking_types import Handedness, HandTrackingResult


FINGER_CONNECTIONS = {
    "thumb": ((0, 1), (1, 2), (2, 3), (3, 4)),
    "index": ((0, 5), (5, 6), (6, 7), (7, 8)),
    "middle": ((0, 9), (9, 10), (10, 11), (11, 12)),
    "ring": ((0, 13), (13, 14), (14, 15), (15, 16)),
    "pinky": ((0, 17), (17, 18), (18, 19), (19, 20)),
}

HAND_CONNECTIONS = tuple(
    edge for edges in FINGER_CONNECTIONS.values() for edge in edges
)

# Wrist and the five fingertips.
LABELED_LANDMARKS = (0, 4, 8, 12, 16, 20)

HANDEDNESS_COLORS = {
    Handedness.LEFT: (0, 0, 255),
    Handedness.RIGHT: (255, 0, 0),
}
LABEL_COLOR = (255, 255, 255)


class OverlayRenderer:
    """Draws the hand skeleton of one result onto a surface.

    Holds no per-frame state: output depends only on the result and the
    surface size. With ``mirror`` set, x is flipped so the overlay lines up
    with a mirrored preview while labels stay readable.
    """

    def __init__(
        self,
        mirror: bool = False,
        point_radius: int = 5,
        line_thickness: int = 2,
        font_scale: float = 0.4,
    ) -> None:
        self.mirror = mirror
        self.point_radius = point_radius
        self.line_thickness = line_thickness
        self.font_scale = font_scale

    def _to_pixel(self, landmark, width: int, height: int) -> tuple[int, int]:
        x = 1.0 - landmark.x if self.mirror else landmark.x
        return int(x * width), int(landmark.y * height)

    def render(self, result: HandTrackingResult, surface: np.ndarray) -> np.ndarray:
        surface[:] = 0
        height, width = surface.shape[:2]

        for hand in result.hands:
            color = HANDEDNESS_COLORS[hand.handedness]
            points = [self._to_pixel(lm, width, height) for lm in hand.landmarks]

            for index, point in enumerate(points):
                cv2.circle(surface, point, self.point_radius, color, -1, cv2.LINE_AA)
                if index in LABELED_LANDMARKS:
                    cv2.putText(
                        surface,
                        str(index),
                        (point[0] + 8, point[1] + 4),
                        cv2.FONT_HERSHEY_SIMPLEX,
                        self.font_scale,
                        LABEL_COLOR,
                        1,
                        cv2.LINE_AA,
                    )

            for start, end in HAND_CONNECTIONS:
                cv2.line(
                    surface,
                    points[start],
                    points[end],
                    color,
                    self.line_thickness,
                    cv2.LINE_AA,
                )
        return surface


def compose(frame: np.ndarray, surface: np.ndarray) -> np.ndarray:
    """Copy of ``frame`` with every non-black surface pixel drawn on top."""
    output = frame.copy()
    mask = surface.any(axis=2)
    output[mask] = surface[mask]
    return output
