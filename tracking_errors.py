#!/usr/bin/env python3
from __future__ import annotations


class HandTrackingError(Exception):
    """Base class for setup-time failures of the tracking pipeline."""


class InitializationError(HandTrackingError):
    """The detection engine could not be loaded."""


class AdapterStateError(InitializationError):
    """initialize() was called on an adapter that already holds an engine."""


class CameraAccessError(HandTrackingError):
    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class VideoAttachError(HandTrackingError):
    """The camera stream could not be bound to a frame sink."""
