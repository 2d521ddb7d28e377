"""Tests for configuration validation and CLI parsing."""

import pytest

from tracking_config import (
    DEFAULT_MODEL_URL,
    FALLBACK_CONSTRAINTS,
    CameraConstraints,
    HandTrackingConfig,
    fallback_for,
    parse_args,
)


class TestHandTrackingConfig:
    def test_defaults(self):
        config = HandTrackingConfig()
        assert config.model_asset_path == DEFAULT_MODEL_URL
        assert config.num_hands == 2
        assert config.min_hand_detection_confidence == 0.5

    def test_rejects_zero_hands(self):
        with pytest.raises(ValueError):
            HandTrackingConfig(num_hands=0)

    @pytest.mark.parametrize(
        "field", ["min_hand_detection_confidence", "min_hand_presence_confidence", "min_tracking_confidence"]
    )
    def test_rejects_thresholds_outside_unit_range(self, field):
        with pytest.raises(ValueError):
            HandTrackingConfig(**{field: 1.5})

    def test_is_immutable(self):
        config = HandTrackingConfig()
        with pytest.raises(AttributeError):
            config.num_hands = 4


class TestCameraConstraints:
    def test_fallback_keeps_device(self):
        requested = CameraConstraints(camera_index=3, backend="any", facing_mode="environment")

        fallback = fallback_for(requested)

        assert (fallback.width, fallback.height, fallback.frame_rate) == (640, 480, 15)
        assert fallback.camera_index == 3
        assert fallback.backend == "any"
        assert fallback.facing_mode == "environment"
        assert FALLBACK_CONSTRAINTS.camera_index == 0


class TestParseArgs:
    def test_defaults(self):
        config = parse_args([])
        assert config.tracking.num_hands == 2
        assert config.tracking.use_gpu_delegate is True
        assert config.camera.width == 1280
        assert config.camera.height == 720
        assert config.camera.frame_rate == 30
        assert config.mirror is True
        assert config.log_level == "INFO"

    def test_values_are_clamped(self):
        config = parse_args(
            [
                "--num-hands",
                "0",
                "--min-detection-confidence",
                "1.7",
                "--width",
                "10",
                "--frame-rate",
                "0",
            ]
        )
        assert config.tracking.num_hands == 1
        assert config.tracking.min_hand_detection_confidence == 1.0
        assert config.camera.width == 160
        assert config.camera.frame_rate == 1

    def test_environment_camera_is_not_mirrored(self):
        config = parse_args(["--facing-mode", "environment", "--cpu-only", "--log-level", "debug"])
        assert config.mirror is False
        assert config.camera.facing_mode == "environment"
        assert config.tracking.use_gpu_delegate is False
        assert config.log_level == "DEBUG"
