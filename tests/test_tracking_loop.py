"""Tests for the cooperative tracking loop state machine."""

from types import SimpleNamespace

import numpy as np

from hand_tracking_system import HandTrackingSystem
from hand_tracking_types import HandTrackingResult
from tracking_config import HandTrackingConfig
from tracking_loop import LoopState, ManualScheduler, TrackingLoop


class FakeCamera:
    def __init__(self, attached=True, w=64, h=48):
        self.attached = attached
        self.frame = np.zeros((h, w, 3), dtype=np.uint8)

    def is_attached(self):
        return self.attached

    def current_frame(self):
        return self.frame if self.attached else None


class FakeAdapter:
    def __init__(self, ready=True, result="default"):
        self.ready = ready
        self.result = HandTrackingResult(0, 0.0) if result == "default" else result
        self.calls = []

    def is_ready(self):
        return self.ready

    def process_frame(self, frame, timestamp_ms):
        self.calls.append(timestamp_ms)
        return self.result


class FakeRenderer:
    def __init__(self):
        self.surfaces = []

    def render(self, result, surface):
        self.surfaces.append(surface.shape)
        return surface


class StepClock:
    def __init__(self, start=1000.0, step=16.0):
        self.now = start
        self.step = step

    def __call__(self):
        value = self.now
        self.now += self.step
        return value


def _loop(camera=None, adapter=None, clock=None):
    scheduler = ManualScheduler()
    renderer = FakeRenderer()
    loop = TrackingLoop(
        camera or FakeCamera(),
        adapter or FakeAdapter(),
        renderer,
        scheduler,
        clock=clock,
    )
    received = []
    loop.set_result_handler(received.append)
    return loop, scheduler, renderer, received


class TestStartStop:
    def test_start_requires_prerequisites(self):
        loop, scheduler, _, _ = _loop(camera=FakeCamera(attached=False))

        assert loop.start() is False
        assert loop.state is LoopState.IDLE
        assert scheduler.pending is None

        loop2, scheduler2, _, _ = _loop(adapter=FakeAdapter(ready=False))
        assert loop2.start() is False
        assert scheduler2.pending is None

    def test_start_schedules_first_tick(self):
        loop, scheduler, _, _ = _loop()

        assert loop.start() is True
        assert loop.is_running()
        assert scheduler.pending is not None

    def test_start_when_running_is_noop(self):
        loop, scheduler, _, _ = _loop()
        loop.start()
        first = scheduler.pending

        assert loop.start() is False
        assert scheduler.pending is first

    def test_stop_cancels_next_tick(self):
        loop, scheduler, _, received = _loop()
        loop.start()
        scheduler.run(3)

        loop.stop()

        assert loop.state is LoopState.IDLE
        assert scheduler.pending is None
        assert scheduler.step() is False
        assert len(received) == 3

    def test_stop_is_reentrant(self):
        loop, scheduler, _, received = _loop()
        loop.start()
        loop.stop()
        loop.stop()
        assert loop.start() is True
        scheduler.step()
        assert len(received) == 1

    def test_stop_from_handler_finishes_tick_without_rescheduling(self):
        loop, scheduler, _, _ = _loop()
        calls = []

        def handler(result):
            calls.append(result)
            loop.stop()

        loop.set_result_handler(handler)
        loop.start()
        scheduler.run(5)

        assert len(calls) == 1
        assert scheduler.pending is None


class TestTick:
    def test_tick_renders_and_forwards_result(self):
        adapter = FakeAdapter()
        loop, scheduler, renderer, received = _loop(adapter=adapter)
        loop.start()

        scheduler.step()

        assert received == [adapter.result]
        assert renderer.surfaces == [(48, 64, 3)]
        assert loop.surface.shape == (48, 64, 3)
        assert scheduler.pending is not None

    def test_timestamps_come_from_clock(self):
        adapter = FakeAdapter()
        loop, scheduler, _, _ = _loop(adapter=adapter, clock=StepClock())
        loop.start()

        scheduler.run(3)

        assert adapter.calls == [1000, 1016, 1032]

    def test_null_result_skips_render_and_callback(self):
        loop, scheduler, renderer, received = _loop(adapter=FakeAdapter(result=None))
        loop.start()

        scheduler.run(2)

        assert received == []
        assert renderer.surfaces == []
        assert scheduler.pending is not None

    def test_waits_passively_when_prerequisites_lost(self):
        camera = FakeCamera()
        adapter = FakeAdapter()
        loop, scheduler, _, received = _loop(camera=camera, adapter=adapter)
        loop.start()

        camera.attached = False
        scheduler.run(3)
        assert adapter.calls == []
        assert loop.is_running()
        assert scheduler.pending is not None

        camera.attached = True
        scheduler.step()
        assert len(received) == 1

    def test_detection_failure_keeps_loop_running(self):
        class ExplodingEngine:
            def detect(self, frame, timestamp_ms):
                raise RuntimeError("engine fault")

            def close(self):
                pass

        adapter = HandTrackingSystem(
            HandTrackingConfig(), engine_factory=lambda cfg: ExplodingEngine()
        )
        adapter.initialize()
        loop, scheduler, renderer, received = _loop(adapter=adapter)
        loop.start()

        assert scheduler.run(4) == 4
        assert received == []
        assert renderer.surfaces == []
        assert loop.is_running()

    def test_one_callback_per_tick(self):
        engine = SimpleNamespace(
            detect=lambda frame, ts: SimpleNamespace(
                hand_landmarks=[], hand_world_landmarks=[], handedness=[]
            ),
            close=lambda: None,
        )
        adapter = HandTrackingSystem(HandTrackingConfig(), engine_factory=lambda cfg: engine)
        adapter.initialize()
        loop, scheduler, _, received = _loop(adapter=adapter, clock=StepClock())
        loop.start()

        scheduler.run(5)

        assert len(received) == 5
        assert [r.timestamp for r in received] == [1000, 1016, 1032, 1048, 1064]
