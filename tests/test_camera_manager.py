import time

import numpy as np
import pytest

from helmet_engine.camera import camera_manager
from helmet_engine.camera.camera_manager import CameraManager


class FakeCapture:
    opened_sources = []

    def __init__(self, source):
        self.source = source
        self.released = False
        FakeCapture.opened_sources.append(source)

    def isOpened(self):
        return self.source != 'broken'

    def set(self, prop, value):
        return True

    def get(self, prop):
        return 0.0

    def grab(self):
        time.sleep(0.001)
        return not self.released

    def retrieve(self):
        frame = np.zeros((4, 6, 3), dtype=np.uint8)
        frame[:, 0] = 255  # left column marks orientation
        return True, frame

    def release(self):
        self.released = True


@pytest.fixture(autouse=True)
def fake_capture(monkeypatch):
    FakeCapture.opened_sources = []
    monkeypatch.setattr(camera_manager.cv2, 'VideoCapture', FakeCapture)


def config(**overrides):
    base = {'source': 0, 'resolution': [6, 4], 'target_fps': 30, 'buffer_size': 2, 'mirror': True}
    base.update(overrides)
    return base


def wait_for_frame(camera, timeout=2.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        frame, metadata = camera.get_frame()
        if frame is not None:
            return frame, metadata
        time.sleep(0.005)
    raise AssertionError("no frame captured")


def test_unopenable_source_raises():
    with pytest.raises(IOError):
        CameraManager(config(source='broken'))


def test_frames_are_mirrored_with_metadata():
    with CameraManager(config()) as camera:
        frame, metadata = wait_for_frame(camera)

    assert metadata.source_resolution == (6, 4)
    assert metadata.frame_id >= 1
    assert frame[:, -1].all() and not frame[:, 0].any()


def test_mirroring_can_be_disabled():
    with CameraManager(config(mirror=False)) as camera:
        frame, _ = wait_for_frame(camera)

    assert frame[:, 0].all()


def test_switch_source_releases_previous_capture():
    with CameraManager(config()) as camera:
        first = camera._cap
        camera.switch_source(1)
        wait_for_frame(camera)

        assert camera.source == 1
        assert first.released
        assert camera.get_stats()['source'] == 1

    assert FakeCapture.opened_sources == [0, 1]


def test_failed_switch_keeps_current_source():
    with CameraManager(config()) as camera:
        with pytest.raises(IOError):
            camera.switch_source('broken')

        assert camera.source == 0
        assert not camera._cap.released
