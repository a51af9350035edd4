import numpy as np
import pytest

from helmet_engine.common.enums import FaceLandmark
from helmet_engine.common.models import FrameMetadata, Pose

NUM_LANDMARKS = 478

DEFAULT_POINTS = {
    FaceLandmark.LEFT_EYE_OUTER: (0.4, 0.4),
    FaceLandmark.RIGHT_EYE_OUTER: (0.6, 0.4),
    FaceLandmark.NOSE_TIP: (0.5, 0.5),
    FaceLandmark.CHIN: (0.5, 0.7),
    FaceLandmark.FOREHEAD: (0.5, 0.25),
    FaceLandmark.LEFT_CHEEK: (0.35, 0.5),
    FaceLandmark.RIGHT_CHEEK: (0.65, 0.5),
}


def build_landmarks(**overrides):
    """478-point FaceMesh-shaped array; keyword names are FaceLandmark members."""
    landmarks = np.full((NUM_LANDMARKS, 3), 0.5)
    landmarks[:, 2] = 0.0
    points = dict(DEFAULT_POINTS)
    for name, xy in overrides.items():
        points[FaceLandmark[name.upper()]] = xy
    for role, (x, y) in points.items():
        landmarks[role.value, :2] = (x, y)
    return landmarks


@pytest.fixture
def make_landmarks():
    return build_landmarks


@pytest.fixture
def landmarks():
    return build_landmarks()


@pytest.fixture
def metadata():
    return FrameMetadata(frame_id=1, timestamp=10.0, source_resolution=(640, 480))


@pytest.fixture
def pose():
    return Pose(center_x=320.0, center_y=240.0, scale=100.0, rotation=0.0)


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()
