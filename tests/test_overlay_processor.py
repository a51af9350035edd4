from types import SimpleNamespace

import pytest

from helmet_engine.common.config import load_config
from helmet_engine.common.enums import FaceplateState, PoseState
from helmet_engine.common.models import FrameMetadata
from helmet_engine.processing.faceplate_animator import FaceplateAnimator
from helmet_engine.processing.overlay_processor import OverlayProcessor


def frame(frame_id, timestamp=None):
    return FrameMetadata(frame_id=frame_id, timestamp=timestamp or frame_id / 30.0,
                         source_resolution=(640, 480))


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def processor(config, clock):
    return OverlayProcessor(config, animator=FaceplateAnimator(config['animation'], clock=clock))


def test_first_face_is_tracked_and_drawn(processor, landmarks):
    result = processor.process_landmarks(landmarks, frame(1), now_ms=0.0)

    assert result.status == PoseState.TRACKING
    assert result.smoothed_pose == result.raw_pose
    assert result.shapes is not None and len(result.shapes) > 0
    assert result.faceplate_state == FaceplateState.CLOSED


def test_no_face_before_tracking_is_searching(processor):
    result = processor.process_landmarks(None, frame(1), now_ms=0.0)

    assert result.status == PoseState.SEARCHING
    assert result.smoothed_pose is None
    assert result.shapes is None


def test_dropout_holds_pose_and_draws_nothing(processor, landmarks):
    tracked = processor.process_landmarks(landmarks, frame(1), now_ms=0.0)
    lost = processor.process_landmarks(None, frame(2), now_ms=33.0)

    assert lost.status == PoseState.LOST_TARGET
    assert lost.smoothed_pose == tracked.smoothed_pose
    assert lost.shapes is None


@pytest.mark.parametrize("bad", [
    [],
    [[0.1, 0.2], [0.3]],
    "garbage",
    [SimpleNamespace(x=0.1, y=0.2), object()],
])
def test_malformed_landmarks_are_treated_as_no_face(processor, bad):
    result = processor.process_landmarks(bad, frame(1), now_ms=0.0)

    assert result.status == PoseState.SEARCHING
    assert result.shapes is None


def test_degenerate_landmarks_are_treated_as_no_face(processor, landmarks, make_landmarks):
    tracked = processor.process_landmarks(landmarks, frame(1), now_ms=0.0)
    degenerate = make_landmarks(left_eye_outer=(0.5, 0.4), right_eye_outer=(0.5, 0.4))
    result = processor.process_landmarks(degenerate, frame(2), now_ms=33.0)

    assert result.status == PoseState.LOST_TARGET
    assert result.raw_pose is None
    assert result.smoothed_pose == tracked.smoothed_pose
    assert result.shapes is None


def test_smoothing_applied_after_first_frame(processor, landmarks, make_landmarks):
    first = processor.process_landmarks(landmarks, frame(1), now_ms=0.0)
    moved = make_landmarks(
        left_eye_outer=(0.5, 0.4), right_eye_outer=(0.7, 0.4), nose_tip=(0.6, 0.5), chin=(0.6, 0.7))
    second = processor.process_landmarks(moved, frame(2), now_ms=33.0)

    assert first.smoothed_pose.center_x < second.smoothed_pose.center_x < second.raw_pose.center_x


def test_toggle_drives_faceplate_progress(processor, landmarks, clock):
    processor.toggle()
    clock.advance(175)
    mid = processor.process_landmarks(landmarks, frame(1), now_ms=clock())
    clock.advance(175)
    done = processor.process_landmarks(landmarks, frame(2), now_ms=clock())

    assert mid.faceplate_state == FaceplateState.ANIMATING
    assert mid.faceplate_progress == pytest.approx(0.5)
    assert done.faceplate_progress == 1.0
    assert done.faceplate_state == FaceplateState.OPEN
    assert processor.current_progress(clock()) == 1.0


def test_set_progress_delegates_to_animator(processor, clock):
    processor.set_progress(0.5)
    clock.advance(1000)

    assert processor.current_progress() == 0.5


def test_processors_do_not_share_state(config, landmarks):
    a = OverlayProcessor(config)
    b = OverlayProcessor(config)
    a.process_landmarks(landmarks, frame(1))
    a.toggle()

    assert b.smoother.pose is None
    assert b.animator.target == 0.0


def test_reset_snaps_to_next_face(processor, landmarks, make_landmarks):
    processor.process_landmarks(landmarks, frame(1), now_ms=0.0)
    processor.reset()
    moved = make_landmarks(left_eye_outer=(0.5, 0.4), right_eye_outer=(0.7, 0.4))
    result = processor.process_landmarks(moved, frame(2), now_ms=33.0)

    assert result.smoothed_pose == result.raw_pose


class StubTracker:
    def __init__(self, landmarks):
        self.landmarks = landmarks
        self.calls = []
        self.closed = False

    def detect(self, image, timestamp):
        self.calls.append(timestamp)
        return self.landmarks

    def close(self):
        self.closed = True


def test_process_frame_uses_tracker(config, landmarks):
    tracker = StubTracker(landmarks)
    processor = OverlayProcessor(config, tracker=tracker)
    result = processor.process_frame(object(), frame(3, timestamp=1.5))

    assert tracker.calls == [1.5]
    assert result.status == PoseState.TRACKING
    assert 'detection_ms' in result.performance_metrics
    processor.close()
    assert tracker.closed


def test_process_frame_without_tracker_fails(processor):
    with pytest.raises(RuntimeError):
        processor.process_frame(object(), frame(1))
