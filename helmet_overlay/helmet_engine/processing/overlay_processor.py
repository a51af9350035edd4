# helmet_overlay/helmet_engine/processing/overlay_processor.py
import logging
import time
import numpy as np
from typing import Optional
from ..common.models import OverlayResult, FrameMetadata
from ..common.enums import PoseState
from ..common.exceptions import PoseUnavailable
from ..geometry.helmet_builder import HelmetGeometryBuilder
from .faceplate_animator import FaceplateAnimator
from .pose_estimator import PoseEstimator, as_landmark_array
from .pose_smoother import PoseSmoother

logger = logging.getLogger(__name__)

class OverlayProcessor:
    """Runs landmarks -> pose -> smoothed pose -> helmet shapes for one overlay.

    Owns its smoothing and animation state, so several overlays can coexist.
    """

    def __init__(self, config: dict, tracker=None, animator: Optional[FaceplateAnimator] = None):
        self.config = config
        self.state = PoseState.INITIALIZING

        self.tracker = tracker
        self.estimator = PoseEstimator(config.get('pose'))
        self.smoother = PoseSmoother.from_config(config.get('smoothing'))
        self.animator = animator or FaceplateAnimator(config.get('animation'))
        self.builder = HelmetGeometryBuilder.from_config(config.get('style'))

        self.state = PoseState.SEARCHING
        self.last_detection_time = 0.0

    def process_frame(self, frame: np.ndarray, metadata: FrameMetadata) -> OverlayResult:
        """Detects landmarks in ``frame`` with the tracker and processes them."""
        if self.tracker is None:
            raise RuntimeError("OverlayProcessor was created without a tracker")
        start_time = time.perf_counter()
        landmarks = self.tracker.detect(frame, metadata.timestamp)
        detection_ms = (time.perf_counter() - start_time) * 1000
        result = self.process_landmarks(landmarks, metadata)
        result.processing_time_ms += detection_ms
        result.performance_metrics['detection_ms'] = detection_ms
        return result

    def process_landmarks(self, landmarks, metadata: FrameMetadata,
                          now_ms: Optional[float] = None) -> OverlayResult:
        """Processes one frame's landmarks (or None when no face was found)."""
        start_time = time.perf_counter()
        width, height = metadata.source_resolution
        progress = self.animator.tick(now_ms)

        points = as_landmark_array(landmarks)
        raw_pose = None
        if points is not None:
            try:
                raw_pose = self.estimator.estimate(points, width, height)
            except PoseUnavailable as e:
                logger.debug(f"Frame {metadata.frame_id}: pose unavailable ({e})")

        smoothed = self.smoother.update(raw_pose)
        shapes = None
        if raw_pose is not None:
            self.state = PoseState.TRACKING
            self.last_detection_time = metadata.timestamp
            shapes = self.builder.build(smoothed, progress)
        elif self.smoother.initialized:
            self.state = PoseState.LOST_TARGET
        else:
            self.state = PoseState.SEARCHING

        processing_time_ms = (time.perf_counter() - start_time) * 1000
        return OverlayResult(
            timestamp=metadata.timestamp,
            frame_id=metadata.frame_id,
            processing_time_ms=processing_time_ms,
            status=self.state,
            raw_pose=raw_pose,
            smoothed_pose=smoothed,
            faceplate_progress=progress,
            faceplate_state=self.animator.state,
            shapes=shapes,
            landmarks=points,
            performance_metrics={'overlay_ms': processing_time_ms},
        )

    def reset(self):
        """Forgets the smoothed pose; the next face snaps into place."""
        self.smoother.reset()
        self.state = PoseState.SEARCHING

    # Control surface, delegated to the animator
    def toggle(self, open: Optional[bool] = None, duration_ms: Optional[float] = None) -> float:
        return self.animator.toggle(open, duration_ms)

    def set_progress(self, value: float, duration_ms: Optional[float] = None) -> None:
        self.animator.set_progress(value, duration_ms)

    def current_progress(self, now_ms: Optional[float] = None) -> float:
        return self.animator.current_progress(now_ms)

    def close(self):
        if self.tracker is not None:
            self.tracker.close()
