# helmet_overlay/helmet_engine/processing/pose_estimator.py
import math
import numpy as np
from typing import Optional, Sequence
from ..common.enums import FaceLandmark
from ..common.exceptions import PoseUnavailable
from ..common.models import Pose, wrap_angle

REQUIRED_LANDMARKS = (
    FaceLandmark.LEFT_EYE_OUTER,
    FaceLandmark.RIGHT_EYE_OUTER,
    FaceLandmark.NOSE_TIP,
    FaceLandmark.CHIN,
)

def as_landmark_array(landmarks) -> Optional[np.ndarray]:
    """Normalizes provider output to an (N, 3) float array.

    Accepts arrays, rows of (x, y[, z]) or objects with ``x``/``y``/``z``
    attributes. Returns None for empty or malformed input.
    """
    if landmarks is None:
        return None
    if not isinstance(landmarks, np.ndarray):
        try:
            landmarks = list(landmarks)
        except TypeError:
            return None
        if not landmarks:
            return None
        if hasattr(landmarks[0], 'x'):
            try:
                landmarks = [[lm.x, lm.y, getattr(lm, 'z', 0.0) or 0.0] for lm in landmarks]
            except (AttributeError, TypeError):
                return None
    try:
        array = np.asarray(landmarks, dtype=np.float64)
    except (TypeError, ValueError):
        return None
    if array.ndim != 2 or array.shape[0] == 0 or array.shape[1] < 2:
        return None
    if array.shape[1] == 2:
        array = np.hstack([array, np.zeros((array.shape[0], 1))])
    return array[:, :3]

class PoseEstimator:
    """Derives a rigid 2D pose from the eye corners, nose tip and chin.

    The raw scale is ``gain * (eye_weight * eye_distance + height_weight * nose_to_chin)``.
    With ``gain`` 1.0 this is the plain weighted face size; the default 1.9
    sizes the helmet shell around the head in the units ``HelmetStyle`` uses.
    """

    def __init__(self, config: Optional[dict] = None):
        config = config or {}
        self.eye_weight = float(config.get('eye_weight', 0.4))
        self.height_weight = float(config.get('height_weight', 0.6))
        self.gain = float(config.get('gain', 1.9))
        self.center_weights = np.asarray(config.get('center_weights', (1.0, 1.0, 1.0)), dtype=np.float64)
        self.min_scale = float(config.get('min_scale', 40.0))
        max_scale = config.get('max_scale')
        self.max_scale = float(max_scale) if max_scale is not None else None
        self.min_eye_distance = float(config.get('min_eye_distance', 1.0))

        if self.center_weights.shape != (3,) or self.center_weights.sum() <= 0:
            raise ValueError("center_weights must be three weights with a positive sum")
        if self.min_scale <= 0:
            raise ValueError("min_scale must be positive")
        if self.max_scale is not None and self.max_scale < self.min_scale:
            raise ValueError("max_scale must not be below min_scale")

    def scale_bounds(self, width: float, height: float):
        max_scale = self.max_scale if self.max_scale is not None else max(width, height, self.min_scale)
        return self.min_scale, max_scale

    def estimate(self, landmarks: Sequence, width: float, height: float) -> Pose:
        """Computes the pose for one frame; raises PoseUnavailable on degenerate input."""
        if width <= 0 or height <= 0:
            raise PoseUnavailable(f"Invalid frame size {width}x{height}")
        points = as_landmark_array(landmarks)
        if points is None:
            raise PoseUnavailable("No landmarks")
        needed = max(REQUIRED_LANDMARKS) + 1
        if points.shape[0] < needed:
            raise PoseUnavailable(f"Expected at least {needed} landmarks, got {points.shape[0]}")

        pixels = points[list(REQUIRED_LANDMARKS), :2] * np.array([width, height], dtype=np.float64)
        if not np.all(np.isfinite(pixels)):
            raise PoseUnavailable("Non-finite landmark coordinates")
        left_eye, right_eye, nose, chin = pixels

        dx, dy = right_eye - left_eye
        eye_distance = math.hypot(dx, dy)
        if eye_distance < self.min_eye_distance:
            raise PoseUnavailable(f"Eye distance {eye_distance:.3f}px below {self.min_eye_distance}px")

        weights = self.center_weights / self.center_weights.sum()
        center_x, center_y = weights @ pixels[:3]

        face_height = float(np.linalg.norm(chin - nose))
        raw_scale = self.gain * (self.eye_weight * eye_distance + self.height_weight * face_height)
        lo, hi = self.scale_bounds(width, height)
        scale = min(max(raw_scale, lo), hi)

        return Pose(
            center_x=float(center_x),
            center_y=float(center_y),
            scale=scale,
            rotation=wrap_angle(math.atan2(dy, dx)),
        )
