# helmet_overlay/helmet_engine/processing/pose_smoother.py
import math
from typing import Optional
from ..common.models import Pose, wrap_angle

def angle_delta(target: float, current: float) -> float:
    """Shortest signed angular difference from ``current`` to ``target``."""
    d = target - current
    return math.atan2(math.sin(d), math.cos(d))

def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t

class PoseSmoother:
    """
    Exponential low-pass filter over the pose stream.
    Center and scale are interpolated linearly; rotation follows the shortest arc
    so the overlay does not spin when the raw angle crosses +/-pi.
    """
    def __init__(self, factor: float = 0.25, max_rotation_step: Optional[float] = None):
        if not 0.0 < factor <= 1.0:
            raise ValueError(f"Smoothing factor must be in (0, 1], got {factor}")
        if max_rotation_step is not None and max_rotation_step <= 0:
            raise ValueError("max_rotation_step must be positive")
        self.factor = factor
        self.max_rotation_step = max_rotation_step
        self._pose: Optional[Pose] = None

    @classmethod
    def from_config(cls, config: Optional[dict] = None) -> 'PoseSmoother':
        config = config or {}
        return cls(
            factor=float(config.get('factor', 0.25)),
            max_rotation_step=config.get('max_rotation_step'),
        )

    @property
    def pose(self) -> Optional[Pose]:
        return self._pose

    @property
    def initialized(self) -> bool:
        return self._pose is not None

    def reset(self):
        self._pose = None

    def update(self, raw_pose: Optional[Pose]) -> Optional[Pose]:
        # No face this frame: hold the last pose without decay
        if raw_pose is None:
            return self._pose

        if self._pose is None:
            self._pose = raw_pose
            return self._pose

        k = self.factor
        current = self._pose
        step = angle_delta(raw_pose.rotation, current.rotation) * k
        if self.max_rotation_step is not None:
            step = max(-self.max_rotation_step, min(self.max_rotation_step, step))

        self._pose = Pose(
            center_x=lerp(current.center_x, raw_pose.center_x, k),
            center_y=lerp(current.center_y, raw_pose.center_y, k),
            scale=lerp(current.scale, raw_pose.scale, k),
            rotation=wrap_angle(current.rotation + step),
        )
        return self._pose
