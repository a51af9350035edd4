# helmet_overlay/helmet_engine/processing/faceplate_animator.py
import logging
import math
import time
from typing import Callable, Optional
from ..common.enums import FaceplateState

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MS = 350.0
DEFAULT_SCRUB_DURATION_MS = 120.0

def ease_in_out_cubic(t: float) -> float:
    """Cubic ease-in-out on [0, 1]; inputs outside the range are clamped."""
    t = min(max(t, 0.0), 1.0)
    if t < 0.5:
        return 4 * t * t * t
    return 1 - (-2 * t + 2) ** 3 / 2

def wall_clock_ms() -> float:
    return time.perf_counter() * 1000.0

class FaceplateAnimator:
    """
    Time-based open/close animation of the faceplate.

    Progress runs from 0 (closed) to 1 (open). Every retarget starts from the
    progress displayed at that instant, so interrupting an animation never
    makes the faceplate jump. Time comes from the wall clock, not frame counts.
    """

    def __init__(self, config: Optional[dict] = None, clock: Callable[[], float] = wall_clock_ms):
        config = config or {}
        self.clock = clock
        self.default_duration_ms = self._resolve_duration(config.get('duration_ms'), DEFAULT_DURATION_MS)
        self.scrub_duration_ms = self._resolve_duration(config.get('scrub_duration_ms'), DEFAULT_SCRUB_DURATION_MS)
        self.epsilon = float(config.get('epsilon', 1e-3))

        initial = float(config.get('initial_progress', 0.0))
        if not math.isfinite(initial):
            logger.warning(f"Invalid initial faceplate progress {initial}, starting closed")
            initial = 0.0
        initial = self._clamp(initial)
        self._target = initial
        self._start_progress = initial
        self._start_time_ms: Optional[float] = None
        self._duration_ms = self.default_duration_ms
        self._progress = initial
        self._state = self._settled_state(initial)

    @staticmethod
    def _clamp(value: float) -> float:
        return min(max(value, 0.0), 1.0)

    @staticmethod
    def _settled_state(progress: float) -> FaceplateState:
        return FaceplateState.CLOSED if progress <= 0.0 else FaceplateState.OPEN

    def _now(self, now_ms: Optional[float]) -> float:
        return self.clock() if now_ms is None else float(now_ms)

    def _resolve_duration(self, duration_ms: Optional[float], default: float) -> float:
        if duration_ms is None:
            return default
        duration_ms = float(duration_ms)
        if not math.isfinite(duration_ms) or duration_ms <= 0:
            logger.warning(f"Invalid faceplate duration {duration_ms}, using {default} ms")
            return default
        return duration_ms

    def _evaluate(self, now_ms: float):
        """Returns (progress, finished) at ``now_ms`` without mutating state."""
        if self._start_time_ms is None:
            return self._target, True
        t = (now_ms - self._start_time_ms) / self._duration_ms
        if t >= 1.0:
            return self._target, True
        eased = ease_in_out_cubic(t)
        return self._start_progress + (self._target - self._start_progress) * eased, False

    @property
    def progress(self) -> float:
        """Progress as of the last tick."""
        return self._progress

    @property
    def target(self) -> float:
        return self._target

    @property
    def state(self) -> FaceplateState:
        return self._state

    @property
    def is_open(self) -> bool:
        """Whether the faceplate is open or heading open."""
        return self._target >= 0.5

    @property
    def start_progress(self) -> float:
        return self._start_progress

    @property
    def duration_ms(self) -> float:
        return self._duration_ms

    def current_progress(self, now_ms: Optional[float] = None) -> float:
        progress, _ = self._evaluate(self._now(now_ms))
        return progress

    def tick(self, now_ms: Optional[float] = None) -> float:
        """Advances the animation to ``now_ms`` and returns the new progress."""
        progress, finished = self._evaluate(self._now(now_ms))
        if finished:
            self._start_time_ms = None
            self._start_progress = self._target
            self._progress = self._target
            self._state = self._settled_state(self._target)
        else:
            self._progress = progress
            self._state = FaceplateState.ANIMATING
        return self._progress

    def set_target(self, target: float, duration_ms: Optional[float] = None,
                   now_ms: Optional[float] = None) -> None:
        target = float(target)
        if not math.isfinite(target):
            logger.warning(f"Ignoring non-finite faceplate target {target}")
            return
        target = self._clamp(target)
        duration = self._resolve_duration(duration_ms, self.default_duration_ms)
        now = self._now(now_ms)

        current, _ = self._evaluate(now)
        if abs(target - current) < self.epsilon:
            # Already there: cancel any in-flight animation and settle
            self._target = target
            self._start_progress = target
            self._start_time_ms = None
            self._progress = target
            self._state = self._settled_state(target)
            return

        self._start_progress = current
        self._start_time_ms = now
        self._target = target
        self._duration_ms = duration
        self._progress = current
        self._state = FaceplateState.ANIMATING
        logger.debug(f"Faceplate {current:.3f} -> {target:.3f} over {duration:.0f} ms")

    def toggle(self, open: Optional[bool] = None, duration_ms: Optional[float] = None,
               now_ms: Optional[float] = None) -> float:
        """Flips between open and closed, or goes to the state given by ``open``.

        Returns the new target.
        """
        if open is None:
            open = not self.is_open
        self.set_target(1.0 if open else 0.0, duration_ms, now_ms)
        return self._target

    def set_progress(self, value: float, duration_ms: Optional[float] = None,
                     now_ms: Optional[float] = None) -> None:
        """Continuous (slider-style) control with a short default duration."""
        duration = self._resolve_duration(duration_ms, self.scrub_duration_ms)
        self.set_target(value, duration, now_ms)
