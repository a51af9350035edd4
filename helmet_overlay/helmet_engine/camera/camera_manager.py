# helmet_overlay/helmet_engine/camera/camera_manager.py
import cv2
import logging
import time
import threading
import numpy as np
from collections import deque
from typing import Tuple, Optional
from ..common.models import FrameMetadata

logger = logging.getLogger(__name__)

class CameraManager:
    """Reads camera frames on a background thread; the main loop takes the latest one."""

    def __init__(self, config: dict):
        self.config = config
        self._source = config['source']
        self._resolution = tuple(config['resolution'])
        self._target_fps = config['target_fps']
        self._mirror = config.get('mirror', True)
        self._cap = self._open(self._source)

        self._buffer = deque(maxlen=config.get('buffer_size', 5))
        self._lock = threading.Lock()
        self._cap_lock = threading.Lock()
        self._thread = threading.Thread(target=self._update, daemon=True)
        self._running = False
        self._frame_id = 0
        self._dropped_frames = 0

    def _open(self, source) -> cv2.VideoCapture:
        cap = cv2.VideoCapture(source)
        if not cap.isOpened():
            raise IOError(f"Cannot open camera source: {source}")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._resolution[0])
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._resolution[1])
        cap.set(cv2.CAP_PROP_FPS, self._target_fps)
        return cap

    def _update(self):
        """The frame-grabbing loop running in a dedicated thread."""
        while self._running:
            with self._cap_lock:
                grabbed = self._cap.grab()
                ret, frame = self._cap.retrieve() if grabbed else (False, None)
            if not grabbed:
                self._dropped_frames += 1
                time.sleep(0.01)
                continue

            if ret:
                if self._mirror:
                    frame = cv2.flip(frame, 1)
                timestamp = time.perf_counter()
                self._frame_id += 1
                with self._lock:
                    self._buffer.append((frame, self._frame_id, timestamp))
            else:
                self._dropped_frames += 1

    def get_frame(self) -> Tuple[Optional[np.ndarray], Optional[FrameMetadata]]:
        """Returns the latest frame and its metadata from the buffer."""
        with self._lock:
            if not self._buffer:
                return None, None
            frame, frame_id, timestamp = self._buffer[-1]

        metadata = FrameMetadata(
            frame_id=frame_id,
            timestamp=timestamp,
            source_resolution=(frame.shape[1], frame.shape[0])
        )
        return frame.copy(), metadata

    def switch_source(self, source) -> None:
        """Replaces the capture device; the old one is released on success."""
        new_cap = self._open(source)
        with self._cap_lock:
            old_cap, self._cap = self._cap, new_cap
            self._source = source
            old_cap.release()
        with self._lock:
            self._buffer.clear()
        logger.info(f"Switched camera source to {source}")

    @property
    def source(self):
        return self._source

    def get_stats(self) -> dict:
        return {
            "is_running": self.is_running(),
            "source": self._source,
            "buffer_size": len(self._buffer),
            "dropped_frames": self._dropped_frames,
            "target_fps": self._target_fps,
            "actual_resolution": (self._cap.get(cv2.CAP_PROP_FRAME_WIDTH), self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        }

    def is_running(self) -> bool:
        return self._running

    def __enter__(self):
        self._running = True
        self._thread.start()
        logger.info(f"CameraManager started on source {self._source}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._running = False
        self._thread.join()
        self._cap.release()
        logger.info("CameraManager stopped and resources released.")
