# helmet_overlay/helmet_engine/tracking/face_tracker.py
import logging
import os
import cv2
import numpy as np
import mediapipe as mp
from mediapipe.tasks import python as mp_tasks
from mediapipe.tasks.python import vision
from typing import Optional

logger = logging.getLogger(__name__)

def landmarks_from_result(result) -> Optional[np.ndarray]:
    """First face of a FaceLandmarker result as an (N, 3) array, or None."""
    faces = getattr(result, 'face_landmarks', None)
    if not faces:
        return None
    return np.array([[lm.x, lm.y, lm.z] for lm in faces[0]], dtype=np.float64)

class FaceTracker:
    """Wraps the MediaPipe FaceLandmarker in video mode for a single face."""

    def __init__(self, config: dict):
        self.config = config
        model_path = config['model_asset_path']
        if not os.path.isfile(model_path):
            raise IOError(f"Face landmarker model not found: {model_path}")

        options = vision.FaceLandmarkerOptions(
            base_options=mp_tasks.BaseOptions(model_asset_path=model_path),
            running_mode=vision.RunningMode.VIDEO,
            num_faces=1,
            min_face_detection_confidence=config['min_face_detection_confidence'],
            min_face_presence_confidence=config['min_face_presence_confidence'],
            min_tracking_confidence=config['min_tracking_confidence'],
            output_face_blendshapes=False,
            output_facial_transformation_matrixes=False,
        )
        self.landmarker = vision.FaceLandmarker.create_from_options(options)
        self._last_timestamp_ms = -1
        logger.info(f"FaceLandmarker loaded from {model_path}")

    def detect(self, frame: np.ndarray, timestamp: float) -> Optional[np.ndarray]:
        """Returns normalized landmarks for the face in a BGR frame, or None."""
        # MediaPipe rejects timestamps that do not strictly increase
        timestamp_ms = max(int(timestamp * 1000), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        result = self.landmarker.detect_for_video(image, timestamp_ms)
        return landmarks_from_result(result)

    def close(self):
        self.landmarker.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
