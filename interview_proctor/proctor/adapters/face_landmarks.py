"""
Face Landmark Adapter - MediaPipe FaceMesh landmarks for the presence and drowsiness detectors
"""

import logging
import threading
from typing import Optional

import cv2
import numpy as np

from ..detectors.presence import FaceObservation

logger = logging.getLogger(__name__)


class MediaPipeFaceLandmarks:
    """
    Runs MediaPipe FaceMesh on BGR frames.

    Landmarks are returned in normalized (x, y) coordinates, one 468-point
    list per face. When MediaPipe cannot be loaded the adapter stays
    unavailable and detect() returns None, which the session treats as
    "no sample" rather than "no face".
    """

    def __init__(self, max_faces: int = 2, min_confidence: float = 0.5):
        """
        Initialize the adapter (FaceMesh is loaded on first use).

        Args:
            max_faces: Maximum faces FaceMesh should report
            min_confidence: Detection and tracking confidence
        """
        self.max_faces = max_faces
        self.min_confidence = min_confidence
        self._face_mesh = None
        self._initialized = False
        self._lock = threading.Lock()

    def _ensure_initialized(self):
        """Lazy initialization of MediaPipe"""
        if self._initialized:
            return
        self._initialized = True

        try:
            from ..models import create_face_mesh
            self._face_mesh = create_face_mesh(self.max_faces, self.min_confidence)
        except Exception as e:
            logger.error(f"Failed to initialize MediaPipe FaceMesh: {e}")
            self._face_mesh = None  # Don't retry

    def is_available(self) -> bool:
        self._ensure_initialized()
        return self._face_mesh is not None

    def detect(self, frame: np.ndarray) -> Optional[FaceObservation]:
        """
        Find face landmarks in a frame.

        Args:
            frame: BGR image from OpenCV

        Returns:
            FaceObservation, or None when the frame or the model is unusable
        """
        if frame is None or frame.size == 0:
            return None

        self._ensure_initialized()
        if self._face_mesh is None:
            return None

        try:
            rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            with self._lock:
                results = self._face_mesh.process(rgb)
        except Exception as e:
            logger.warning(f"FaceMesh processing error: {e}")
            return None

        faces = [
            [(lm.x, lm.y) for lm in face.landmark]
            for face in (results.multi_face_landmarks or [])
        ]
        return FaceObservation(faces=faces)

    def close(self):
        """Release MediaPipe resources"""
        if self._face_mesh is not None:
            self._face_mesh.close()
            self._face_mesh = None
