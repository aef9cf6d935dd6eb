"""
Object Classifier Adapter - YOLO detections for the suspicious object detector
"""

import logging
from typing import List, Optional

import numpy as np

from ..detectors.object_detector import ObjectDetection

logger = logging.getLogger(__name__)


class YoloObjectClassifier:
    """
    Runs a YOLO model on BGR frames and reports every detection.

    Filtering by class and score is left to SuspiciousObjectDetector.
    """

    def __init__(self, model_path: Optional[str] = None):
        """
        Args:
            model_path: Path to YOLO weights. If None, uses default from model_loader.
        """
        self.model = None
        self._model_path = model_path
        self._model_loaded = False

    def _ensure_model(self):
        """Lazy load YOLO model"""
        if self.model is not None or self._model_loaded:
            return

        try:
            from ..models import get_yolo_model
            self.model = get_yolo_model(self._model_path)
            logger.info("YOLO model loaded successfully")
        except Exception as e:
            logger.error(f"Failed to load YOLO model: {e}")
        self._model_loaded = True  # Don't retry

    def is_available(self) -> bool:
        self._ensure_model()
        return self.model is not None

    def detect(self, frame: np.ndarray) -> Optional[List[ObjectDetection]]:
        """
        Detect objects in a frame.

        Args:
            frame: BGR image from OpenCV

        Returns:
            Detections with (x, y, width, height) boxes, or None when the
            frame or the model is unusable
        """
        if frame is None or frame.size == 0:
            return None

        self._ensure_model()
        if self.model is None:
            return None

        try:
            results = self.model.predict(frame, verbose=False)
        except Exception as e:
            logger.error(f"Object detection error: {e}")
            return None

        detections: List[ObjectDetection] = []
        for result in results:
            if result.boxes is None:
                continue

            names = result.names or getattr(self.model, "names", {})
            for box in result.boxes:
                cls_id = int(box.cls[0])
                x1, y1, x2, y2 = (float(v) for v in box.xyxy[0].tolist())
                detections.append(ObjectDetection(
                    label=names.get(cls_id, f"class_{cls_id}"),
                    score=float(box.conf[0]),
                    bbox=(x1, y1, x2 - x1, y2 - y1)
                ))

        return detections
