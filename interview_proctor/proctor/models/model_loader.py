"""
Model Loader - Lazy loading and caching of perception models
"""

import os
import logging
from functools import lru_cache
from typing import Optional

logger = logging.getLogger(__name__)

# Default model paths (relative to this file's directory)
MODELS_DIR = os.path.join(os.path.dirname(__file__), "weights")

DEFAULT_YOLO_WEIGHTS = "yolov8n.pt"


@lru_cache(maxsize=4)
def get_yolo_model(model_path: Optional[str] = None):
    """
    Get a YOLO model for object detection.

    Args:
        model_path: Explicit weights file. If None, looks in MODELS_DIR and
                    falls back to the stock COCO yolov8n weights.

    Returns:
        YOLO model instance
    """
    from ultralytics import YOLO

    if model_path:
        logger.info(f"Loading YOLO model from: {model_path}")
        return YOLO(model_path)

    local_path = os.path.join(MODELS_DIR, DEFAULT_YOLO_WEIGHTS)
    if os.path.exists(local_path):
        logger.info(f"Loading YOLO model from: {local_path}")
        return YOLO(local_path)

    logger.info(f"Loading stock YOLO weights: {DEFAULT_YOLO_WEIGHTS}")
    return YOLO(DEFAULT_YOLO_WEIGHTS)


def create_face_mesh(max_faces: int = 2, min_confidence: float = 0.5):
    """
    Create a MediaPipe FaceMesh instance.

    FaceMesh keeps tracking state between frames, so each adapter gets its
    own instance rather than a shared cached one.

    Returns:
        mediapipe FaceMesh solution
    """
    import mediapipe as mp

    face_mesh = mp.solutions.face_mesh.FaceMesh(
        static_image_mode=False,
        max_num_faces=max_faces,
        refine_landmarks=False,
        min_detection_confidence=min_confidence,
        min_tracking_confidence=min_confidence
    )

    logger.info(f"MediaPipe FaceMesh initialized (max_faces={max_faces})")
    return face_mesh


def check_models() -> dict:
    """
    Check which perception backends are available.

    Returns:
        Dict with model status
    """
    status = {
        "yolo_model": False,
        "mediapipe": False,
    }

    try:
        import ultralytics  # noqa: F401
        status["yolo_model"] = True
    except ImportError:
        pass

    try:
        import mediapipe  # noqa: F401
        status["mediapipe"] = True
    except ImportError:
        pass

    return status
