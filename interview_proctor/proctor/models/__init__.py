"""Model loading utilities"""

from .model_loader import get_yolo_model, create_face_mesh, check_models

__all__ = ["get_yolo_model", "create_face_mesh", "check_models"]
