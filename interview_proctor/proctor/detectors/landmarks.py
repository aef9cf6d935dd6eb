"""
Landmark helpers for MediaPipe FaceMesh output (normalized coordinates)

A landmark set may be a full 468-point list or a mapping holding just the
indices a detector needs. Each landmark is an (x, y[, z]) sequence or an
object with .x / .y attributes.
"""

import math
from typing import Any, Sequence, Tuple

# FaceMesh indices
LEFT_EYE_OUTER = 33
RIGHT_EYE_OUTER = 263
NOSE_TIP = 1

# Eye contours for the eye aspect ratio, ordered p1..p6
LEFT_EYE_EAR_INDICES = [33, 160, 158, 133, 153, 144]
RIGHT_EYE_EAR_INDICES = [362, 385, 387, 263, 373, 380]


def landmark_point(landmarks: Any, index: int) -> Tuple[float, float]:
    """
    Get (x, y) of one landmark.

    Raises:
        KeyError / IndexError: landmark index missing
        ValueError / TypeError: coordinates are not finite numbers
    """
    point = landmarks[index]
    if point is None:
        raise KeyError(index)

    if hasattr(point, "x") and hasattr(point, "y"):
        x, y = float(point.x), float(point.y)
    else:
        x, y = float(point[0]), float(point[1])

    if not (math.isfinite(x) and math.isfinite(y)):
        raise ValueError(f"landmark {index} is not finite")
    return x, y


def gaze_deviation(landmarks: Any) -> Tuple[float, float]:
    """
    Offset of the nose tip from the midpoint between the outer eye corners.

    Returns:
        (dx, dy) in normalized image units
    """
    left = landmark_point(landmarks, LEFT_EYE_OUTER)
    right = landmark_point(landmarks, RIGHT_EYE_OUTER)
    nose = landmark_point(landmarks, NOSE_TIP)

    dx = nose[0] - (left[0] + right[0]) / 2
    dy = nose[1] - (left[1] + right[1]) / 2
    return dx, dy


def _eye_aspect_ratio(points: Sequence[Tuple[float, float]]) -> float:
    # EAR = (||p2-p6|| + ||p3-p5||) / (2 * ||p1-p4||)
    v1 = math.hypot(points[1][0] - points[5][0], points[1][1] - points[5][1])
    v2 = math.hypot(points[2][0] - points[4][0], points[2][1] - points[4][1])
    h = math.hypot(points[0][0] - points[3][0], points[0][1] - points[3][1])

    if h == 0:
        raise ValueError("degenerate eye contour")
    return (v1 + v2) / (2.0 * h)


def eye_aspect_ratio(landmarks: Any) -> float:
    """Average eye aspect ratio of both eyes"""
    left = [landmark_point(landmarks, i) for i in LEFT_EYE_EAR_INDICES]
    right = [landmark_point(landmarks, i) for i in RIGHT_EYE_EAR_INDICES]
    return (_eye_aspect_ratio(left) + _eye_aspect_ratio(right)) / 2.0
