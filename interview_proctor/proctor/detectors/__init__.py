"""Detector modules for proctoring"""

from .base import Detector
from .presence import PresenceGazeDetector, FaceObservation
from .object_detector import SuspiciousObjectDetector, ObjectDetection
from .drowsiness import DrowsinessDetector
from .audio_detector import AudioDetector
from .landmarks import gaze_deviation, eye_aspect_ratio

__all__ = [
    "Detector",
    "PresenceGazeDetector",
    "FaceObservation",
    "SuspiciousObjectDetector",
    "ObjectDetection",
    "DrowsinessDetector",
    "AudioDetector",
    "gaze_deviation",
    "eye_aspect_ratio",
]
