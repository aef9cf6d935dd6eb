"""Signal adapters turning raw frames and audio into detector samples"""

from .face_landmarks import MediaPipeFaceLandmarks
from .object_classifier import YoloObjectClassifier
from .audio_level import AudioLevelMeter, audio_level_from_pcm, decode_pcm16, decode_pcm16_base64

__all__ = [
    "MediaPipeFaceLandmarks",
    "YoloObjectClassifier",
    "AudioLevelMeter",
    "audio_level_from_pcm",
    "decode_pcm16",
    "decode_pcm16_base64",
]
