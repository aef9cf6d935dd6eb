"""
Audio Level Adapter - Maps raw PCM chunks to a scalar loudness level

The level is the mean of the analyser's byte-scaled frequency magnitudes
(0-255): Blackman-windowed FFT, magnitudes in dB clipped to
[min_db, max_db] and scaled linearly onto 0-255.
"""

import base64
import logging
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_FFT_SIZE = 2048
DEFAULT_MIN_DB = -100.0
DEFAULT_MAX_DB = -30.0


def decode_pcm16(data: bytes) -> np.ndarray:
    """Little-endian int16 PCM bytes -> float samples in [-1, 1]"""
    samples = np.frombuffer(data, dtype="<i2")
    return samples.astype(np.float32) / 32768.0


def decode_pcm16_base64(audio_base64: str) -> np.ndarray:
    return decode_pcm16(base64.b64decode(audio_base64))


class AudioLevelMeter:
    """
    Stateful level meter with optional smoothing between chunks.

    smoothing blends each chunk's magnitudes with the previous chunk's,
    as an analyser's smoothing time constant does.
    """

    def __init__(
        self,
        fft_size: int = DEFAULT_FFT_SIZE,
        smoothing: float = 0.8,
        min_db: float = DEFAULT_MIN_DB,
        max_db: float = DEFAULT_MAX_DB
    ):
        if fft_size <= 0 or fft_size & (fft_size - 1):
            raise ValueError("fft_size must be a power of two")
        if not 0.0 <= smoothing < 1.0:
            raise ValueError("smoothing must be in [0, 1)")
        if min_db >= max_db:
            raise ValueError("min_db must be below max_db")

        self.fft_size = fft_size
        self.smoothing = smoothing
        self.min_db = min_db
        self.max_db = max_db
        self._window = np.blackman(fft_size)
        self._previous: Optional[np.ndarray] = None

    def _frame(self, samples: np.ndarray) -> np.ndarray:
        samples = np.asarray(samples)
        if samples.dtype == np.int16:
            samples = samples.astype(np.float32) / 32768.0
        samples = samples.astype(np.float64).ravel()

        if len(samples) >= self.fft_size:
            return samples[-self.fft_size:]
        return np.pad(samples, (self.fft_size - len(samples), 0))

    def level(self, samples: np.ndarray) -> float:
        """
        Loudness of one chunk on the 0-255 scale.

        Args:
            samples: float samples in [-1, 1] or int16 PCM; the most recent
                     fft_size samples are used

        Returns:
            Mean byte-scaled magnitude over all frequency bins
        """
        frame = self._frame(samples)
        spectrum = np.fft.rfft(frame * self._window)[: self.fft_size // 2]
        magnitudes = np.abs(spectrum) / self.fft_size

        if self.smoothing and self._previous is not None:
            magnitudes = self.smoothing * self._previous + (1.0 - self.smoothing) * magnitudes
        self._previous = magnitudes

        db = 20.0 * np.log10(np.maximum(magnitudes, 1e-12))
        scaled = (db - self.min_db) * (255.0 / (self.max_db - self.min_db))
        byte_values = np.clip(np.floor(scaled), 0, 255)

        return float(byte_values.mean())

    def reset(self):
        self._previous = None


def audio_level_from_pcm(samples: np.ndarray, fft_size: int = DEFAULT_FFT_SIZE) -> float:
    """Unsmoothed level of a single chunk (see AudioLevelMeter.level)"""
    return AudioLevelMeter(fft_size=fft_size, smoothing=0.0).level(samples)
