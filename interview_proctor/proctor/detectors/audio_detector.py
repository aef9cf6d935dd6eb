"""
Audio Detector - Background voice detection from per-tick audio levels

Levels use the analyser byte scale (0-255), see adapters.audio_level.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from ..events import Event, EventKind
from .base import Detector

logger = logging.getLogger(__name__)


@dataclass
class AudioState:
    last_emitted_at: Optional[datetime] = None


class AudioDetector(Detector):
    """
    Emits background_voice_detected when the level exceeds the threshold,
    at most once per audio_debounce_ms measured from the previous emission.
    """

    name = "audio"

    def __init__(self, config, sink=None, listener=None):
        super().__init__(config, sink, listener)
        self.state = AudioState()

    def _observe(self, level: float, now: datetime) -> List[Event]:
        level = float(level)
        if not math.isfinite(level):
            raise ValueError("audio level is not finite")

        if level <= self.config.audio_level_threshold:
            return []

        last = self.state.last_emitted_at
        if last is not None and now - last < timedelta(milliseconds=self.config.audio_debounce_ms):
            return []

        self.state.last_emitted_at = now
        return [Event(EventKind.BACKGROUND_VOICE_DETECTED, now, {"level": round(level, 2)})]

    def _reset_state(self):
        self.state = AudioState()
