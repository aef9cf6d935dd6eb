"""
Drowsiness Detector - Sustained eye closure using the Eye Aspect Ratio (EAR)
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

from ..events import Event, EventKind
from .base import Detector
from .landmarks import eye_aspect_ratio

logger = logging.getLogger(__name__)


@dataclass
class DrowsinessState:
    eyes_closed_since: Optional[datetime] = None
    logged_for_episode: bool = False


class DrowsinessDetector(Detector):
    """
    Emits drowsiness_detected once per eye-closure episode.

    Eyes count as closed while EAR < ear_threshold. An episode that lasts
    eye_closed_seconds emits one event; the episode ends as soon as EAR
    rises back to the threshold. A sample of None (no face) also ends it.
    """

    name = "drowsiness"

    def __init__(self, config, sink=None, listener=None):
        super().__init__(config, sink, listener)
        self.state = DrowsinessState()

    def _openness(self, sample: Any) -> Optional[float]:
        if sample is None:
            return None
        if isinstance(sample, (int, float)):
            ear = float(sample)
        else:
            ear = eye_aspect_ratio(sample)
        if not math.isfinite(ear) or ear < 0:
            raise ValueError(f"invalid eye aspect ratio {ear}")
        return ear

    def _observe(self, sample: Any, now: datetime) -> List[Event]:
        ear = self._openness(sample)
        state = self.state

        if ear is None or ear >= self.config.ear_threshold:
            state.eyes_closed_since = None
            state.logged_for_episode = False
            return []

        if state.eyes_closed_since is None:
            state.eyes_closed_since = now

        closed_for = (now - state.eyes_closed_since).total_seconds()
        if state.logged_for_episode or closed_for < self.config.eye_closed_seconds:
            return []

        state.logged_for_episode = True
        return [Event(EventKind.DROWSINESS_DETECTED, now, {
            "durationSeconds": round(closed_for, 2),
            "ear": round(ear, 3),
        })]

    def _reset_state(self):
        self.state = DrowsinessState()
