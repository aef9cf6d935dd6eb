"""
Suspicious Object Detector - Filters object detections to an allow-list of classes
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple

from ..events import Event, EventKind
from .base import Detector

logger = logging.getLogger(__name__)


@dataclass
class ObjectDetection:
    """One detection from an object classifier; bbox is (x, y, width, height)"""

    label: str
    score: float
    bbox: Sequence[float]


@dataclass
class ObjectState:
    last_polled_at: Optional[datetime] = None


class SuspiciousObjectDetector(Detector):
    """
    Emits object_detected for confident detections of suspicious classes.

    A class matches when any configured class name is a case-insensitive
    substring of the detected label. A detection is suppressed when an
    object_detected event with the same class is already among the last
    dedupe_window_events entries of the session log.
    """

    name = "object"

    def __init__(
        self,
        config,
        sink=None,
        recent_events: Optional[Callable[[int], Sequence[Event]]] = None,
        listener=None
    ):
        """
        Args:
            config: Session detector configuration
            sink: Event sink (see Detector)
            recent_events: Callable returning the last n logged events
            listener: Accepted-event listener (see Detector)
        """
        super().__init__(config, sink, listener)
        self._recent_events = recent_events or (lambda n: ())
        self.state = ObjectState()

    def is_suspicious(self, label: str) -> bool:
        label = label.lower()
        return any(cls in label for cls in self.config.suspicious_classes)

    def is_due(self, now: datetime) -> bool:
        """Whether the poll interval has elapsed since the last classifier run"""
        last = self.state.last_polled_at
        return last is None or now - last >= timedelta(milliseconds=self.config.object_poll_ms)

    def mark_polled(self, now: datetime):
        with self._lock:
            self.state.last_polled_at = now

    def _parse(self, detection: ObjectDetection) -> Tuple[str, float, Tuple[float, ...]]:
        label = str(detection.label).strip()
        score = float(detection.score)
        bbox = tuple(float(v) for v in detection.bbox)

        if not label:
            raise ValueError("empty label")
        if not math.isfinite(score):
            raise ValueError("score is not finite")
        if len(bbox) != 4 or not all(math.isfinite(v) for v in bbox) or bbox[2] < 0 or bbox[3] < 0:
            raise ValueError(f"malformed bbox {bbox}")
        return label, score, bbox

    def _observe(self, detections: Sequence[ObjectDetection], now: datetime) -> List[Event]:
        window = self.config.dedupe_window_events
        seen = {
            e.attributes.get("class")
            for e in self._recent_events(window)
            if e.kind is EventKind.OBJECT_DETECTED
        } if window else set()

        events = []
        for detection in detections:
            try:
                label, score, bbox = self._parse(detection)
            except (TypeError, ValueError, AttributeError) as e:
                logger.debug(f"Skipping malformed detection: {e}")
                continue

            if score < self.config.object_score_threshold or not self.is_suspicious(label):
                continue

            if label in seen:
                continue
            seen.add(label)

            events.append(Event(EventKind.OBJECT_DETECTED, now, {
                "class": label,
                "score": score,
                "bbox": bbox,
            }))

        return events

    def _reset_state(self):
        self.state = ObjectState()
