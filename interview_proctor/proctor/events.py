"""
Proctoring Events - Event kinds, immutable events and the append-only event log
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    """Closed set of behavioural events a session can record"""

    LOOKING_AWAY_FLAG = "looking_away_flag"
    LOOKING_AWAY_END = "looking_away_end"
    NO_FACE_DETECTED = "no_face_detected"
    FACE_MISSING_END = "face_missing_end"
    MULTIPLE_FACES_DETECTED = "multiple_faces_detected"
    OBJECT_DETECTED = "object_detected"
    DROWSINESS_DETECTED = "drowsiness_detected"
    BACKGROUND_VOICE_DETECTED = "background_voice_detected"


# Kinds that warrant an immediate alert to the proctor
ALERT_KINDS = frozenset({
    EventKind.LOOKING_AWAY_FLAG,
    EventKind.NO_FACE_DETECTED,
    EventKind.MULTIPLE_FACES_DETECTED,
    EventKind.OBJECT_DETECTED,
    EventKind.DROWSINESS_DETECTED,
    EventKind.BACKGROUND_VOICE_DETECTED,
})


@dataclass(frozen=True)
class Event:
    """
    A single detected event.

    Attributes are copied into a read-only mapping on construction, so an
    event cannot change once it has been appended to a log.
    """

    kind: EventKind
    timestamp: datetime
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "kind", EventKind(self.kind))
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def to_dict(self) -> Dict[str, Any]:
        """Flat JSON form: {"type", "timestamp", **attributes}"""
        data = {"type": self.kind.value, "timestamp": self.timestamp.isoformat()}
        for key, value in self.attributes.items():
            data[key] = list(value) if isinstance(value, tuple) else value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Event":
        """Inverse of to_dict()"""
        attributes = dict(data)
        kind = attributes.pop("type")
        timestamp = attributes.pop("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(kind=EventKind(kind), timestamp=timestamp, attributes=attributes)


def describe_event(event: Event) -> str:
    """Human-readable one-line message for an event"""
    attrs = event.attributes
    kind = event.kind

    if kind is EventKind.LOOKING_AWAY_FLAG:
        return f"Looked away > {attrs.get('thresholdSeconds', '?')}s"
    if kind is EventKind.LOOKING_AWAY_END:
        return f"Looking away ended ({attrs.get('durationSeconds')}s)"
    if kind is EventKind.NO_FACE_DETECTED:
        return "No face detected"
    if kind is EventKind.FACE_MISSING_END:
        return "Face returned"
    if kind is EventKind.MULTIPLE_FACES_DETECTED:
        return f"Multiple faces detected ({attrs.get('count')})"
    if kind is EventKind.OBJECT_DETECTED:
        score = attrs.get("score") or 0.0
        return f"Object detected: {attrs.get('class')} ({round(score * 100)}%)"
    if kind is EventKind.DROWSINESS_DETECTED:
        return f"Drowsiness: eyes closed {round(attrs.get('durationSeconds') or 0)}s"
    if kind is EventKind.BACKGROUND_VOICE_DETECTED:
        return f"Background audio detected (level {round(attrs.get('level') or 0)})"
    return kind.value


class EventLog:
    """
    Append-only, insertion-ordered record of a session's events.

    All mutation goes through a single lock, so concurrent appends from
    independent detector streams are serialized. Once sealed, the log
    silently refuses further appends until it is cleared.
    """

    def __init__(self):
        self._events: List[Event] = []
        self._lock = threading.Lock()
        self._sealed = False

    def append(self, event: Event) -> bool:
        """
        Append an event.

        Returns:
            True if the event was recorded, False if the log is sealed
        """
        with self._lock:
            if self._sealed:
                logger.debug(f"Dropped {event.kind.value}: event log is sealed")
                return False
            self._events.append(event)
            return True

    def clear(self):
        """Remove every event and accept appends again"""
        with self._lock:
            self._events.clear()
            self._sealed = False

    def seal(self) -> Tuple[Event, ...]:
        """Stop accepting appends and return the final snapshot"""
        with self._lock:
            self._sealed = True
            return tuple(self._events)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def snapshot(self) -> Tuple[Event, ...]:
        """Consistent chronological copy of the log"""
        with self._lock:
            return tuple(self._events)

    def recent(self, n: int) -> Tuple[Event, ...]:
        """The last n events, oldest first"""
        if n <= 0:
            return ()
        with self._lock:
            return tuple(self._events[-n:])

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
