"""
Presence / Gaze Detector - Face absence, looking away and multiple faces

Works on FaceMesh landmark sets, one per detected face.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Sequence

from ..events import Event, EventKind
from .base import Detector
from .landmarks import gaze_deviation

logger = logging.getLogger(__name__)


@dataclass
class FaceObservation:
    """Landmark sets for every face found in one video frame"""

    faces: Sequence[Any] = field(default_factory=list)

    @property
    def face_count(self) -> int:
        return len(self.faces)


@dataclass
class PresenceState:
    face_missing_since: Optional[datetime] = None
    no_face_logged: bool = False
    looking_away_since: Optional[datetime] = None
    looking_away_logged: bool = False
    multiple_faces_active: bool = False


class PresenceGazeDetector(Detector):
    """
    Tracks whether the candidate is present and facing the screen.

    - Face absence for no_face_seconds emits one no_face_detected,
      timestamped at the first missing sample. When the face returns,
      face_missing_end is emitted.
    - Looking away for look_away_seconds emits one looking_away_flag per
      episode; recovery from a flagged episode emits looking_away_end.
    - More than one face emits multiple_faces_detected on every such
      observation, or once per episode when multiple_faces_episodic is set.
    """

    name = "presence"

    def __init__(self, config, sink=None, listener=None):
        super().__init__(config, sink, listener)
        self.state = PresenceState()

    def is_looking_away(self, dx: float, dy: float) -> bool:
        return abs(dx) > self.config.gaze_turn_threshold or abs(dy) > self.config.gaze_vertical_threshold

    def _observe(self, sample: FaceObservation, now: datetime) -> List[Event]:
        faces = list(sample.faces)
        count = len(faces)

        # Validate before touching state
        gaze = gaze_deviation(faces[0]) if count > 0 else None

        events: List[Event] = []
        state = self.state

        if count > 1:
            if not (self.config.multiple_faces_episodic and state.multiple_faces_active):
                events.append(Event(EventKind.MULTIPLE_FACES_DETECTED, now, {"count": count}))
            state.multiple_faces_active = True
        else:
            state.multiple_faces_active = False

        if count == 0:
            # Looking-away state is left alone while the face is absent
            if state.face_missing_since is None:
                state.face_missing_since = now

            missing_for = (now - state.face_missing_since).total_seconds()
            if not state.no_face_logged and missing_for >= self.config.no_face_seconds:
                state.no_face_logged = True
                events.append(Event(
                    EventKind.NO_FACE_DETECTED,
                    state.face_missing_since,
                    {"durationSeconds": round(missing_for, 2)}
                ))
            return events

        if state.face_missing_since is not None:
            if state.no_face_logged:
                events.append(Event(EventKind.FACE_MISSING_END, now, {
                    "start": state.face_missing_since.isoformat(),
                    "end": now.isoformat(),
                    "durationSeconds": round((now - state.face_missing_since).total_seconds(), 2),
                }))
            state.face_missing_since = None
            state.no_face_logged = False

        events.extend(self._update_gaze(gaze, now))
        return events

    def _update_gaze(self, gaze, now: datetime) -> List[Event]:
        state = self.state
        dx, dy = gaze

        if self.is_looking_away(dx, dy):
            if state.looking_away_since is None:
                state.looking_away_since = now

            away_for = (now - state.looking_away_since).total_seconds()
            if not state.looking_away_logged and away_for >= self.config.look_away_seconds:
                state.looking_away_logged = True
                return [Event(EventKind.LOOKING_AWAY_FLAG, now, {
                    "durationSeconds": round(away_for, 2),
                    "thresholdSeconds": self.config.look_away_seconds,
                })]
            return []

        events = []
        if state.looking_away_since is not None and state.looking_away_logged:
            events.append(Event(EventKind.LOOKING_AWAY_END, now, {
                "durationSeconds": round((now - state.looking_away_since).total_seconds(), 2),
            }))
        state.looking_away_since = None
        state.looking_away_logged = False
        return events

    def _reset_state(self):
        self.state = PresenceState()
