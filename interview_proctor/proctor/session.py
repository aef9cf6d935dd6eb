"""
Proctor Session - Manages a single monitoring session

Lifecycle: IDLE -> MONITORING -> ENDED (terminal).
"""

import uuid
import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import numpy as np

from .adapters import AudioLevelMeter, MediaPipeFaceLandmarks, YoloObjectClassifier
from .config import DetectorConfig, build_config
from .detectors import (
    AudioDetector,
    DrowsinessDetector,
    FaceObservation,
    ObjectDetection,
    PresenceGazeDetector,
    SuspiciousObjectDetector,
)
from .errors import InvalidConfiguration, SessionClosed, SessionNotStarted
from .events import ALERT_KINDS, Event, EventLog, describe_event
from .report import Report
from .scoring import ScoreSummary, score
from .streams import DetectorStream
from .utils.logging import log_event_emitted, log_session_end, log_session_start

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionState(str, Enum):
    IDLE = "idle"
    MONITORING = "monitoring"
    ENDED = "ended"


class ProctorSession:
    """
    Manages a single proctoring session.

    Owns the event log and one detector per modality. Observations can be
    fed synchronously (observe_*), through per-detector background streams
    (submit_*), or as raw frames and audio chunks that go through the
    signal adapters first (process_frame / process_audio_chunk).
    """

    # Seconds end() waits for each detector stream worker to exit
    stream_stop_timeout = 1.0

    def __init__(
        self,
        candidate_id: str,
        config: Union[DetectorConfig, Mapping[str, Any], None] = None,
        session_id: Optional[str] = None,
        event_log: Optional[EventLog] = None,
        clock: Optional[Callable[[], datetime]] = None,
        on_alert: Optional[Callable[[Event], Any]] = None,
        face_adapter: Optional[MediaPipeFaceLandmarks] = None,
        object_adapter: Optional[YoloObjectClassifier] = None
    ):
        """
        Initialize a new (idle) proctoring session.

        Args:
            candidate_id: ID or name of the candidate being monitored
            config: DetectorConfig or mapping of option overrides
            session_id: Optional custom session ID (auto-generated if not provided)
            event_log: Existing log to reuse; it is cleared on start()
            clock: Returns the current time (tz-aware)
            on_alert: Called with every appended event of an alert-worthy kind
            face_adapter: Landmark adapter for process_frame()
            object_adapter: Object classifier for process_frame()

        Raises:
            InvalidConfiguration: if the candidate ID or any option is invalid
        """
        if not candidate_id or not str(candidate_id).strip():
            raise InvalidConfiguration("candidate_id is required")

        self.config = build_config(config)
        self.id = session_id or f"PRC_{uuid.uuid4().hex[:6].upper()}"
        self.candidate_id = str(candidate_id)
        self.state = SessionState.IDLE
        self.started_at: Optional[datetime] = None
        self.ended_at: Optional[datetime] = None
        self.event_log = event_log if event_log is not None else EventLog()
        self.on_alert = on_alert

        self._clock = clock or utcnow
        self._state_lock = threading.Lock()
        self._record_lock = threading.Lock()
        self._report: Optional[Report] = None
        self._streams: Dict[str, DetectorStream] = {}

        self.presence = PresenceGazeDetector(self.config, sink=self._record, listener=self._dispatch_alerts)
        self.objects = SuspiciousObjectDetector(
            self.config,
            sink=self._record,
            recent_events=self.event_log.recent,
            listener=self._dispatch_alerts
        )
        self.drowsiness = DrowsinessDetector(self.config, sink=self._record, listener=self._dispatch_alerts)
        self.audio = AudioDetector(self.config, sink=self._record, listener=self._dispatch_alerts)

        # Adapters (lazy loaded)
        self._face_adapter = face_adapter
        self._object_adapter = object_adapter
        self._audio_meter: Optional[AudioLevelMeter] = None

    @property
    def face_adapter(self) -> MediaPipeFaceLandmarks:
        """Lazy load face landmark adapter"""
        if self._face_adapter is None:
            from ..config import settings
            self._face_adapter = MediaPipeFaceLandmarks(
                max_faces=settings.FACE_MESH_MAX_FACES,
                min_confidence=settings.FACE_MESH_MIN_CONFIDENCE
            )
        return self._face_adapter

    @property
    def object_adapter(self) -> YoloObjectClassifier:
        """Lazy load object classifier"""
        if self._object_adapter is None:
            from ..config import settings
            self._object_adapter = YoloObjectClassifier(settings.YOLO_MODEL_PATH)
        return self._object_adapter

    @property
    def audio_meter(self) -> AudioLevelMeter:
        if self._audio_meter is None:
            self._audio_meter = AudioLevelMeter()
        return self._audio_meter

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.MONITORING

    @property
    def detectors(self) -> list:
        return [self.presence, self.objects, self.drowsiness, self.audio]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> "ProctorSession":
        """
        Begin monitoring: resets every detector and clears the event log.

        Raises:
            SessionClosed: if the session has already ended
        """
        with self._state_lock:
            if self.state is SessionState.ENDED:
                raise SessionClosed(f"Session {self.id} has ended")
            if self.state is SessionState.MONITORING:
                logger.warning(f"Session {self.id} is already monitoring")
                return self

            for detector in self.detectors:
                detector.reset()
            self.event_log.clear()

            self.started_at = self._clock()
            self.state = SessionState.MONITORING

        log_session_start(self.id, self.candidate_id)
        return self

    def end(self) -> Report:
        """
        End the session and build its report.

        The report covers the log exactly as it stands when end() runs;
        later appends from in-flight detector calls are refused. Detector
        streams are stopped and, unless end() runs on one of their worker
        threads, joined (up to stream_stop_timeout each) before it returns.
        Calling end() again returns the same report.
        """
        with self._state_lock:
            if self._report is not None:
                return self._report

            with self._record_lock:
                events = self.event_log.seal()
                self.ended_at = self._clock()
                self.state = SessionState.ENDED

            streams = list(self._streams.values())
            for stream in streams:
                stream.stop()

            self._report = Report.from_events(
                candidate_id=self.candidate_id,
                started_at=self.started_at,
                ended_at=self.ended_at,
                events=events,
                session_id=self.id
            )

        # Joined outside _state_lock: a worker may be waiting on it in _stream()
        for stream in streams:
            if not stream.join(self.stream_stop_timeout):
                logger.warning(f"Stream {stream.name} still busy after end of session {self.id}")

        summary = self._report.summary
        log_session_end(self.id, summary.final_score, summary.deduction_total, len(events))
        self._cleanup()
        return self._report

    def reset_log(self):
        """
        Explicit session reset: clears the event log and detector state.

        Raises:
            SessionClosed: if the session has ended
        """
        self._ensure_monitoring()
        with self._record_lock:
            self.event_log.clear()
        for detector in self.detectors:
            detector.reset()
        logger.info(f"Session {self.id} event log reset")

    def _ensure_monitoring(self):
        if self.state is SessionState.ENDED:
            raise SessionClosed(f"Session {self.id} has ended")
        if self.state is SessionState.IDLE:
            raise SessionNotStarted(f"Session {self.id} has not been started")

    def _cleanup(self):
        """Release adapter resources"""
        if self._face_adapter is not None:
            try:
                self._face_adapter.close()
            except Exception as e:
                logger.warning(f"Error closing face adapter: {e}")

    # ------------------------------------------------------------------
    # Event recording
    # ------------------------------------------------------------------

    def _record(self, event: Event) -> bool:
        """
        Append an event to the log; called by detectors under their own lock.

        Returns:
            False if the log refused the event (session ended)
        """
        with self._record_lock:
            if not self.event_log.append(event):
                return False
            log_event_emitted(self.id, event.kind.value, describe_event(event))
        return True

    def _dispatch_alerts(self, events: List[Event]):
        """
        Call on_alert for each alert-worthy event.

        Runs after the detector has released its lock and the event has been
        appended, so the callback may block or call back into the session
        (including end()) without holding up other detectors.
        """
        if self.on_alert is None:
            return

        for event in events:
            if event.kind not in ALERT_KINDS:
                continue
            if self.state is SessionState.ENDED:
                logger.debug(f"Session {self.id} ended, alert {event.kind.value} not dispatched")
                return
            try:
                self.on_alert(event)
            except Exception as e:
                logger.error(f"Alert callback failed for {event.kind.value}: {e}")

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    def observe_face(self, observation: FaceObservation, now: Optional[datetime] = None) -> List[Event]:
        """
        Feed one frame's face landmarks to the presence and drowsiness detectors.

        Raises:
            SessionClosed: if the session has ended
            SessionNotStarted: if start() has not been called
        """
        self._ensure_monitoring()
        now = now or self._clock()

        events = self.presence.observe(observation, now)

        faces = getattr(observation, "faces", None)
        if faces is None:
            return events
        events += self.drowsiness.observe(faces[0] if len(faces) else None, now)
        return events

    def observe_eyes(self, openness: float, now: Optional[datetime] = None) -> List[Event]:
        """Feed a precomputed eye aspect ratio to the drowsiness detector"""
        self._ensure_monitoring()
        return self.drowsiness.observe(openness, now or self._clock())

    def observe_objects(self, detections: List[ObjectDetection], now: Optional[datetime] = None) -> List[Event]:
        """Feed one poll's object detections to the object detector"""
        self._ensure_monitoring()
        return self.objects.observe(detections, now or self._clock())

    def observe_audio(self, level: float, now: Optional[datetime] = None) -> List[Event]:
        """Feed one audio level tick (0-255 scale) to the audio detector"""
        self._ensure_monitoring()
        return self.audio.observe(level, now or self._clock())

    def process_frame(self, frame: np.ndarray, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Run a BGR video frame through the adapters and detectors.

        Faces are checked inline on every frame. Once per object_poll_ms the
        frame is also handed to the object_frames stream, so a slow object
        model never holds up presence and gaze checks; object events land
        in the log when that worker finishes. An unavailable adapter
        contributes nothing.

        Returns:
            Dict with face events, whether the frame was queued for object
            detection, and the live score
        """
        self._ensure_monitoring()
        now = now or self._clock()
        events: List[Event] = []

        objects_queued = False
        if self.objects.is_due(now):
            self.objects.mark_polled(now)
            objects_queued = self._stream("object_frames", self._poll_objects).submit(frame, now)

        observation = self.face_adapter.detect(frame)
        if observation is not None:
            events += self.observe_face(observation, now)

        return {
            "events": events,
            "face_checked": observation is not None,
            "objects_queued": objects_queued,
            "current_score": self.summary().final_score,
        }

    def _poll_objects(self, frame: np.ndarray, now: datetime) -> List[Event]:
        detections = self.object_adapter.detect(frame)
        if detections is None:
            return []
        return self.observe_objects(detections, now)

    def process_audio_chunk(self, samples: np.ndarray, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Measure a PCM chunk's level and feed it to the audio detector.

        Returns:
            Dict with the measured level and emitted events
        """
        self._ensure_monitoring()
        level = self.audio_meter.level(samples)
        events = self.observe_audio(level, now)
        return {"level": level, "events": events}

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    def _stream(self, name: str, handler: Callable[[Any, datetime], Any]) -> DetectorStream:
        with self._state_lock:
            self._ensure_monitoring()
            stream = self._streams.get(name)
            if stream is None:
                stream = DetectorStream(name, handler)
                stream.start()
                self._streams[name] = stream
            return stream

    def submit_face(self, observation: FaceObservation, now: Optional[datetime] = None) -> bool:
        """Queue a face observation on the presence stream (latest sample wins)"""
        return self._stream("face", self.observe_face).submit(observation, now or self._clock())

    def submit_objects(self, detections: List[ObjectDetection], now: Optional[datetime] = None) -> bool:
        return self._stream("objects", self.observe_objects).submit(detections, now or self._clock())

    def submit_audio(self, level: float, now: Optional[datetime] = None) -> bool:
        return self._stream("audio", self.observe_audio).submit(level, now or self._clock())

    def submit_frame(self, frame: np.ndarray, now: Optional[datetime] = None) -> bool:
        return self._stream("frame", self.process_frame).submit(frame, now or self._clock())

    def stop_streams(self, timeout: float = 1.0):
        """Stop every stream and wait for the workers to exit"""
        for stream in list(self._streams.values()):
            stream.stop(timeout=timeout)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def summary(self) -> ScoreSummary:
        """Live score of the current log"""
        return score(self.event_log.snapshot())

    def report(self) -> Report:
        """
        The final report once ended; before that, a provisional report of
        the log so far (with no end time).
        """
        if self._report is not None:
            return self._report
        return Report.from_events(
            candidate_id=self.candidate_id,
            started_at=self.started_at,
            ended_at=None,
            events=self.event_log.snapshot(),
            session_id=self.id
        )

    def get_status(self) -> Dict[str, Any]:
        summary = self.summary() if self._report is None else self._report.summary
        now = self.ended_at or self._clock()
        return {
            "session_id": self.id,
            "candidate_id": self.candidate_id,
            "state": self.state.value,
            "is_active": self.is_active,
            "events": len(self.event_log),
            "current_score": summary.final_score,
            "deductions": summary.deduction_total,
            "duration_seconds": (now - self.started_at).total_seconds() if self.started_at else 0.0,
        }
