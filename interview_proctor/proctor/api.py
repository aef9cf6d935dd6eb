"""
Proctoring API - FastAPI endpoints for interview monitoring sessions and reports

Endpoints:
- POST /api/proctoring/sessions - Start a monitoring session
- POST /api/proctoring/sessions/{id}/face - Face landmarks for one frame
- POST /api/proctoring/sessions/{id}/objects - Object detections for one poll
- POST /api/proctoring/sessions/{id}/audio - Audio level (or raw PCM chunk)
- POST /api/proctoring/sessions/{id}/frame - Raw webcam frame (runs the adapters)
- POST /api/proctoring/sessions/{id}/reset - Clear the event log
- POST /api/proctoring/sessions/{id}/end - End the session and save its report
- POST /api/proctoring/sessions/{id}/save - Retry saving an ended session's report
- GET  /api/proctoring/sessions/{id} - Session status
- GET  /api/proctoring/sessions/{id}/report - Session report
- POST /api/proctoring/save-report - Store a report document
- GET  /api/proctoring/reports - Stored reports, newest first
"""

import base64
import binascii
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import cv2
import numpy as np
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .adapters import decode_pcm16_base64
from .detectors import FaceObservation, ObjectDetection
from .errors import (
    InvalidConfiguration,
    ProctorError,
    ReportFetchFailed,
    ReportSaveFailed,
    SessionClosed,
    SessionNotFound,
    SessionNotStarted,
)
from .events import Event, describe_event
from .session import ProctorSession, SessionState
from .storage import BaseReportStore, ReportPayload, get_report_store
from .utils.logging import log_report_saved

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/proctoring", tags=["Proctoring"])

# In-memory session storage (replace with Redis for production)
_sessions: Dict[str, ProctorSession] = {}
_saved_report_ids: Dict[str, str] = {}


# ============== Request/Response Models ==============

Point = List[float]
LandmarkSet = Union[List[Point], Dict[int, Point]]


class StartSessionRequest(BaseModel):
    """Request to start a monitoring session"""
    candidate_id: str = Field(..., min_length=1, description="ID or name of the candidate")
    config: Optional[Dict[str, Any]] = Field(None, description="Detector option overrides (camelCase)")


class StartSessionResponse(BaseModel):
    """Response after starting a session"""
    session_id: str
    status: str
    message: str
    config: Dict[str, Any]


class FaceRequest(BaseModel):
    """Face landmarks (normalized coordinates) for every face in one frame"""
    faces: List[LandmarkSet] = Field(default_factory=list)
    timestamp: Optional[datetime] = None


class DetectionItem(BaseModel):
    """One object detection; bbox is [x, y, width, height]"""
    label: str = Field(..., alias="class")
    score: float
    bbox: List[float]

    model_config = {"populate_by_name": True}


class ObjectsRequest(BaseModel):
    detections: List[DetectionItem] = Field(default_factory=list)
    timestamp: Optional[datetime] = None


class AudioRequest(BaseModel):
    """Either a precomputed level (0-255) or base64 int16 PCM samples"""
    level: Optional[float] = None
    audio_base64: Optional[str] = None
    timestamp: Optional[datetime] = None


class FrameRequest(BaseModel):
    frame_base64: str = Field(..., description="Base64 encoded JPEG frame")
    timestamp: Optional[datetime] = None


class ObservationResponse(BaseModel):
    """Events emitted by an observation"""
    events: List[Dict[str, Any]]
    current_score: int
    level: Optional[float] = None


class EndSessionResponse(BaseModel):
    """Final report and persistence outcome"""
    session_id: str
    saved: bool
    report_id: Optional[str] = None
    error: Optional[str] = None
    report: Dict[str, Any]


class SessionStatusResponse(BaseModel):
    session_id: str
    candidate_id: str
    state: str
    is_active: bool
    events: int
    current_score: int
    deductions: int
    duration_seconds: float


class ModelStatusResponse(BaseModel):
    """Perception backend availability"""
    yolo_model: bool
    mediapipe: bool


# ============== Helpers ==============

def _http_error(e: ProctorError) -> HTTPException:
    if isinstance(e, SessionNotFound):
        return HTTPException(status_code=404, detail="Session not found")
    if isinstance(e, (SessionClosed, SessionNotStarted)):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, InvalidConfiguration):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, ReportSaveFailed):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


def _get_session(session_id: str) -> ProctorSession:
    session = _sessions.get(session_id)
    if not session:
        raise _http_error(SessionNotFound(session_id))
    return session


def _when(timestamp: Optional[datetime]) -> Optional[datetime]:
    if timestamp is not None and timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def _event_out(event: Event) -> Dict[str, Any]:
    data = event.to_dict()
    data["message"] = describe_event(event)
    return data


def _observation_response(session: ProctorSession, events: List[Event], level: Optional[float] = None):
    return ObservationResponse(
        events=[_event_out(e) for e in events],
        current_score=session.summary().final_score,
        level=level
    )


def _save(session: ProctorSession, store: BaseReportStore) -> EndSessionResponse:
    report = session.report()
    try:
        result = store.save_report(report)
    except ReportSaveFailed as e:
        log_report_saved(session.id, saved=False, error=str(e))
        return EndSessionResponse(
            session_id=session.id,
            saved=False,
            error=str(e),
            report=report.to_dict()
        )

    _saved_report_ids[session.id] = result.get("id")
    log_report_saved(session.id, saved=True)
    return EndSessionResponse(
        session_id=session.id,
        saved=True,
        report_id=result.get("id"),
        report=report.to_dict()
    )


# ============== Session Endpoints ==============

@router.post("/sessions", response_model=StartSessionResponse)
async def start_session(request: StartSessionRequest):
    """
    Start a new monitoring session.

    Detector options not given in config fall back to the service defaults.
    """
    try:
        session = ProctorSession(candidate_id=request.candidate_id, config=request.config)
        session.start()
    except ProctorError as e:
        raise _http_error(e)

    _sessions[session.id] = session
    logger.info(f"Started proctoring session: {session.id}")

    return StartSessionResponse(
        session_id=session.id,
        status=session.state.value,
        message="Proctoring session started successfully",
        config=session.config.model_dump(by_alias=True)
    )


@router.post("/sessions/{session_id}/face", response_model=ObservationResponse)
async def observe_face(session_id: str, request: FaceRequest):
    """Feed face landmarks for one frame"""
    session = _get_session(session_id)
    try:
        events = session.observe_face(FaceObservation(faces=request.faces), _when(request.timestamp))
    except ProctorError as e:
        raise _http_error(e)
    return _observation_response(session, events)


@router.post("/sessions/{session_id}/objects", response_model=ObservationResponse)
async def observe_objects(session_id: str, request: ObjectsRequest):
    """Feed object detections for one poll"""
    session = _get_session(session_id)
    detections = [ObjectDetection(label=d.label, score=d.score, bbox=d.bbox) for d in request.detections]
    try:
        events = session.observe_objects(detections, _when(request.timestamp))
    except ProctorError as e:
        raise _http_error(e)
    return _observation_response(session, events)


@router.post("/sessions/{session_id}/audio", response_model=ObservationResponse)
async def observe_audio(session_id: str, request: AudioRequest):
    """
    Feed one audio tick.

    Send either level (already on the 0-255 scale) or audio_base64
    (int16 PCM, measured server-side).
    """
    session = _get_session(session_id)

    if (request.level is None) == (request.audio_base64 is None):
        raise HTTPException(status_code=400, detail="Provide exactly one of level or audio_base64")

    try:
        if request.level is not None:
            level = request.level
            events = session.observe_audio(level, _when(request.timestamp))
        else:
            try:
                samples = decode_pcm16_base64(request.audio_base64)
            except (binascii.Error, ValueError):
                raise HTTPException(status_code=400, detail="Invalid audio data")
            result = session.process_audio_chunk(samples, _when(request.timestamp))
            level, events = result["level"], result["events"]
    except ProctorError as e:
        raise _http_error(e)

    return _observation_response(session, events, level=level)


@router.post("/sessions/{session_id}/frame", response_model=ObservationResponse)
def observe_frame(session_id: str, request: FrameRequest):
    """
    Process a raw webcam frame.

    Decodes the base64 JPEG and runs it through the face landmark adapter
    before the detectors. Object detection runs in the background, so its
    events show up in later responses and in the report.
    """
    session = _get_session(session_id)

    try:
        frame_bytes = base64.b64decode(request.frame_base64)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="Invalid frame data")

    frame = cv2.imdecode(np.frombuffer(frame_bytes, dtype=np.uint8), cv2.IMREAD_COLOR)
    if frame is None:
        raise HTTPException(status_code=400, detail="Invalid frame data")

    try:
        result = session.process_frame(frame, _when(request.timestamp))
    except ProctorError as e:
        raise _http_error(e)
    return _observation_response(session, result["events"])


@router.post("/sessions/{session_id}/reset")
async def reset_session(session_id: str):
    """Clear the session's event log and detector state"""
    session = _get_session(session_id)
    try:
        session.reset_log()
    except ProctorError as e:
        raise _http_error(e)
    return {"session_id": session.id, "events": 0}


@router.post("/sessions/{session_id}/end", response_model=EndSessionResponse)
def end_session(session_id: str, store: BaseReportStore = Depends(get_report_store)):
    """
    End a session and save its report.

    Ending is idempotent. If saving fails the report is still returned
    (saved=false) and can be saved later through /save.
    """
    session = _get_session(session_id)
    already_saved = session.state is SessionState.ENDED and session_id in _saved_report_ids

    report = session.end()
    if already_saved:
        return EndSessionResponse(
            session_id=session.id,
            saved=True,
            report_id=_saved_report_ids[session_id],
            report=report.to_dict()
        )
    return _save(session, store)


@router.post("/sessions/{session_id}/save", response_model=EndSessionResponse)
def save_session_report(session_id: str, store: BaseReportStore = Depends(get_report_store)):
    """Retry saving the report of an ended session"""
    session = _get_session(session_id)
    if session.is_active or session.ended_at is None:
        raise HTTPException(status_code=409, detail="Session has not ended")

    result = _save(session, store)
    if not result.saved:
        raise _http_error(ReportSaveFailed(result.error or "Failed to save report"))
    return result


@router.get("/sessions/{session_id}", response_model=SessionStatusResponse)
async def get_session_status(session_id: str):
    """Get current status of a session"""
    session = _get_session(session_id)
    return SessionStatusResponse(**session.get_status())


@router.get("/sessions/{session_id}/report")
async def get_session_report(session_id: str):
    """
    Get the session report.

    Provisional (no end time) while the session is still monitoring.
    """
    session = _get_session(session_id)
    report = session.report()
    data = report.to_dict()
    data["events"] = [_event_out(e) for e in report.events]
    return data


@router.get("/models-status", response_model=ModelStatusResponse)
async def get_models_status():
    """Check which perception backends are installed"""
    from .models import check_models

    return ModelStatusResponse(**check_models())


# ============== Report Endpoints ==============

@router.post("/save-report")
def save_report(payload: ReportPayload, store: BaseReportStore = Depends(get_report_store)):
    """Store a finished report document"""
    try:
        result = store.save_report(payload)
    except ReportSaveFailed as e:
        logger.error(f"Failed to save report: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to save report"})

    return {"message": "Report saved successfully", "id": result.get("id")}


@router.get("/reports")
def list_reports(store: BaseReportStore = Depends(get_report_store)):
    """All stored reports, newest first"""
    try:
        return store.list_reports()
    except ReportFetchFailed as e:
        logger.error(f"Failed to fetch reports: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch reports"})
