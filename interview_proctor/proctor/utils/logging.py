"""
Proctoring Logger - One key=value line per session lifecycle step and event

Lines look like:
    [PROCTOR] session=PRC_1A2B3C event=no_face_detected message="No face detected"
"""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Episode-end notices are routine; everything else a detector emits is an alert
ROUTINE_EVENTS = ("looking_away_end", "face_missing_end")


def _format_value(value: Any) -> str:
    text = str(value)
    if not text or any(ch.isspace() for ch in text):
        return '"' + text.replace('"', "'") + '"'
    return text


def log_proctor_event(
    session_id: str,
    event_type: str,
    details: Optional[Dict[str, Any]] = None,
    level: int = logging.INFO
):
    """
    Write a [PROCTOR] line.

    Args:
        session_id: Proctoring session ID
        event_type: session_start, session_end, report_saved or an event kind
        details: key=value pairs appended to the line
        level: logging level
    """
    parts = [f"[PROCTOR] session={session_id}", f"event={event_type}"]
    parts.extend(f"{key}={_format_value(value)}" for key, value in (details or {}).items())
    logger.log(level, " ".join(parts))


def log_session_start(session_id: str, candidate_id: str):
    log_proctor_event(session_id, "session_start", {"candidate": candidate_id})


def log_session_end(session_id: str, final_score: int, deductions: int, events: int):
    log_proctor_event(session_id, "session_end", {
        "score": final_score,
        "deductions": deductions,
        "events": events,
    })


def log_event_emitted(session_id: str, event_type: str, message: str):
    """Log a detector event as it is appended to the session log"""
    level = logging.INFO if event_type in ROUTINE_EVENTS else logging.WARNING
    log_proctor_event(session_id, event_type, {"message": message}, level=level)


def log_report_saved(session_id: str, saved: bool, error: Optional[str] = None):
    if saved:
        log_proctor_event(session_id, "report_saved")
    else:
        log_proctor_event(session_id, "report_save_failed", {"error": error or "unknown"}, level=logging.ERROR)
