"""Proctoring utility modules"""

from .logging import (
    log_proctor_event,
    log_session_start,
    log_session_end,
    log_event_emitted,
    log_report_saved,
)

__all__ = [
    "log_proctor_event",
    "log_session_start",
    "log_session_end",
    "log_event_emitted",
    "log_report_saved",
]
