"""
Proctoring Errors - Exceptions raised by sessions, configuration and report stores
"""

from typing import Any, Dict, Optional


class ProctorError(Exception):
    """Base class for all proctoring errors"""


class SessionNotFound(ProctorError):
    """No session is registered under the requested ID"""


class SessionClosed(ProctorError):
    """The session has ended and no longer accepts observations or mutations"""


class SessionNotStarted(ProctorError):
    """The session has not been started yet"""


class InvalidConfiguration(ProctorError, ValueError):
    """Detector configuration failed validation at session construction"""


class ReportSaveFailed(ProctorError):
    """
    Persisting a report failed.

    The report that could not be saved is kept on the exception so callers
    can retry without rebuilding it.
    """

    def __init__(self, message: str, report: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.report = report


class ReportFetchFailed(ProctorError):
    """Listing stored reports failed"""
