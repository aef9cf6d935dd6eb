"""
Report Store - Persistence for finished proctoring reports

Provides:
- save_report(report) -> {"ok": True, "id": ...}, or raises ReportSaveFailed
- list_reports() -> stored reports, newest first

SqlReportStore keeps reports in a SQL database (SQLite by default).
HttpReportStore forwards to a remote /api/proctoring service.
"""

import json
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import httpx
from pydantic import ValidationError
from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ReportFetchFailed, ReportSaveFailed
from ..report import Report
from .schemas import ReportPayload, StoredReport

logger = logging.getLogger(__name__)

ReportLike = Union[Report, ReportPayload, Mapping[str, Any]]


def _to_payload(report: ReportLike) -> ReportPayload:
    if isinstance(report, ReportPayload):
        return report
    data = report.to_dict() if isinstance(report, Report) else dict(report)
    try:
        return ReportPayload.model_validate(data)
    except ValidationError as e:
        raise ReportSaveFailed(f"Invalid report: {e.error_count()} error(s)", report=data) from e


class BaseReportStore(ABC):
    """Store/query contract shared by all report stores"""

    @abstractmethod
    def save_report(self, report: ReportLike) -> Dict[str, Any]:
        """Persist a report; raises ReportSaveFailed on any failure"""

    @abstractmethod
    def list_reports(self) -> List[Dict[str, Any]]:
        """All stored reports, newest first"""


class SqlReportStore(BaseReportStore):
    """
    SQL repository for proctoring reports.

    Uses raw SQL; events and summary are stored as JSON text.
    """

    def __init__(self, db_url: str = None, clock: Optional[Callable[[], datetime]] = None):
        if db_url is None:
            from ...config import settings
            db_url = settings.REPORTS_DB_URL
        self.db_url = db_url
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._engine = None
        self._schema_ready = False
        self._schema_lock = threading.Lock()

    @property
    def engine(self):
        """Lazy load engine"""
        if self._engine is None:
            self._engine = create_engine(self.db_url)
        return self._engine

    def _ensure_schema(self):
        if self._schema_ready:
            return
        with self._schema_lock:
            if self._schema_ready:
                return
            with self.engine.begin() as conn:
                conn.execute(text("""
                    CREATE TABLE IF NOT EXISTS proctoring_reports (
                        id VARCHAR(32) PRIMARY KEY,
                        candidate_name VARCHAR(255) NOT NULL,
                        session_id VARCHAR(64),
                        start_time VARCHAR(40),
                        end_time VARCHAR(40),
                        duration_ms INTEGER,
                        events TEXT NOT NULL,
                        summary TEXT NOT NULL,
                        created_at VARCHAR(40) NOT NULL
                    )
                """))
            self._schema_ready = True

    def save_report(self, report: ReportLike) -> Dict[str, Any]:
        """
        Save a report.

        Args:
            report: Report, ReportPayload or report dict (camelCase keys)

        Returns:
            {"ok": True, "id": <report id>}

        Raises:
            ReportSaveFailed: invalid report or database error
        """
        payload = _to_payload(report)
        report_id = uuid.uuid4().hex
        created_at = self._clock().isoformat(timespec="microseconds")

        try:
            self._ensure_schema()
            with self.engine.begin() as conn:
                conn.execute(text("""
                    INSERT INTO proctoring_reports
                    (id, candidate_name, session_id, start_time, end_time, duration_ms, events, summary, created_at)
                    VALUES (:id, :candidate_name, :session_id, :start_time, :end_time, :duration_ms, :events, :summary, :created_at)
                """), {
                    "id": report_id,
                    "candidate_name": payload.candidate_name,
                    "session_id": payload.session_id,
                    "start_time": payload.start_time,
                    "end_time": payload.end_time,
                    "duration_ms": payload.duration_ms,
                    "events": json.dumps(payload.events),
                    "summary": payload.summary.model_dump_json(),
                    "created_at": created_at,
                })
        except SQLAlchemyError as e:
            logger.error(f"[DB] Failed to save report: {e}")
            raise ReportSaveFailed("Failed to save report", report=payload.model_dump(by_alias=True)) from e

        logger.info(f"[DB] Saved report {report_id[:8]}... for {payload.candidate_name}")
        return {"ok": True, "id": report_id}

    def list_reports(self) -> List[Dict[str, Any]]:
        """
        Load all reports, newest first.

        Raises:
            ReportFetchFailed: database error
        """
        try:
            self._ensure_schema()
            with self.engine.connect() as conn:
                rows = conn.execute(text("""
                    SELECT id, candidate_name, session_id, start_time, end_time,
                           duration_ms, events, summary, created_at
                    FROM proctoring_reports
                    ORDER BY created_at DESC
                """)).fetchall()
        except SQLAlchemyError as e:
            logger.error(f"[DB] Failed to fetch reports: {e}")
            raise ReportFetchFailed("Failed to fetch reports") from e

        return [
            StoredReport(
                id=row[0],
                candidate_name=row[1],
                session_id=row[2],
                start_time=row[3],
                end_time=row[4],
                duration_ms=row[5],
                events=json.loads(row[6]),
                summary=json.loads(row[7]),
                created_at=row[8],
            ).model_dump(by_alias=True)
            for row in rows
        ]


class HttpReportStore(BaseReportStore):
    """
    Client for a remote proctoring report service.

    Endpoints:
    - POST {base_url}/api/proctoring/save-report
    - GET  {base_url}/api/proctoring/reports
    """

    SAVE_PATH = "/api/proctoring/save-report"
    LIST_PATH = "/api/proctoring/reports"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Args:
            base_url: Root URL of the report service
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def save_report(self, report: ReportLike) -> Dict[str, Any]:
        payload = _to_payload(report)
        body = payload.model_dump(by_alias=True)

        try:
            response = self._client.post(self.SAVE_PATH, json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Report service rejected report for {payload.candidate_name}: {e}")
            raise ReportSaveFailed("Failed to save report", report=body) from e

        try:
            data = response.json() if response.content else {}
        except ValueError as e:
            logger.error(f"Report service sent an unreadable reply for {payload.candidate_name}: {e}")
            raise ReportSaveFailed("Failed to save report", report=body) from e
        if not isinstance(data, dict):
            data = {}

        logger.info(f"Report for {payload.candidate_name} saved to {self.base_url}")
        return {"ok": True, "id": data.get("id"), "message": data.get("message")}

    def list_reports(self) -> List[Dict[str, Any]]:
        try:
            response = self._client.get(self.LIST_PATH)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch reports from {self.base_url}: {e}")
            raise ReportFetchFailed("Failed to fetch reports") from e

        try:
            reports = response.json()
        except ValueError as e:
            logger.error(f"Report service sent an unreadable report list: {e}")
            raise ReportFetchFailed("Failed to fetch reports") from e
        if not isinstance(reports, list):
            raise ReportFetchFailed("Failed to fetch reports")
        return reports

    def close(self):
        self._client.close()


_store: Optional[BaseReportStore] = None


def get_report_store() -> BaseReportStore:
    """
    Get the process-wide report store.

    Uses the remote service when REPORT_SERVICE_URL is set, otherwise the
    SQL store at REPORTS_DB_URL.
    """
    global _store
    if _store is None:
        from ...config import settings
        if settings.REPORT_SERVICE_URL:
            _store = HttpReportStore(settings.REPORT_SERVICE_URL, timeout=settings.REPORT_SERVICE_TIMEOUT)
        else:
            _store = SqlReportStore(settings.REPORTS_DB_URL)
    return _store
