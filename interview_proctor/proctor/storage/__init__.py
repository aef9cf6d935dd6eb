"""Report persistence"""

from .report_store import BaseReportStore, SqlReportStore, HttpReportStore, get_report_store
from .schemas import ReportPayload, StoredReport

__all__ = [
    "BaseReportStore",
    "SqlReportStore",
    "HttpReportStore",
    "get_report_store",
    "ReportPayload",
    "StoredReport",
]
