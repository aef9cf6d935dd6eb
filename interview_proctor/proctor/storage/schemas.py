"""
Report Schemas - Validation of persisted report documents
"""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ReportSummaryPayload(BaseModel):
    """Score summary as stored with a report"""

    counts: Dict[str, int] = Field(default_factory=dict)
    deductions: int = 0
    finalScore: int = 100


class ReportPayload(BaseModel):
    """
    A report document as accepted by save-report.

    The candidate identifier is required and may be sent as candidateName
    or candidateId. Start and end times are ISO-8601 strings or null.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    candidate_name: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("candidateName", "candidateId", "candidate_name"),
        serialization_alias="candidateName",
    )
    session_id: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration_ms: Optional[int] = Field(None, ge=0)
    events: List[Dict[str, Any]] = Field(default_factory=list)
    summary: ReportSummaryPayload = Field(default_factory=ReportSummaryPayload)


class StoredReport(ReportPayload):
    """A report read back from a store"""

    id: str
    created_at: str
