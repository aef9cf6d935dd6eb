"""
Session Report - Read-only summary derived from a session's event log
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from .events import Event
from .scoring import ScoreSummary, score


@dataclass(frozen=True)
class Report:
    """
    Report for one session.

    Never edited by hand: build it from the log with Report.from_events().
    """

    candidate_id: str
    started_at: Optional[datetime]
    ended_at: Optional[datetime]
    events: Tuple[Event, ...]
    summary: ScoreSummary
    session_id: Optional[str] = None

    @property
    def duration_ms(self) -> Optional[int]:
        if self.started_at is None or self.ended_at is None:
            return None
        return int((self.ended_at - self.started_at).total_seconds() * 1000)

    @classmethod
    def from_events(
        cls,
        candidate_id: str,
        started_at: Optional[datetime],
        ended_at: Optional[datetime],
        events,
        session_id: Optional[str] = None
    ) -> "Report":
        events = tuple(events)
        return cls(
            candidate_id=candidate_id,
            started_at=started_at,
            ended_at=ended_at,
            events=events,
            summary=score(events),
            session_id=session_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Persistence / wire form of the report"""
        return {
            "candidateName": self.candidate_id,
            "sessionId": self.session_id,
            "startTime": self.started_at.isoformat() if self.started_at else None,
            "endTime": self.ended_at.isoformat() if self.ended_at else None,
            "durationMs": self.duration_ms,
            "events": [e.to_dict() for e in self.events],
            "summary": self.summary.to_dict(),
        }
