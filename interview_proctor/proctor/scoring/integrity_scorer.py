"""
Integrity Scorer - Computes the integrity score from a session's event log
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Tuple

from ..events import Event, EventKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreSummary:
    """Counts per event type, total deductions and the bounded final score"""

    counts_by_type: Mapping[str, int] = field(default_factory=dict)
    deduction_total: int = 0
    final_score: int = 100

    def __post_init__(self):
        object.__setattr__(self, "counts_by_type", MappingProxyType(dict(self.counts_by_type)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "counts": dict(self.counts_by_type),
            "deductions": self.deduction_total,
            "finalScore": self.final_score,
        }


class IntegrityScorer:
    """
    Computes an integrity score by deducting points per event.

    Formula:
        final_score = max(0, 100
            - 2  * looking_away_flag
            - 5  * no_face_detected
            - 10 * multiple_faces_detected
            - 20 * object_detected whose class contains "phone"
            - 10 * object_detected whose class contains "book")

    Class matching is case-insensitive; a class containing both words is
    charged for both.
    """

    BASE_SCORE = 100

    # Deduction per event kind
    WEIGHTS: Dict[str, int] = {
        EventKind.LOOKING_AWAY_FLAG.value: 2,
        EventKind.NO_FACE_DETECTED.value: 5,
        EventKind.MULTIPLE_FACES_DETECTED.value: 10,
    }

    # Deduction per object_detected event, by class substring
    OBJECT_WEIGHTS: Tuple[Tuple[str, int], ...] = (
        ("phone", 20),
        ("book", 10),
    )

    def _rule_counts(self, events: Tuple[Event, ...]) -> Dict[str, int]:
        counts = Counter(e.kind.value for e in events)
        rules = {kind: counts.get(kind, 0) for kind in self.WEIGHTS}

        object_classes = [
            str(e.attributes.get("class") or "").lower()
            for e in events
            if e.kind is EventKind.OBJECT_DETECTED
        ]
        for needle, _ in self.OBJECT_WEIGHTS:
            rules[f"object:{needle}"] = sum(1 for cls in object_classes if needle in cls)
        return rules

    def _weight(self, rule: str) -> int:
        if rule.startswith("object:"):
            return dict(self.OBJECT_WEIGHTS)[rule.split(":", 1)[1]]
        return self.WEIGHTS[rule]

    def compute(self, events: Iterable[Event]) -> ScoreSummary:
        """
        Score a sequence of events.

        Args:
            events: Events in log order

        Returns:
            ScoreSummary with counts by type, deduction total and final score
        """
        events = tuple(events)
        counts = Counter(e.kind.value for e in events)

        deductions = sum(
            count * self._weight(rule)
            for rule, count in self._rule_counts(events).items()
        )
        final_score = max(0, self.BASE_SCORE - deductions)

        logger.debug(f"Scored {len(events)} events: deductions={deductions}, score={final_score}")
        return ScoreSummary(
            counts_by_type=dict(sorted(counts.items())),
            deduction_total=deductions,
            final_score=final_score,
        )

    def compute_breakdown(self, events: Iterable[Event]) -> Dict[str, Any]:
        """
        Score with a per-rule breakdown of deductions.

        Returns:
            Dict with the summary and, per rule, its count, weight and penalty
        """
        events = tuple(events)
        summary = self.compute(events)

        penalties = {}
        for rule, count in self._rule_counts(events).items():
            weight = self._weight(rule)
            penalties[rule] = {
                "count": count,
                "weight": weight,
                "penalty": count * weight,
            }

        return {
            "final_score": summary.final_score,
            "deductions": summary.deduction_total,
            "penalties": penalties,
        }


_scorer = IntegrityScorer()


def score(events: Iterable[Event]) -> ScoreSummary:
    """Pure scoring function used wherever a score is needed"""
    return _scorer.compute(events)
