"""Scoring modules for proctoring"""

from .integrity_scorer import IntegrityScorer, ScoreSummary, score

__all__ = ["IntegrityScorer", "ScoreSummary", "score"]
