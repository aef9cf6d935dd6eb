"""
Interview Proctoring Module

Turns real-time perception output into discrete, de-duplicated events:
- Looking away from the screen
- Face absence
- Multiple faces in view
- Suspicious objects (phones, books, ...)
- Drowsiness (sustained eye closure)
- Background voices

Events are folded into an Integrity Score (0-100) and a persisted report.
"""

from .api import router

__all__ = ["router"]
