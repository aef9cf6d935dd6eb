"""
Interview Proctor Service

Event detection and integrity scoring for monitored interview sessions.
"""

__version__ = "1.0.0"
