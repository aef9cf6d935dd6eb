"""
Pytest Configuration for Interview Proctor Tests
"""
import os
import sys
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

T0 = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)


def _landmarks(dx: float = 0.0, dy: float = 0.0, ear: float = 0.3) -> dict:
    """
    Minimal FaceMesh landmark set.

    Outer eye corners sit at (0.40, 0.40) and (0.60, 0.40); the nose tip is
    offset from their midpoint by (dx, dy). Both eye contours are 0.06 wide
    with their lids opened so the eye aspect ratio equals `ear`.
    """
    y = 0.40
    v = ear * 0.03
    return {
        # gaze anchors
        33: (0.40, y),
        263: (0.60, y),
        1: (0.50 + dx, y + dy),
        # left eye contour: 33, 160, 158, 133, 153, 144
        160: (0.42, y - v),
        158: (0.44, y - v),
        133: (0.46, y),
        153: (0.44, y + v),
        144: (0.42, y + v),
        # right eye contour: 362, 385, 387, 263, 373, 380
        362: (0.54, y),
        385: (0.56, y - v),
        387: (0.58, y - v),
        373: (0.58, y + v),
        380: (0.56, y + v),
    }


@pytest.fixture
def at():
    """Timestamp `seconds` after a fixed session epoch"""
    return lambda seconds: T0 + timedelta(seconds=seconds)


@pytest.fixture
def landmarks():
    """Factory for landmark sets: landmarks(dx=0.1) looks away"""
    return _landmarks


@pytest.fixture
def config():
    """Default detector configuration (independent of the environment)"""
    from interview_proctor.proctor.config import DetectorConfig
    return DetectorConfig()


@pytest.fixture
def report_store(tmp_path):
    """SQLite-backed report store in a temporary directory"""
    from interview_proctor.proctor.storage import SqlReportStore
    return SqlReportStore(f"sqlite:///{tmp_path / 'reports.db'}")


@pytest.fixture(scope='session')
def app():
    """Create FastAPI app for testing"""
    from interview_proctor.main import app
    return app


@pytest.fixture(scope='function')
def client(app, report_store):
    """FastAPI test client with a temporary report store"""
    from interview_proctor.proctor.storage import get_report_store

    app.dependency_overrides[get_report_store] = lambda: report_store
    yield TestClient(app)
    app.dependency_overrides.clear()
