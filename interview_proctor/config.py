"""
Interview Proctor Configuration Settings

Service settings are read from the environment (or a local .env file).
The PROCTOR_* values are the default detector thresholds used by every
new monitoring session unless a session overrides them.
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Configuration for the Interview Proctor service."""

    # API Settings
    APP_NAME: str = "Interview Proctor Service"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8001
    CORS_ORIGINS: List[str] = ["*"]  # credentials stay disabled while this is "*"

    # Report persistence
    REPORTS_DB_URL: str = "sqlite:///./proctoring_reports.db"
    REPORT_SERVICE_URL: Optional[str] = None  # remote /api/proctoring service, if any
    REPORT_SERVICE_TIMEOUT: float = 10.0

    # Perception models (loaded lazily)
    YOLO_MODEL_PATH: Optional[str] = None
    FACE_MESH_MAX_FACES: int = 2
    FACE_MESH_MIN_CONFIDENCE: float = 0.5

    # Detector defaults
    PROCTOR_LOOK_AWAY_SECONDS: float = 5.0
    PROCTOR_GAZE_TURN_THRESHOLD: float = 0.06  # nose offset, normalized image units
    PROCTOR_GAZE_VERTICAL_THRESHOLD: float = 0.08
    PROCTOR_NO_FACE_SECONDS: float = 10.0
    PROCTOR_OBJECT_POLL_MS: int = 700
    PROCTOR_OBJECT_SCORE_THRESHOLD: float = 0.5
    PROCTOR_EAR_THRESHOLD: float = 0.22
    PROCTOR_EYE_CLOSED_SECONDS: float = 2.0
    PROCTOR_AUDIO_LEVEL_THRESHOLD: float = 50.0
    PROCTOR_AUDIO_DEBOUNCE_MS: int = 5000
    PROCTOR_SUSPICIOUS_CLASSES: List[str] = [
        "cell phone",
        "book",
        "laptop",
        "tv",
        "remote",
        "keyboard",
        "mouse",
        "tablet",
    ]
    PROCTOR_DEDUPE_WINDOW_EVENTS: int = 8
    PROCTOR_MULTIPLE_FACES_EPISODIC: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
