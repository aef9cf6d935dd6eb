"""
Detector Configuration - Thresholds and debounce windows for one monitoring session

Options use snake_case attribute names and accept the camelCase option names
(lookAwaySeconds, noFaceSeconds, ...) as input aliases.
"""

import logging
from typing import Any, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .errors import InvalidConfiguration

logger = logging.getLogger(__name__)

DEFAULT_SUSPICIOUS_CLASSES: Tuple[str, ...] = (
    "cell phone",
    "book",
    "laptop",
    "tv",
    "remote",
    "keyboard",
    "mouse",
    "tablet",
)


class DetectorConfig(BaseModel):
    """Validated, immutable detector configuration"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )

    look_away_seconds: float = Field(5.0, gt=0)
    gaze_turn_threshold: float = Field(0.06, gt=0)
    gaze_vertical_threshold: float = Field(0.08, gt=0)
    no_face_seconds: float = Field(10.0, gt=0)
    object_poll_ms: int = Field(700, gt=0)
    object_score_threshold: float = Field(0.5, ge=0, le=1)
    ear_threshold: float = Field(0.22, ge=0)
    eye_closed_seconds: float = Field(2.0, gt=0)
    audio_level_threshold: float = Field(50.0, ge=0)
    audio_debounce_ms: int = Field(5000, ge=0)
    suspicious_classes: Tuple[str, ...] = DEFAULT_SUSPICIOUS_CLASSES
    dedupe_window_events: int = Field(8, ge=0)
    multiple_faces_episodic: bool = False

    @field_validator("suspicious_classes")
    @classmethod
    def _normalise_classes(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        classes = tuple(c.strip().lower() for c in value if c and c.strip())
        if not classes:
            raise ValueError("suspiciousClasses must name at least one class")
        return classes

    @classmethod
    def from_settings(cls, app_settings=None) -> "DetectorConfig":
        """
        Build the default configuration from service settings.

        Args:
            app_settings: Settings instance (defaults to the global settings)
        """
        if app_settings is None:
            from ..config import settings as app_settings

        return cls(
            look_away_seconds=app_settings.PROCTOR_LOOK_AWAY_SECONDS,
            gaze_turn_threshold=app_settings.PROCTOR_GAZE_TURN_THRESHOLD,
            gaze_vertical_threshold=app_settings.PROCTOR_GAZE_VERTICAL_THRESHOLD,
            no_face_seconds=app_settings.PROCTOR_NO_FACE_SECONDS,
            object_poll_ms=app_settings.PROCTOR_OBJECT_POLL_MS,
            object_score_threshold=app_settings.PROCTOR_OBJECT_SCORE_THRESHOLD,
            ear_threshold=app_settings.PROCTOR_EAR_THRESHOLD,
            eye_closed_seconds=app_settings.PROCTOR_EYE_CLOSED_SECONDS,
            audio_level_threshold=app_settings.PROCTOR_AUDIO_LEVEL_THRESHOLD,
            audio_debounce_ms=app_settings.PROCTOR_AUDIO_DEBOUNCE_MS,
            suspicious_classes=tuple(app_settings.PROCTOR_SUSPICIOUS_CLASSES),
            dedupe_window_events=app_settings.PROCTOR_DEDUPE_WINDOW_EVENTS,
            multiple_faces_episodic=app_settings.PROCTOR_MULTIPLE_FACES_EPISODIC,
        )


def build_config(
    overrides: Union[DetectorConfig, Mapping[str, Any], None] = None,
    base: Optional[DetectorConfig] = None,
) -> DetectorConfig:
    """
    Resolve a session's detector configuration.

    Args:
        overrides: A ready DetectorConfig, or a mapping of options keyed by
                   camelCase or snake_case names
        base: Configuration the overrides apply to (defaults to settings)

    Returns:
        Validated DetectorConfig

    Raises:
        InvalidConfiguration: if any option is unknown or out of range
    """
    if isinstance(overrides, DetectorConfig):
        return overrides

    aliases = {name: info.alias or to_camel(name) for name, info in DetectorConfig.model_fields.items()}

    try:
        if base is None:
            base = DetectorConfig.from_settings()
        data = base.model_dump(by_alias=True)
        for key, value in (overrides or {}).items():
            data[aliases.get(key, key)] = value
        return DetectorConfig.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Rejected detector configuration: {e.error_count()} error(s)")
        raise InvalidConfiguration(str(e)) from e
