"""
Detector Base - Common observe() contract for all event detectors
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional

from ..config import DetectorConfig
from ..events import Event

logger = logging.getLogger(__name__)

# Returns False when the event was refused (e.g. the log is sealed)
EventSink = Callable[[Event], Any]
EventListener = Callable[[List[Event]], Any]

# Errors that mean the sample itself was malformed
MALFORMED_SAMPLE_ERRORS = (KeyError, IndexError, TypeError, ValueError, AttributeError)


class Detector(ABC):
    """
    A small state machine turning raw samples into discrete events.

    Each detector owns its state record exclusively. observe() runs under a
    per-detector lock, so samples for one detector are processed one at a
    time and in arrival order; other detectors are never blocked.

    A malformed sample is ignored: no event is emitted and the prior state
    is kept. Subclasses must therefore parse a sample completely before
    touching their state.
    """

    name = "detector"

    def __init__(
        self,
        config: DetectorConfig,
        sink: Optional[EventSink] = None,
        listener: Optional[EventListener] = None
    ):
        """
        Args:
            config: Session detector configuration
            sink: Optional callable receiving each emitted event while the
                  detector lock is still held; returning False refuses it
            listener: Optional callable receiving the accepted events after
                      the detector lock has been released
        """
        self.config = config
        self.sink = sink
        self.listener = listener
        self._lock = threading.Lock()

    def observe(self, sample: Any, now: datetime) -> List[Event]:
        """
        Feed one sample to the detector.

        Args:
            sample: Raw perceptual output for this detector's modality
            now: Time the sample was captured

        Returns:
            Events emitted for this sample and accepted by the sink
            (possibly empty)
        """
        with self._lock:
            try:
                events = list(self._observe(sample, now))
            except MALFORMED_SAMPLE_ERRORS as e:
                logger.debug(f"{self.name}: ignored malformed sample ({type(e).__name__}: {e})")
                return []

            if self.sink is not None:
                events = [event for event in events if self.sink(event) is not False]

        if events and self.listener is not None:
            self.listener(events)
        return events

    def reset(self):
        """Return the detector to its initial state"""
        with self._lock:
            self._reset_state()

    @abstractmethod
    def _observe(self, sample: Any, now: datetime) -> Iterable[Event]:
        """Process a sample; must not mutate state before the sample is validated"""

    @abstractmethod
    def _reset_state(self):
        """Reset the detector's state record"""
