"""
Detector Streams - One worker thread and message queue per detector

Each stream keeps only the most recent pending samples; when the detector
falls behind, older samples are dropped so a slow detector never delays
the others or builds up a backlog.
"""

import logging
import queue
import threading
from datetime import datetime
from typing import Any, Callable, Optional

from .errors import SessionClosed

logger = logging.getLogger(__name__)

_STOP = object()


class DetectorStream:
    """
    Background worker feeding samples to a handler in arrival order.

    Usage:
        stream = DetectorStream("audio", session.observe_audio)
        stream.start()
        stream.submit(level, now)
        ...
        stream.stop()
    """

    def __init__(
        self,
        name: str,
        handler: Callable[[Any, datetime], Any],
        max_pending: int = 1
    ):
        """
        Args:
            name: Stream name (used for the thread name and logs)
            handler: Called as handler(sample, now) on the worker thread
            max_pending: Samples kept while the handler is busy
        """
        self.name = name
        self._handler = handler
        self._queue: "queue.Queue" = queue.Queue(maxsize=max_pending + 1)
        self._max_pending = max_pending
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._put_lock = threading.Lock()
        self.dropped = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stopped.is_set()

    def start(self):
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name=f"proctor-{self.name}", daemon=True)
        self._thread.start()
        logger.debug(f"Stream {self.name} started")

    def submit(self, sample: Any, now: datetime) -> bool:
        """
        Queue a sample, dropping the oldest pending one if the queue is full.

        Returns:
            False if the stream has been stopped
        """
        if self._stopped.is_set():
            return False

        with self._put_lock:
            while self._queue.qsize() >= self._max_pending:
                try:
                    self._queue.get_nowait()
                    self.dropped += 1
                except queue.Empty:
                    break
            self._queue.put_nowait((sample, now))
        return True

    def _run(self):
        while True:
            item = self._queue.get()
            if item is _STOP or self._stopped.is_set():
                break

            sample, now = item
            try:
                self._handler(sample, now)
            except SessionClosed:
                break
            except Exception:
                logger.exception(f"Stream {self.name} handler failed")

        logger.debug(f"Stream {self.name} stopped (dropped={self.dropped})")

    def stop(self, timeout: Optional[float] = None):
        """
        Stop the worker. Pending samples are discarded.

        Args:
            timeout: Seconds to wait for the worker to exit; None does not wait
        """
        self._stopped.set()
        with self._put_lock:
            while True:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    break
            self._queue.put_nowait(_STOP)

        if timeout is not None:
            self.join(timeout)

    def join(self, timeout: float) -> bool:
        """
        Wait for the worker to exit. A no-op when called from the worker itself.

        Returns:
            True if the worker is no longer running
        """
        thread = self._thread
        if thread is None:
            return True
        if thread is not threading.current_thread():
            thread.join(timeout)
        return not thread.is_alive()
