"""
Local Capture - Feeds a local webcam into a monitoring session

Usage:
    python -m interview_proctor.proctor.capture --candidate "Jane Doe" --display
"""

import argparse
import logging
import time
from typing import Optional

import cv2

from .session import ProctorSession
from .storage import get_report_store
from .errors import ReportSaveFailed

logger = logging.getLogger(__name__)


def run_local_monitor(
    candidate_id: str,
    camera_index: int = 0,
    max_seconds: Optional[float] = None,
    save: bool = True,
    display: bool = False
) -> dict:
    """
    Monitor a candidate through a local camera until max_seconds elapse,
    the camera stops delivering frames, or ESC is pressed in the preview.

    Frames go through process_frame(), so faces are checked every frame
    and objects once per poll interval on their own worker thread.

    Args:
        candidate_id: ID or name of the candidate
        camera_index: OpenCV camera index
        max_seconds: Stop after this many seconds (None runs until stopped)
        save: Persist the report through the configured report store
        display: Show a preview window (needs an OpenCV build with GUI support)

    Returns:
        The session report as a dict

    Raises:
        RuntimeError: if the camera cannot be opened
    """
    capture = cv2.VideoCapture(camera_index)
    if not capture.isOpened():
        raise RuntimeError(f"Camera {camera_index} is not available")

    session = ProctorSession(
        candidate_id=candidate_id,
        on_alert=lambda event: logger.warning(f"ALERT: {event.kind.value}")
    )
    session.start()
    started = time.monotonic()
    frame_count = 0

    try:
        while True:
            ok, frame = capture.read()
            if not ok:
                logger.warning("Camera read failed, stopping")
                break

            session.process_frame(frame)
            frame_count += 1

            if display:
                cv2.imshow("Interview Proctor", frame)
                if cv2.waitKey(1) & 0xFF == 27:  # ESC key
                    break

            if max_seconds is not None and time.monotonic() - started >= max_seconds:
                break
    except KeyboardInterrupt:
        logger.info("Capture interrupted")
    finally:
        capture.release()
        if display:
            cv2.destroyAllWindows()

    report = session.end()
    logger.info(f"Processed {frame_count} frames in {time.monotonic() - started:.2f} seconds")

    if save:
        try:
            get_report_store().save_report(report)
        except ReportSaveFailed as e:
            logger.error(f"Report not saved: {e}")

    return report.to_dict()


def main():
    parser = argparse.ArgumentParser(description="Run a local proctoring session")
    parser.add_argument("--candidate", required=True, help="Candidate ID or name")
    parser.add_argument("--camera", type=int, default=0, help="Camera index")
    parser.add_argument("--seconds", type=float, default=None, help="Stop after this many seconds")
    parser.add_argument("--display", action="store_true", help="Show a preview window")
    parser.add_argument("--no-save", action="store_true", help="Do not persist the report")
    args = parser.parse_args()

    from ..utils.logging import setup_logger
    setup_logger("interview_proctor", logging.INFO)

    report = run_local_monitor(
        args.candidate,
        camera_index=args.camera,
        max_seconds=args.seconds,
        save=not args.no_save,
        display=args.display
    )
    summary = report["summary"]
    print(f"Final score: {summary['finalScore']} (deductions: {summary['deductions']})")


if __name__ == "__main__":
    main()
