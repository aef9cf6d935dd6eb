"""
Tests for service and proctoring log output
"""

import io
import logging


class TestProctorLogLines:
    """Tests for the [PROCTOR] key=value lines"""

    def test_alert_logged_as_warning(self, caplog):
        from interview_proctor.proctor.utils.logging import log_event_emitted

        with caplog.at_level(logging.INFO, logger="interview_proctor.proctor.utils.logging"):
            log_event_emitted("PRC_ABC123", "no_face_detected", "No face detected")
            log_event_emitted("PRC_ABC123", "face_missing_end", "Face returned")

        alert, routine = caplog.records
        assert alert.levelno == logging.WARNING
        assert alert.getMessage() == '[PROCTOR] session=PRC_ABC123 event=no_face_detected message="No face detected"'
        assert routine.levelno == logging.INFO

    def test_failed_save_logged_as_error(self, caplog):
        from interview_proctor.proctor.utils.logging import log_report_saved

        with caplog.at_level(logging.INFO, logger="interview_proctor.proctor.utils.logging"):
            log_report_saved("PRC_ABC123", saved=False, error="Failed to save report")

        assert caplog.records[0].levelno == logging.ERROR
        assert "event=report_save_failed" in caplog.records[0].getMessage()


class TestConsoleLogging:
    """Tests for setup_logger and ColoredFormatter"""

    def test_plain_output_when_not_a_tty(self):
        from interview_proctor.utils.logging import setup_logger

        stream = io.StringIO()
        logger = setup_logger("interview_proctor.test_console", logging.INFO, stream=stream)
        logger.info("[PROCTOR] session=PRC_1 event=session_start")

        line = stream.getvalue()
        assert "\033[" not in line
        assert "[PROCTOR] session=PRC_1 event=session_start" in line

    def test_setup_is_idempotent(self):
        from interview_proctor.utils.logging import setup_logger

        setup_logger("interview_proctor.test_console", stream=io.StringIO())
        logger = setup_logger("interview_proctor.test_console", stream=io.StringIO())

        assert len(logger.handlers) == 1

    def test_colored_event_kind(self):
        from interview_proctor.utils.logging import ColoredFormatter, Colors

        record = logging.LogRecord(
            "interview_proctor", logging.WARNING, __file__, 1,
            "[PROCTOR] session=PRC_1 event=object_detected", None, None
        )
        line = ColoredFormatter(use_color=True).format(record)

        assert f"{Colors.MAGENTA}[PROCTOR]{Colors.RESET}" in line
        assert f"{Colors.BOLD}{Colors.RED}event=object_detected{Colors.RESET}" in line


class TestRequestIds:
    """Tests for the request logging middleware"""

    def test_request_id_is_echoed(self, client):
        response = client.get("/api/proctoring/models-status", headers={"X-Request-ID": "req_fixed01"})

        assert response.headers["X-Request-ID"] == "req_fixed01"

    def test_request_id_is_generated(self, client):
        response = client.get("/health")

        assert response.headers["X-Request-ID"].startswith("req_")
