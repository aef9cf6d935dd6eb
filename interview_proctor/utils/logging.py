"""
Logging Utility for the Interview Proctor service

Console output is colored by source tag:
- [API]      request lines written by the HTTP middleware
- [PROCTOR]  session lifecycle and detector events
- [DB]       report persistence

Event lines are further colored by event kind, so alerts (looking away,
phone in view) stand out from episode-end notices.
"""
import logging
import sys
import uuid
from datetime import datetime
from typing import Any, Dict, Optional, TextIO


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    BG_RED = "\033[41m"


TAG_COLORS = {
    "[API]": Colors.CYAN,
    "[PROCTOR]": Colors.MAGENTA,
    "[DB]": Colors.BLUE,
}

# event=<kind> fragments of [PROCTOR] lines
EVENT_COLORS = {
    "object_detected": Colors.BOLD + Colors.RED,
    "multiple_faces_detected": Colors.BOLD + Colors.RED,
    "no_face_detected": Colors.RED,
    "looking_away_flag": Colors.YELLOW,
    "drowsiness_detected": Colors.YELLOW,
    "background_voice_detected": Colors.YELLOW,
    "looking_away_end": Colors.DIM,
    "face_missing_end": Colors.DIM,
    "report_save_failed": Colors.RED,
}


class ColoredFormatter(logging.Formatter):
    """
    Single-line colored formatter.

    With use_color=False the same layout is written without escape codes
    (used when the stream is not a terminal).
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.DIM + Colors.WHITE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BG_RED + Colors.WHITE,
    }

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{Colors.RESET}" if self.use_color else text

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        level = self._paint(f"{record.levelname:8}", self.LEVEL_COLORS.get(record.levelno, Colors.WHITE))
        body = record.getMessage()

        if self.use_color:
            for tag, color in TAG_COLORS.items():
                if tag in body:
                    body = body.replace(tag, self._paint(tag, color), 1)
            for kind, color in EVENT_COLORS.items():
                fragment = f"event={kind}"
                if fragment in body:
                    body = body.replace(fragment, self._paint(fragment, color), 1)
                    break

        message = f"{self._paint(timestamp, Colors.DIM)} {level} [{self._paint(record.name, Colors.CYAN)}] {body}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


def setup_logger(
    name: str = "interview_proctor",
    level: int = logging.INFO,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Attach a colored console handler to the package logger.

    Calling it again replaces the handler instead of adding a second one.
    """
    stream = stream or sys.stdout
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers = [h for h in logger.handlers if not getattr(h, "_proctor_console", False)]

    handler = logging.StreamHandler(stream)
    handler.setFormatter(ColoredFormatter(use_color=hasattr(stream, "isatty") and stream.isatty()))
    handler.setLevel(level)
    handler._proctor_console = True
    logger.addHandler(handler)

    return logger


api_logger = logging.getLogger("interview_proctor.api")


def generate_request_id() -> str:
    """Generate unique request ID."""
    return f"req_{uuid.uuid4().hex[:8]}"


def log_request(method: str, path: str, status: int, duration_ms: int, request_id: Optional[str] = None):
    """Log a completed API request; 4xx/5xx responses are logged as warnings."""
    message = f"[API] {method} {path} -> {status} in {duration_ms}ms"
    if request_id:
        message += f" ({request_id})"

    if status >= 400:
        api_logger.warning(message)
    else:
        api_logger.info(message)


def log_error(error_type: str, message: str, request_id: Optional[str] = None):
    """Log an unhandled request error."""
    suffix = f" ({request_id})" if request_id else ""
    api_logger.error(f"[API] {error_type}: {message}{suffix}")


def log_startup(service_name: str, port: int, details: Optional[Dict[str, Any]] = None):
    """Print the startup banner with the effective configuration."""
    rule = f"{Colors.BOLD}{Colors.GREEN}{'=' * 60}{Colors.RESET}"
    print(f"\n{rule}")
    print(f"{Colors.BOLD}{Colors.GREEN}  {service_name} STARTED{Colors.RESET}")
    print(rule)
    print(f"  Running on: {Colors.CYAN}http://localhost:{port}{Colors.RESET}")

    if details:
        print(f"{Colors.DIM}Configuration:{Colors.RESET}")
        width = max(len(key) for key in details)
        for key, value in details.items():
            print(f"  {key:<{width}}  {Colors.CYAN}{value}{Colors.RESET}")
    print()
