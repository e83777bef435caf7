# ideaboard/utils/telemetry.py
import logging
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

_event_logger = logging.getLogger("ideaboard.events")


def setup_event_logging(app) -> logging.Logger:
    """Configure structured JSON logging for discussion events."""
    if getattr(_event_logger, "_ideaboard_configured", False):
        return _event_logger

    formatter = jsonlogger.JsonFormatter(
        fmt='%(asctime)s %(levelname)s %(name)s %(message)s',
        rename_fields={'asctime': '@timestamp', 'levelname': 'level'}
    )
    _event_logger.setLevel(logging.INFO)
    _event_logger.propagate = False

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    _event_logger.addHandler(console_handler)

    # Optional audit file
    log_path = app.config.get("EVENT_LOG_PATH")
    if log_path:
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        _event_logger.addHandler(file_handler)

    _event_logger._ideaboard_configured = True  # type: ignore[attr-defined]
    return _event_logger


def log_event(event_type: str, payload: Dict[str, Any]) -> None:
    # Extra keys become top-level JSON fields
    _event_logger.info(event_type, extra={"event": event_type, **payload})
