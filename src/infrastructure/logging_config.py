"""Logging setup for Questionnaire Bridge.

JSON lines for production, a plain one-line format for development.

Security Impact:
    - Answer trees are only dumped at DEBUG, so INFO logs carry no form data
    - Auth headers are never passed to a logger
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from src.infrastructure.settings import settings

# Attributes FormSession attaches through ``extra=``
CONTEXT_FIELDS = ("record_kind", "record_id")

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

NOISY_LOGGERS = ("urllib3", "requests")


class StructuredFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(use_json: Optional[bool] = None, log_level: Optional[str] = None) -> None:
    """Replace the root handlers with a single stdout handler.

    Parameters:
        use_json: Emit JSON lines instead of the text format
            (defaults to ``settings.json_logs``, env ``QB_JSON_LOGS``)
        log_level: Level name; unknown names fall back to INFO
            (defaults to ``settings.log_level``, env ``QB_LOG_LEVEL``)
    """
    if use_json is None:
        use_json = settings.json_logs
    if log_level is None:
        log_level = settings.log_level
    level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if use_json:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
