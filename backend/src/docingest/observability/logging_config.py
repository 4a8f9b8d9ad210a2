"""Structured logging for the ingestion pipeline.

Every record is stamped with the correlation id of the ingestion attempt it
belongs to. Document identifiers passed via ``extra=`` end up as top-level
JSON keys so one attempt can be followed from validation to audit.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from .correlation_id import get_correlation_id

# Identifiers lifted from LogRecord attributes into the payload
DOCUMENT_CONTEXT_FIELDS = ("owner_id", "uploader_id", "document_id", "storage_key", "backend")

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"

QUIET_LOGGERS = ("sqlalchemy.engine", "botocore", "boto3", "urllib3")


class CorrelationIDFilter(logging.Filter):
    """Fill in correlation_id from context unless the caller passed one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id()
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", None) or get_correlation_id(),
            "message": record.getMessage(),
        }

        payload.update(
            (name, str(getattr(record, name)))
            for name in DOCUMENT_CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )

        if record.exc_info:
            payload["error"] = str(record.exc_info[1])
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Replace root handlers with a single stdout handler.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines when True, plain text otherwise
    """
    numeric_level = logging.getLevelName(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT))
    handler.addFilter(CorrelationIDFilter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
