"""Observability helpers: structured logging and correlation IDs"""

from .correlation_id import (
    correlation_scope,
    generate_correlation_id,
    get_correlation_id,
)
from .logging_config import configure_logging, CorrelationIDFilter, JSONFormatter

__all__ = [
    "correlation_scope",
    "generate_correlation_id",
    "get_correlation_id",
    "configure_logging",
    "CorrelationIDFilter",
    "JSONFormatter",
]
