"""Audit sink interface and implementations"""

from .ports import AuditAction, AuditFact, AuditOutcome, AuditSeverity, AuditSink
from .service import DatabaseAuditSink, LoggingAuditSink, log_audit_event

__all__ = [
    "AuditAction",
    "AuditFact",
    "AuditOutcome",
    "AuditSeverity",
    "AuditSink",
    "DatabaseAuditSink",
    "LoggingAuditSink",
    "log_audit_event",
]
