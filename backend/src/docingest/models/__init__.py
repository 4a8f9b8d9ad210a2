"""SQLAlchemy models for the record store"""

from .base import Base, PortableJSONB
from .audit_log import AuditLog
from .citizen import Citizen
from .document import Document, DocumentType, DESCRIPTION_MAX_LENGTH
from .user import User

__all__ = [
    "Base",
    "PortableJSONB",
    "AuditLog",
    "Citizen",
    "Document",
    "DocumentType",
    "DESCRIPTION_MAX_LENGTH",
    "User",
]
