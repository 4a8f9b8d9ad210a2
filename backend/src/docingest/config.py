"""Application configuration via environment variables.

Provides type-safe settings loading using pydantic-settings, plus the
immutable ingestion policy object that each pipeline component receives at
construction time. Environment variables can be loaded from a .env file.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, FrozenSet, Optional

from pydantic_settings import BaseSettings

DEFAULT_ALLOWED_EXTENSIONS = "pdf,jpg,jpeg,png,gif,webp,txt,csv,doc,docx,xls,xlsx"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults for development.

    Environment Variables:
        DATABASE_URL: Record store connection string
        STORAGE_BACKEND: Registered storage backend name ("local" or "s3")
        UPLOADS_DIR: Root directory of the local storage backend
        PUBLIC_BASE_URL: Base URL used by the local backend to build file URLs
        S3_ENDPOINT_URL: S3-compatible endpoint (MinIO in dev, unset for AWS)
        S3_ACCESS_KEY_ID: S3 access key
        S3_SECRET_ACCESS_KEY: S3 secret key
        S3_BUCKET_NAME: Bucket for document storage
        MAX_UPLOAD_SIZE_BYTES: Global upload size ceiling
        ALLOWED_EXTENSIONS: Comma-separated extension allow-list
        DOCUMENT_REUSE_ENABLED: Reuse identical prior uploads instead of storing again
        QUARANTINE_SUSPICIOUS_CONTENT: Reject (instead of flag) suspicious content
        CONTENT_SCAN_ENABLED: Run the active-content scan
        LOG_LEVEL: Logging level (default INFO)
    """

    # Record store
    DATABASE_URL: str = "sqlite:///./docingest.db"

    # Storage
    STORAGE_BACKEND: str = "local"
    UPLOADS_DIR: str = "./uploads"
    PUBLIC_BASE_URL: str = "http://localhost:3000"
    PRESIGNED_URL_EXPIRY_SECONDS: int = 3600

    # Object Storage (S3/MinIO)
    S3_ENDPOINT_URL: Optional[str] = "http://localhost:9000"
    S3_ACCESS_KEY_ID: str = "minioadmin"
    S3_SECRET_ACCESS_KEY: str = "minioadmin"
    S3_BUCKET_NAME: str = "docingest-documents"
    S3_REGION: str = "us-east-1"

    # Upload limits
    MAX_UPLOAD_SIZE_BYTES: int = 10 * 1024 * 1024  # 10 MB
    ALLOWED_EXTENSIONS: str = DEFAULT_ALLOWED_EXTENSIONS

    # Pipeline switches
    DOCUMENT_REUSE_ENABLED: bool = True
    QUARANTINE_SUSPICIOUS_CONTENT: bool = True
    CONTENT_SCAN_ENABLED: bool = True

    # Application
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    ENVIRONMENT: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache for singleton behavior.
    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()


@dataclass(frozen=True)
class MimeTypeRule:
    """Per-mime policy: accepted extensions, size ceiling and downstream flags."""
    extensions: FrozenSet[str]
    max_size_bytes: int
    requires_encryption: bool = False
    allows_thumbnail: bool = False


MB = 1024 * 1024

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

DEFAULT_MIME_TYPE_RULES: Dict[str, MimeTypeRule] = {
    "application/pdf": MimeTypeRule(frozenset({"pdf"}), 10 * MB, requires_encryption=True, allows_thumbnail=True),
    "image/jpeg": MimeTypeRule(frozenset({"jpg", "jpeg"}), 5 * MB, allows_thumbnail=True),
    "image/png": MimeTypeRule(frozenset({"png"}), 5 * MB, allows_thumbnail=True),
    "image/gif": MimeTypeRule(frozenset({"gif"}), 2 * MB, allows_thumbnail=True),
    "image/webp": MimeTypeRule(frozenset({"webp"}), 5 * MB, allows_thumbnail=True),
    "text/plain": MimeTypeRule(frozenset({"txt"}), 1 * MB),
    "text/csv": MimeTypeRule(frozenset({"csv"}), 2 * MB),
    "application/msword": MimeTypeRule(frozenset({"doc"}), 10 * MB, requires_encryption=True),
    DOCX_MIME: MimeTypeRule(frozenset({"docx"}), 10 * MB, requires_encryption=True),
    "application/vnd.ms-excel": MimeTypeRule(frozenset({"xls"}), 10 * MB, requires_encryption=True),
    XLSX_MIME: MimeTypeRule(frozenset({"xlsx"}), 10 * MB, requires_encryption=True),
}

# Detected types that legitimately stand for a declared type.
# Office containers are sniffed as their container format by older libmagic builds.
_OLE_CONTAINERS = frozenset({"application/cdfv2","application/x-ole-storage", "application/vnd.ms-office"})

DEFAULT_SIGNATURE_EQUIVALENTS: Dict[str, FrozenSet[str]] = {
    "image/jpeg": frozenset({"image/jpg", "image/pjpeg"}),
    "text/plain": frozenset({"text/csv"}),
    "text/csv": frozenset({"text/plain", "application/csv"}),
    "application/msword": _OLE_CONTAINERS,
    "application/vnd.ms-excel": _OLE_CONTAINERS,
    DOCX_MIME: frozenset({"application/zip"}),
    XLSX_MIME: frozenset({"application/zip"}),
}

# Declared-type aliases normalized before any comparison.
DEFAULT_MIME_ALIASES: Dict[str, str] = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    "application/x-pdf": "application/pdf",
}

DEFAULT_BLOCKED_EXTENSIONS: FrozenSet[str] = frozenset({
    "exe", "bat", "cmd", "com", "scr", "pif", "msi", "dll", "sys", "vbs", "vbe",
    "js", "jse", "jar", "ws", "wsf", "wsh", "ps1", "psm1", "sh", "bash", "php",
    "asp", "aspx", "jsp", "py", "pl", "rb", "cgi", "hta", "lnk", "reg", "app",
    "deb", "rpm", "dmg", "iso", "apk",
})

DEFAULT_BLOCKED_MIME_TYPES: FrozenSet[str] = frozenset({
    "application/x-msdownload",
    "application/x-msdos-program",
    "application/x-executable",
    "application/x-dosexec",
    "application/x-sh",
    "application/x-shellscript",
    "application/x-bat",
    "application/javascript",
    "application/x-javascript",
    "text/javascript",
    "application/java-archive",
    "application/x-php",
    "text/x-php",
    "application/x-python-code",
    "text/x-python",
    "text/html",
    "application/xhtml+xml",
    "image/svg+xml",
    "application/x-msi",
    "application/vnd.microsoft.portable-executable",
})

PLAIN_TEXT_MIME_TYPES: FrozenSet[str] = frozenset({"text/plain", "text/csv"})


def _parse_extensions(raw: str) -> FrozenSet[str]:
    return frozenset(
        part.strip().lower().lstrip(".")
        for part in raw.split(",")
        if part.strip()
    )


@dataclass(frozen=True)
class IngestionPolicy:
    """Immutable configuration passed to every ingestion component.

    Built once at wiring time (see IngestionPolicy.from_settings) and never
    read from ambient global state by the components themselves.
    """
    max_file_size_bytes: int = 10 * MB
    allowed_extensions: FrozenSet[str] = field(
        default_factory=lambda: _parse_extensions(DEFAULT_ALLOWED_EXTENSIONS)
    )
    blocked_extensions: FrozenSet[str] = DEFAULT_BLOCKED_EXTENSIONS
    blocked_mime_types: FrozenSet[str] = DEFAULT_BLOCKED_MIME_TYPES
    mime_type_rules: Dict[str, MimeTypeRule] = field(default_factory=lambda: dict(DEFAULT_MIME_TYPE_RULES))
    signature_equivalents: Dict[str, FrozenSet[str]] = field(
        default_factory=lambda: dict(DEFAULT_SIGNATURE_EQUIVALENTS)
    )
    mime_aliases: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_MIME_ALIASES))
    plain_text_mime_types: FrozenSet[str] = PLAIN_TEXT_MIME_TYPES
    reuse_enabled: bool = True
    quarantine_suspicious: bool = True
    content_scan_enabled: bool = True
    signature_prefix_bytes: int = 4096
    scan_prefix_bytes: int = 8192
    non_ascii_density_threshold: float = 0.3

    @classmethod
    def from_settings(cls, settings: Settings) -> "IngestionPolicy":
        return cls(
            max_file_size_bytes=settings.MAX_UPLOAD_SIZE_BYTES,
            allowed_extensions=_parse_extensions(settings.ALLOWED_EXTENSIONS),
            reuse_enabled=settings.DOCUMENT_REUSE_ENABLED,
            quarantine_suspicious=settings.QUARANTINE_SUSPICIOUS_CONTENT,
            content_scan_enabled=settings.CONTENT_SCAN_ENABLED,
        )

    def normalize_mime(self, mime_type: Optional[str]) -> str:
        """Lower-case, strip parameters (``; charset=...``) and resolve aliases."""
        if not mime_type:
            return ""
        base = mime_type.split(";", 1)[0].strip().lower()
        return self.mime_aliases.get(base, base)

    def rule_for(self, mime_type: str) -> Optional[MimeTypeRule]:
        return self.mime_type_rules.get(self.normalize_mime(mime_type))
