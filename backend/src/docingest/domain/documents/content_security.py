"""Content security classification for uploaded files

Decides whether a payload is safe and correctly typed by inspecting its
binary signature ("magic number") instead of trusting the declared MIME
type, then scans a bounded text prefix for active content.

Checks, in order (each a hard rejection unless noted):
1. Extension denylist
2. Declared MIME denylist
3. Signature inspection on a bounded prefix (plain-text fallback)
4. Detected type allow-list
5. Declared vs detected reconciliation (equivalence table)
6. Type-specific size ceiling
7. Active-content scan (flag, or reject under quarantine policy)
"""

import logging
import re
from typing import Callable, List, Optional, Set, Tuple

from ...config import IngestionPolicy
from ...errors import SignatureInspectionError
from .models import ClassificationResult, SecurityFlag
from .validation import file_extension

logger = logging.getLogger(__name__)

# Returns the detected MIME type, or None when no signature is recoverable
SignatureDetector = Callable[[bytes], Optional[str]]

# libmagic answers for "no recognizable signature"
_UNRECOGNIZED_SIGNATURES = frozenset({"", "application/octet-stream", "inode/x-empty", "application/x-empty"})

# (pattern, flag, reason)
_MARKUP_PATTERNS: List[Tuple[re.Pattern, SecurityFlag, str]] = [
    (re.compile(rb"<\s*script\b", re.IGNORECASE), SecurityFlag.EMBEDDED_CONTENT, "script tag"),
    (re.compile(rb"\b(?:java|vb)script\s*:", re.IGNORECASE), SecurityFlag.EMBEDDED_CONTENT, "script URL scheme"),
    (re.compile(rb"<\s*[a-z][a-z0-9]*\b[^>]*\son[a-z]+\s*=", re.IGNORECASE), SecurityFlag.EMBEDDED_CONTENT, "inline event handler"),
    (
        re.compile(rb"(?:&lt;|%3c|\\x3c|\\u003c|&#x?0*3c;?|&#60;?)\s*script", re.IGNORECASE),
        SecurityFlag.OBFUSCATED_CONTENT,
        "encoded script tag",
    ),
]

_TEXT_PATTERNS: List[Tuple[re.Pattern, SecurityFlag, str]] = [
    (re.compile(rb"\x00"), SecurityFlag.OBFUSCATED_CONTENT, "null bytes"),
    (re.compile(rb"(?:\\x[0-9a-fA-F]{2}){4,}"), SecurityFlag.OBFUSCATED_CONTENT, "hex escape sequence"),
]

_PDF_PATTERNS: List[Tuple[re.Pattern, SecurityFlag, str]] = [
    (re.compile(rb"/JavaScript\b"), SecurityFlag.EMBEDDED_CONTENT, "embedded JavaScript"),
    (re.compile(rb"/JS\s*[(<\[/]"), SecurityFlag.EMBEDDED_CONTENT, "embedded JavaScript"),
    (re.compile(rb"/Launch\b"), SecurityFlag.EMBEDDED_CONTENT, "launch action"),
    (re.compile(rb"/EmbeddedFile\b"), SecurityFlag.EMBEDDED_CONTENT, "embedded file"),
]


def detect_with_libmagic(prefix: bytes) -> Optional[str]:
    """Default signature detector backed by libmagic (python-magic).

    Raises:
        SignatureInspectionError: If libmagic cannot inspect the buffer
    """
    import magic

    try:
        detected = magic.from_buffer(prefix, mime=True)
    except magic.MagicException as e:
        raise SignatureInspectionError(f"Signature inspection failed: {e}")

    if not detected or detected in _UNRECOGNIZED_SIGNATURES:
        return None
    return detected


class ContentSecurityClassifier:
    """Classifies payloads as accepted or rejected with security flags.

    Expected rejections are returned as ClassificationResult(accepted=False);
    only inspection failures raise.
    """

    def __init__(
        self,
        policy: IngestionPolicy,
        signature_detector: Optional[SignatureDetector] = None,
    ):
        self.policy = policy
        self._detect = signature_detector or detect_with_libmagic

    def classify(
        self,
        content: bytes,
        declared_mime_type: Optional[str],
        original_filename: Optional[str],
    ) -> ClassificationResult:
        """Run the ordered checks against one payload.

        Args:
            content: File bytes (only bounded prefixes are inspected)
            declared_mime_type: MIME type claimed by the client
            original_filename: Client filename (for the extension)

        Returns:
            ClassificationResult

        Raises:
            SignatureInspectionError: If signature inspection itself fails
        """
        size = len(content)
        extension = file_extension(original_filename)
        declared = self.policy.normalize_mime(declared_mime_type)

        # 1. Extension denylist, whatever the declared type
        if extension in self.policy.blocked_extensions:
            return self._reject(
                f"File extension '.{extension}' is not allowed",
                {SecurityFlag.DANGEROUS_EXTENSION},
            )

        # 2. Declared MIME denylist
        if declared in self.policy.blocked_mime_types:
            return self._reject(
                f"MIME type blocked: {declared}",
                {SecurityFlag.BLOCKED_MIME_TYPE},
            )

        # 3. Signature inspection on a bounded prefix
        raw_detected = self._detect(content[:self.policy.signature_prefix_bytes])
        if raw_detected is None:
            if declared in self.policy.plain_text_mime_types:
                detected = declared
            else:
                return self._reject(
                    "File type could not be verified from its content",
                    {SecurityFlag.UNVERIFIABLE_SIGNATURE},
                )
        else:
            detected = self._reconcile(declared, raw_detected)

        if not declared:
            declared = detected

        if detected in self.policy.blocked_mime_types:
            return self._reject(
                f"MIME type blocked: {detected}",
                {SecurityFlag.BLOCKED_MIME_TYPE},
                detected_mime_type=detected,
            )

        # 4. Detected type allow-list
        rule = self.policy.mime_type_rules.get(detected)
        if rule is None:
            return self._reject(
                f"File type not permitted: {detected}",
                {SecurityFlag.DISALLOWED_TYPE},
                detected_mime_type=detected,
            )

        detected_extension = extension if extension in rule.extensions else sorted(rule.extensions)[0]

        # 5. Declared vs detected
        if declared != detected:
            return self._reject(
                f"Declared type {declared} does not match actual content type {detected}",
                {SecurityFlag.SIGNATURE_MISMATCH},
                detected_mime_type=detected,
                detected_extension=detected_extension,
            )

        # 6. Type-specific ceiling (the global one was checked by the validator)
        if size > rule.max_size_bytes:
            return self._reject(
                f"File exceeds the maximum size for {detected} "
                f"({rule.max_size_bytes} bytes, got {size} bytes)",
                {SecurityFlag.EXCEEDS_TYPE_SIZE},
                detected_mime_type=detected,
                detected_extension=detected_extension,
            )

        # 7. Active-content scan
        flags: Set[SecurityFlag] = set()
        reasons: List[str] = []
        if self.policy.content_scan_enabled:
            flags, reasons = self.analyze_content(content[:self.policy.scan_prefix_bytes], detected)

        if flags and self.policy.quarantine_suspicious:
            return self._reject(
                f"File contains suspicious content: {', '.join(reasons)}",
                flags,
                detected_mime_type=detected,
                detected_extension=detected_extension,
                reasons=reasons,
            )

        if flags:
            logger.warning(
                f"Suspicious content flagged but accepted (quarantine disabled): "
                f"mime={detected}, reasons={reasons}"
            )

        return ClassificationResult(
            accepted=True,
            detected_mime_type=detected,
            detected_extension=detected_extension,
            security_flags=frozenset(flags),
            message="File accepted",
            reasons=reasons,
        )

    def analyze_content(self, sample: bytes, mime_type: str) -> Tuple[Set[SecurityFlag], List[str]]:
        """Heuristic active-content and obfuscation scan.

        Markup markers apply to text and PDF payloads, PDF action markers to
        PDFs, and null-byte/escape/density checks to text payloads. Other
        binary formats are not scanned.

        Returns:
            (flags, reasons); empty when nothing suspicious was found
        """
        is_text = mime_type.startswith("text/")
        is_pdf = mime_type == "application/pdf"
        if not (is_text or is_pdf):
            return set(), []

        patterns = list(_MARKUP_PATTERNS)
        if is_pdf:
            patterns += _PDF_PATTERNS
        if is_text:
            patterns += _TEXT_PATTERNS

        flags: Set[SecurityFlag] = set()
        reasons: List[str] = []
        for pattern, flag, reason in patterns:
            if pattern.search(sample) and reason not in reasons:
                flags.add(flag)
                reasons.append(reason)

        if is_text and sample:
            non_ascii = sum(1 for byte in sample if byte > 0x7F)
            if non_ascii / len(sample) > self.policy.non_ascii_density_threshold:
                flags.add(SecurityFlag.OBFUSCATED_CONTENT)
                reasons.append("high density of non-ASCII characters")

        if flags:
            flags.add(SecurityFlag.SUSPICIOUS)
        return flags, reasons

    def requires_encryption(self, mime_type: str) -> bool:
        """Whether documents of this type must be encrypted at rest."""
        rule = self.policy.rule_for(mime_type)
        return bool(rule and rule.requires_encryption)

    def allows_thumbnail(self, mime_type: str) -> bool:
        """Whether a thumbnail may be generated for this type."""
        rule = self.policy.rule_for(mime_type)
        return bool(rule and rule.allows_thumbnail)

    def _reconcile(self, declared: str, raw_detected: str) -> str:
        detected = self.policy.normalize_mime(raw_detected)
        if detected == declared or detected in self.policy.signature_equivalents.get(declared, frozenset()):
            return declared
        return detected

    def _reject(
        self,
        message: str,
        flags: Set[SecurityFlag],
        detected_mime_type: Optional[str] = None,
        detected_extension: Optional[str] = None,
        reasons: Optional[List[str]] = None,
    ) -> ClassificationResult:
        logger.warning(f"Content rejected: {message} flags={sorted(f.value for f in flags)}")
        return ClassificationResult(
            accepted=False,
            detected_mime_type=detected_mime_type,
            detected_extension=detected_extension,
            security_flags=frozenset(flags),
            message=message,
            reasons=reasons or [message],
        )
