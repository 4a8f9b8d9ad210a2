"""Document ingestion test fixtures.

Sample payloads, a deterministic signature detector and an in-memory audit
sink shared by unit and integration tests.

Usage:
    def test_pdf_is_accepted(classifier):
        result = classifier.classify(PDF_BYTES, "application/pdf", "rg.pdf")
        assert result.accepted
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from docingest.audit.ports import AuditAction, AuditFact, AuditSink

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n" + b"0" * 10_000 + b"\n%%EOF\n"
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00" + b"\x00" * 512
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR" + b"\x00" * 256
EXE_BYTES = b"MZ\x90\x00\x03\x00\x00\x00\x04\x00\x00\x00\xff\xff" + b"\x00" * 256
ZIP_BYTES = b"PK\x03\x04\x14\x00\x06\x00" + b"\x00" * 256
TEXT_BYTES = b"Nome: Maria Souza\nEndereco: Rua das Flores, 100\n"


def fake_signature_detector(prefix: bytes) -> Optional[str]:
    """Deterministic stand-in for libmagic keyed on well-known magic numbers."""
    if prefix.startswith(b"%PDF"):
        return "application/pdf"
    if prefix.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if prefix.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if prefix.startswith(b"MZ"):
        return "application/x-dosexec"
    if prefix.startswith(b"PK\x03\x04"):
        return "application/zip"
    return None


class RecordingAuditSink(AuditSink):
    """Keeps emitted facts in memory for assertions."""

    def __init__(self):
        self.facts: List[AuditFact] = []

    async def emit(self, fact: AuditFact) -> None:
        self.facts.append(fact)

    def actions(self) -> List[AuditAction]:
        return [fact.action for fact in self.facts]

    def for_action(self, action: AuditAction) -> List[AuditFact]:
        return [fact for fact in self.facts if fact.action == action]


class FailingAuditSink(AuditSink):
    async def emit(self, fact: AuditFact) -> None:
        raise ConnectionError("audit backend unavailable")


class LoopTurns:
    count = 0


@asynccontextmanager
async def counting_loop_turns() -> AsyncIterator[LoopTurns]:
    """Count how often a sibling task gets scheduled while the body awaits."""
    turns = LoopTurns()
    stopped = asyncio.Event()

    async def tick():
        while not stopped.is_set():
            turns.count += 1
            await asyncio.sleep(0)

    ticker = asyncio.create_task(tick())
    await asyncio.sleep(0)
    started = turns.count
    try:
        yield turns
    finally:
        stopped.set()
        await ticker
    turns.count -= started
