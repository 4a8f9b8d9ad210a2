"""Unit tests for audit sinks"""

from uuid import uuid4

import pytest
from sqlalchemy import select

from docingest.audit import (
    AuditAction,
    AuditFact,
    AuditOutcome,
    AuditSeverity,
    DatabaseAuditSink,
    LoggingAuditSink,
)
from docingest.database import session_scope
from docingest.models import AuditLog


def make_fact(**overrides) -> AuditFact:
    values = dict(
        action=AuditAction.CONTENT_CLASSIFIED,
        outcome=AuditOutcome.REJECTED,
        correlation_id="cid-audit",
        owner_id=uuid4(),
        uploader_id=uuid4(),
        severity=AuditSeverity.CRITICAL,
        details={"security_flags": ["dangerous-extension"], "owner": uuid4()},
    )
    values.update(overrides)
    return AuditFact(**values)


class TestDatabaseAuditSink:
    """Test audit_log persistence"""

    @pytest.mark.asyncio
    async def test_fact_written_as_row(self, session_factory):
        fact = make_fact()

        await DatabaseAuditSink(session_factory).emit(fact)

        with session_scope(session_factory) as session:
            rows = session.execute(select(AuditLog)).scalars().all()
            assert len(rows) == 1
            row = rows[0]
            assert row.correlation_id == "cid-audit"
            assert row.action == "CONTENT_CLASSIFIED"
            assert row.severity == "CRITICAL"
            assert row.outcome == "REJECTED"
            assert row.owner_id == fact.owner_id
            assert row.actor_id == fact.uploader_id
            assert row.entity_type is None
            assert row.metadata_json["security_flags"] == ["dangerous-extension"]
            assert row.metadata_json["owner"] == str(fact.details["owner"])

    @pytest.mark.asyncio
    async def test_document_fact_references_entity(self, session_factory):
        document_id = uuid4()

        await DatabaseAuditSink(session_factory).emit(
            make_fact(action=AuditAction.DOCUMENT_PERSISTED, outcome=AuditOutcome.SUCCESS,
                      severity=AuditSeverity.INFO, document_id=document_id)
        )

        with session_scope(session_factory) as session:
            row = session.execute(select(AuditLog)).scalar_one()
            assert row.entity_type == "document"
            assert row.entity_id == document_id


class TestLoggingAuditSink:
    """Test structured audit log lines"""

    @pytest.mark.asyncio
    async def test_level_follows_severity(self, caplog):
        with caplog.at_level("INFO", logger="docingest.audit"):
            await LoggingAuditSink().emit(make_fact())

        record = caplog.records[-1]
        assert record.levelname == "CRITICAL"
        assert record.correlation_id == "cid-audit"
        assert "action=CONTENT_CLASSIFIED" in record.getMessage()
        assert "dangerous-extension" in record.getMessage()
