"""Reuse (deduplication) resolution

Looks up a prior live document with the same content hash and owner (and
type, when given) so the pipeline can skip a duplicate storage write.

Two concurrent attempts for the same owner and hash may both miss each
other here and store twice; that costs storage, not correctness, and no
lock is taken to prevent it.
"""

import logging
from typing import Optional
from uuid import UUID

from ...models.document import Document, DocumentType
from .models import ReuseDecision
from .ports.document_store_port import DocumentStorePort

logger = logging.getLogger(__name__)


class ReuseResolver:
    """Read-only reuse decision maker.

    Args:
        store: Record store used for the candidate query
        reuse_enabled: Deployment-level switch. When False, candidates are
            still looked up and reported, but can_reuse is always False.
    """

    def __init__(self, store: DocumentStorePort, reuse_enabled: bool):
        self.store = store
        self.reuse_enabled = reuse_enabled

    async def resolve(
        self,
        content_hash: str,
        owner_id: UUID,
        document_type: Optional[DocumentType],
        correlation_id: str,
    ) -> ReuseDecision:
        """Decide whether an existing document can stand in for this upload.

        Raises:
            RecordStoreError: If the candidate query fails
        """
        candidates = await self.store.find_by_hash_and_owner(content_hash, owner_id, document_type)

        candidate = next(
            (doc for doc in candidates if self.is_reusable(doc, content_hash, owner_id, document_type)),
            None,
        )

        if candidate is None:
            reason = (
                "No matching document found" if not candidates
                else "Matching documents are not reusable"
            )
            decision = ReuseDecision(can_reuse=False, reason=reason, candidate_found=False)
        elif not self.reuse_enabled:
            decision = ReuseDecision(
                can_reuse=False,
                reason="Document reuse is disabled",
                existing_document=candidate,
                candidate_found=True,
            )
        else:
            decision = ReuseDecision(
                can_reuse=True,
                reason=f"Identical content already stored as document {candidate.id}",
                existing_document=candidate,
                candidate_found=True,
            )

        logger.info(
            f"Reuse check: can_reuse={decision.can_reuse}, candidate_found={decision.candidate_found}, "
            f"reason={decision.reason!r}",
            extra={"correlation_id": correlation_id, "owner_id": owner_id},
        )
        return decision

    @staticmethod
    def is_reusable(
        document: Document,
        content_hash: str,
        owner_id: UUID,
        document_type: Optional[DocumentType] = None,
    ) -> bool:
        """Guard against stale or partially written rows."""
        if document.deleted_at is not None:
            return False
        if document.owner_id != owner_id:
            return False
        if document_type is not None and document.document_type != document_type:
            return False
        if not document.storage_key or not document.content_hash:
            return False
        return document.content_hash == content_hash
