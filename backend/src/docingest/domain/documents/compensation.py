"""Compensating cleanup for storage writes

No transaction spans object storage and the record store, so when anything
after a successful storage write fails, the orchestrator runs this step to
remove the already-written object. Cleanup never raises: a failure here is
logged and must not mask the error that triggered it.
"""

import logging
from typing import Optional

from .ports.object_storage_port import StorageProvider

logger = logging.getLogger(__name__)


async def cleanup_stored_file(
    storage: StorageProvider,
    storage_key: Optional[str],
    correlation_id: str,
    reason: str = "",
) -> bool:
    """Delete a written object as a compensation step.

    Idempotent: a missing or never-written key is a silent no-op.

    Returns:
        bool: True if the delete call completed, False if it failed or
            there was nothing to clean up
    """
    if not storage_key:
        return False

    try:
        await storage.delete(storage_key)
    except Exception:
        logger.error(
            f"Storage cleanup failed: backend={storage.name}, key={storage_key}, reason={reason!r}",
            exc_info=True,
            extra={"correlation_id": correlation_id, "storage_key": storage_key},
        )
        return False

    logger.info(
        f"Storage cleanup completed: backend={storage.name}, key={storage_key}, reason={reason!r}",
        extra={"correlation_id": correlation_id, "storage_key": storage_key},
    )
    return True
