"""Bulk synchronization — pre-warm the cache for a batch of repositories."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from snapshot_cache.domain.entities import BulkSyncFailure, BulkSyncResult
from snapshot_cache.domain.value_objects import RepoRef
from snapshot_cache.services.synchronizer import SnapshotSynchronizer

logger = logging.getLogger(__name__)


class BulkSynchronizer:
    """Fans lookups out concurrently and collects per-target outcomes."""

    def __init__(self, synchronizer: SnapshotSynchronizer) -> None:
        self._sync = synchronizer

    async def bulk_sync(
        self, refs: Sequence[RepoRef], *, force: bool = False
    ) -> BulkSyncResult:
        """Synchronize every target; one failure never aborts the batch."""
        results = await asyncio.gather(
            *(self._sync.get_snapshot_by_full_name(ref.full_name, force=force) for ref in refs),
            return_exceptions=True,
        )

        outcome = BulkSyncResult()
        for ref, result in zip(refs, results):
            if isinstance(result, Exception):
                logger.warning("Bulk sync of %s failed: %s", ref.full_name, result)
                outcome.failed.append(BulkSyncFailure(ref=ref, error=result))
            elif isinstance(result, BaseException):
                raise result
            else:
                outcome.succeeded.append(result)

        logger.info(
            "Bulk sync finished: %d succeeded, %d failed",
            len(outcome.succeeded),
            len(outcome.failed),
        )
        return outcome
