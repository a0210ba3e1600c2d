"""Port: snapshot store — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from snapshot_cache.domain.entities import RepositorySnapshot, SearchFilters, SnapshotPage


class SnapshotStore(Protocol):
    """Persistent keyed storage for repository snapshots."""

    async def find_by_external_id(self, external_id: int) -> RepositorySnapshot | None:
        ...

    async def find_by_full_name(self, full_name: str) -> RepositorySnapshot | None:
        ...

    async def upsert(
        self, external_id: int, fields: Mapping[str, Any]
    ) -> RepositorySnapshot:
        """Merge *fields* into the snapshot for *external_id*, creating it if absent.

        Idempotent, and never creates a second record for the same id.
        """
        ...

    async def mark_sync_error(
        self, external_id: int, message: str
    ) -> RepositorySnapshot | None:
        """Record a failed refresh without touching any other field."""
        ...

    async def search_by_text(
        self,
        query: str | None,
        filters: SearchFilters | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> SnapshotPage:
        """Case-insensitive search over name and description of public snapshots."""
        ...
