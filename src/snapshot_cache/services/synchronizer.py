"""Snapshot synchronizer — read-through access to the repository cache.

Every lookup consults the store first and only reaches GitHub when the
snapshot is missing or stale.  Once a copy exists, a failed refresh is
recorded on it and the stale copy is served instead of the error.

Concurrent callers that need the same remote fetch share one in-flight task,
so a burst of requests for a stale repository costs a single API call.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Hashable

from snapshot_cache.domain.entities import (
    README_MAX_CHARS,
    LanguageShare,
    RemoteRepository,
    RepositorySnapshot,
    SearchFilters,
    SnapshotPage,
    utcnow,
)
from snapshot_cache.domain.exceptions import GitHubError, SnapshotStoreError
from snapshot_cache.domain.ports.remote_client import RemoteClient
from snapshot_cache.domain.ports.snapshot_store import SnapshotStore
from snapshot_cache.domain.value_objects import RepoRef
from snapshot_cache.services.freshness import FreshnessPolicy

logger = logging.getLogger(__name__)


class SnapshotSynchronizer:
    """Decides whether to serve, refresh or fall back for each lookup.

    Parameters
    ----------
    store:
        Persistent snapshot storage.
    remote:
        Client for the GitHub API; the synchronizer owns no retry policy
        beyond "serve stale on refresh failure".
    policy:
        Freshness windows for core fields and README.
    readme_max_chars:
        README text is truncated to this length before it is cached.
    clock:
        Source of "now"; injectable for tests.
    """

    def __init__(
        self,
        store: SnapshotStore,
        remote: RemoteClient,
        policy: FreshnessPolicy | None = None,
        readme_max_chars: int = README_MAX_CHARS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._remote = remote
        self._policy = policy or FreshnessPolicy()
        self._readme_max_chars = readme_max_chars
        self._clock = clock
        self._inflight: dict[Hashable, asyncio.Task[Any]] = {}

    # ── Core snapshot lookups ───────────────────────────────────────────

    async def get_snapshot_by_id(
        self, external_id: int, *, force: bool = False
    ) -> RepositorySnapshot:
        """Return the snapshot for a GitHub id, fetching or refreshing as needed.

        Raises the remote error when nothing is cached yet; never raises a
        remote error once a cached copy exists.
        """
        snapshot = await self._store.find_by_external_id(external_id)
        if snapshot is None:
            logger.info("Repo %d not cached, fetching from GitHub", external_id)
            return await self._coalesce(
                ("id", external_id), lambda: self._create_by_id(external_id)
            )
        return await self._serve(snapshot, force)

    async def get_snapshot_by_full_name(
        self, full_name: str, *, force: bool = False
    ) -> RepositorySnapshot:
        """Find-or-create by ``owner/name``.

        This is the only path that can discover a new external id.
        """
        ref = RepoRef.from_string(full_name)
        snapshot = await self._store.find_by_full_name(ref.full_name)
        if snapshot is None:
            logger.info("Repo %s not cached, fetching from GitHub", ref.full_name)
            return await self._coalesce(
                ("name", ref.full_name.lower()), lambda: self._create_by_name(ref)
            )
        return await self._serve(snapshot, force)

    async def ingest(self, remote: RemoteRepository) -> RepositorySnapshot:
        """Find-or-create from a payload the caller already fetched."""
        return await self._save(remote)

    async def search_cached(
        self,
        query: str | None,
        filters: SearchFilters | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> SnapshotPage:
        return await self._store.search_by_text(query, filters, page, limit)

    # ── Enrichments (README, languages) ─────────────────────────────────

    async def load_readme(self, external_id: int) -> str | None:
        snapshot = await self.get_snapshot_by_id(external_id)
        return (await self._with_readme(snapshot)).readme

    async def load_languages(self, external_id: int) -> list[LanguageShare]:
        snapshot = await self.get_snapshot_by_id(external_id)
        return (await self._with_languages(snapshot)).languages

    async def get_repository_details(self, full_name: str) -> RepositorySnapshot:
        """Core snapshot plus README and language breakdown, for detail pages."""
        snapshot = await self.get_snapshot_by_full_name(full_name)
        snapshot = await self._with_readme(snapshot)
        return await self._with_languages(snapshot)

    # ── Internals ───────────────────────────────────────────────────────

    async def _serve(self, snapshot: RepositorySnapshot, force: bool) -> RepositorySnapshot:
        if force or self._policy.needs_core_refresh(snapshot, self._clock()):
            return await self._coalesce(
                ("id", snapshot.external_id), lambda: self._refresh(snapshot)
            )
        logger.debug("Serving cached snapshot for %s", snapshot.full_name)
        return snapshot

    async def _create_by_id(self, external_id: int) -> RepositorySnapshot:
        remote = await self._remote.get_repository_by_id(external_id)
        return await self._save(remote)

    async def _create_by_name(self, ref: RepoRef) -> RepositorySnapshot:
        remote = await self._remote.get_repository(ref.owner, ref.name)
        return await self._save(remote)

    async def _refresh(self, snapshot: RepositorySnapshot) -> RepositorySnapshot:
        try:
            # Fetch by id: it survives renames and transfers.
            remote = await self._remote.get_repository_by_id(snapshot.external_id)
        except GitHubError as exc:
            logger.warning("Failed to sync repo %s: %s", snapshot.full_name, exc)
            return await self._record_failure(snapshot, str(exc))

        refreshed = await self._save(remote)
        if refreshed.full_name != snapshot.full_name:
            logger.info(
                "Repo %d renamed upstream: %s -> %s",
                snapshot.external_id,
                snapshot.full_name,
                refreshed.full_name,
            )
        return refreshed

    async def _save(self, remote: RemoteRepository) -> RepositorySnapshot:
        fields = remote.core_fields()
        fields["last_synced_at"] = self._clock()
        fields["sync_error"] = None
        snapshot = await self._store.upsert(remote.external_id, fields)
        logger.info("Synced repo: %s", snapshot.full_name)
        return snapshot

    async def _record_failure(
        self, snapshot: RepositorySnapshot, message: str
    ) -> RepositorySnapshot:
        try:
            await self._store.mark_sync_error(snapshot.external_id, message)
        except SnapshotStoreError as exc:
            logger.warning(
                "Could not record sync error for %s: %s", snapshot.full_name, exc
            )
        return snapshot.model_copy(update={"sync_error": message})

    async def _with_readme(self, snapshot: RepositorySnapshot) -> RepositorySnapshot:
        now = self._clock()
        if not self._policy.needs_readme_refresh(snapshot, now):
            return snapshot
        return await self._coalesce(
            ("readme", snapshot.external_id),
            lambda: self._fetch_readme(snapshot, now),
        )

    async def _fetch_readme(
        self, snapshot: RepositorySnapshot, now: datetime
    ) -> RepositorySnapshot:
        try:
            readme = await self._remote.get_readme(snapshot.owner_login, snapshot.name)
        except GitHubError as exc:
            logger.warning("Failed to fetch README for %s: %s", snapshot.full_name, exc)
            return snapshot
        if readme is None:
            return snapshot

        fields = {"readme": readme[: self._readme_max_chars], "readme_fetched_at": now}
        return await self._persist_enrichment(snapshot, fields, "README")

    async def _with_languages(self, snapshot: RepositorySnapshot) -> RepositorySnapshot:
        if not self._policy.needs_languages_refresh(snapshot):
            return snapshot
        return await self._coalesce(
            ("languages", snapshot.external_id),
            lambda: self._fetch_languages(snapshot),
        )

    async def _fetch_languages(self, snapshot: RepositorySnapshot) -> RepositorySnapshot:
        try:
            byte_counts = await self._remote.get_languages(
                snapshot.owner_login, snapshot.name
            )
        except GitHubError as exc:
            logger.warning(
                "Failed to fetch languages for %s: %s", snapshot.full_name, exc
            )
            return snapshot

        shares = LanguageShare.from_byte_counts(byte_counts)
        if not shares:
            return snapshot
        return await self._persist_enrichment(snapshot, {"languages": shares}, "languages")

    async def _persist_enrichment(
        self, snapshot: RepositorySnapshot, fields: dict[str, Any], what: str
    ) -> RepositorySnapshot:
        try:
            return await self._store.upsert(snapshot.external_id, fields)
        except SnapshotStoreError as exc:
            logger.warning("Could not cache %s for %s: %s", what, snapshot.full_name, exc)
            return snapshot.model_copy(update=fields)

    async def _coalesce(
        self,
        key: Hashable,
        factory: Callable[[], Awaitable[RepositorySnapshot]],
    ) -> RepositorySnapshot:
        """Run *factory* once per key; concurrent callers await the same task."""
        # Lookup and registration must stay free of awaits.
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(functools.partial(self._forget, key))
        else:
            logger.debug("Joining in-flight fetch for %s", key)
        # Shielded so one cancelled caller does not cancel the shared fetch.
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Task[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
