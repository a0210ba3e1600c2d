"""Shared fakes for the snapshot cache tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

import pytest

from snapshot_cache.domain.entities import (
    RateLimitStatus,
    RemoteRepository,
    RemoteSearchPage,
    RepositorySnapshot,
    SearchFilters,
    SnapshotPage,
    UserRepoOptions,
)
from snapshot_cache.domain.exceptions import RepositoryNotFoundError, SnapshotStoreError

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def repo_payload(external_id: int = 42, full_name: str = "acme/widget", **overrides: Any) -> dict:
    """A trimmed-down GitHub ``/repos`` response."""
    owner, name = full_name.split("/")
    payload = {
        "id": external_id,
        "name": name,
        "full_name": full_name,
        "owner": {"login": owner, "avatar_url": f"https://avatars.example/{owner}"},
        "description": "A widget factory",
        "html_url": f"https://github.com/{full_name}",
        "clone_url": f"https://github.com/{full_name}.git",
        "language": "Go",
        "default_branch": "main",
        "license": {"spdx_id": "MIT"},
        "topics": ["widgets", "go"],
        "private": False,
        "fork": False,
        "stargazers_count": 10,
        "forks_count": 2,
        "watchers_count": 10,
        "open_issues_count": 1,
        "created_at": "2020-01-01T00:00:00Z",
        "updated_at": "2026-02-01T00:00:00Z",
        "pushed_at": "2026-02-02T00:00:00Z",
    }
    payload.update(overrides)
    return payload


def remote_repo(external_id: int = 42, full_name: str = "acme/widget", **overrides: Any) -> RemoteRepository:
    return RemoteRepository.from_api(repo_payload(external_id, full_name, **overrides))


class Clock:
    """Settable time source."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class FakeRemote:
    """In-memory RemoteClient that records every call."""

    def __init__(self) -> None:
        self.repos: dict[int, RemoteRepository] = {}
        self.readmes: dict[str, str] = {}
        self.languages: dict[str, dict[str, int]] = {}
        self.calls: list[tuple[str, Any]] = []
        self.error: Exception | None = None
        self.failing_names: dict[str, Exception] = {}

    def add(self, repo: RemoteRepository) -> RemoteRepository:
        self.repos[repo.external_id] = repo
        return repo

    async def _enter(self, method: str, arg: Any) -> None:
        self.calls.append((method, arg))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error

    def count(self, method: str | None = None) -> int:
        return len([c for c in self.calls if method is None or c[0] == method])

    async def get_repository(self, owner: str, name: str) -> RemoteRepository:
        full_name = f"{owner}/{name}"
        await self._enter("get_repository", full_name)
        if full_name in self.failing_names:
            raise self.failing_names[full_name]
        for repo in self.repos.values():
            if repo.full_name.lower() == full_name.lower():
                return repo
        raise RepositoryNotFoundError(f"GitHub resource not found: /repos/{full_name}")

    async def get_repository_by_id(self, external_id: int) -> RemoteRepository:
        await self._enter("get_repository_by_id", external_id)
        try:
            return self.repos[external_id]
        except KeyError:
            raise RepositoryNotFoundError(
                f"GitHub resource not found: /repositories/{external_id}"
            ) from None

    async def search_repositories(
        self,
        query: str,
        filters: SearchFilters | None = None,
        page: int = 1,
        per_page: int = 10,
    ) -> RemoteSearchPage:
        await self._enter("search_repositories", (query, filters, page, per_page))
        items = list(self.repos.values())
        return RemoteSearchPage(items=items, total_count=len(items), page=page, per_page=per_page)

    async def get_readme(self, owner: str, name: str) -> str | None:
        await self._enter("get_readme", f"{owner}/{name}")
        return self.readmes.get(f"{owner}/{name}")

    async def get_languages(self, owner: str, name: str) -> dict[str, int]:
        await self._enter("get_languages", f"{owner}/{name}")
        return self.languages.get(f"{owner}/{name}", {})

    async def get_user_repositories(
        self, username: str, options: UserRepoOptions | None = None
    ) -> list[RemoteRepository]:
        await self._enter("get_user_repositories", (username, options))
        return [r for r in self.repos.values() if r.owner_login == username]

    async def get_rate_limit_status(self) -> RateLimitStatus:
        await self._enter("get_rate_limit_status", None)
        return RateLimitStatus(limit=60, remaining=59, used=1, reset_at=NOW)


class InMemoryStore:
    """Dict-backed SnapshotStore."""

    def __init__(self) -> None:
        self.docs: dict[int, RepositorySnapshot] = {}
        self.fail_writes = False

    async def find_by_external_id(self, external_id: int) -> RepositorySnapshot | None:
        return self.docs.get(external_id)

    async def find_by_full_name(self, full_name: str) -> RepositorySnapshot | None:
        for snapshot in self.docs.values():
            if snapshot.full_name.lower() == full_name.lower():
                return snapshot
        return None

    async def upsert(self, external_id: int, fields: Mapping[str, Any]) -> RepositorySnapshot:
        if self.fail_writes:
            raise SnapshotStoreError("store is down")
        existing = self.docs.get(external_id)
        data = existing.model_dump() if existing else {"external_id": external_id}
        data.update(fields)
        snapshot = RepositorySnapshot.model_validate(data)
        self.docs[external_id] = snapshot
        return snapshot

    async def mark_sync_error(self, external_id: int, message: str) -> RepositorySnapshot | None:
        if self.fail_writes:
            raise SnapshotStoreError("store is down")
        existing = self.docs.get(external_id)
        if existing is None:
            return None
        self.docs[external_id] = existing.model_copy(update={"sync_error": message})
        return self.docs[external_id]

    async def search_by_text(
        self,
        query: str | None,
        filters: SearchFilters | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> SnapshotPage:
        items = [s for s in self.docs.values() if not s.is_private]
        return SnapshotPage(items=items, total=len(items), page=page, limit=limit)

    def seed(self, snapshot: RepositorySnapshot) -> RepositorySnapshot:
        self.docs[snapshot.external_id] = snapshot
        return snapshot


def make_snapshot(external_id: int = 42, full_name: str = "acme/widget", **fields: Any) -> RepositorySnapshot:
    owner, name = full_name.split("/")
    data: dict[str, Any] = {
        "external_id": external_id,
        "full_name": full_name,
        "owner_login": owner,
        "name": name,
        "stars": 5,
        "last_synced_at": NOW,
    }
    data.update(fields)
    return RepositorySnapshot.model_validate(data)


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()
