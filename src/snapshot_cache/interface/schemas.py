"""Pydantic request / response DTOs for the API boundary."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from snapshot_cache.domain.entities import (
    BulkSyncResult,
    LanguageShare,
    RateLimitStatus,
    RemoteRepository,
    RemoteSearchPage,
    RepositorySnapshot,
    SnapshotPage,
)
from snapshot_cache.domain.exceptions import GitHubError


class LanguageShareResponse(BaseModel):
    name: str
    bytes: int
    percentage: int

    @classmethod
    def from_share(cls, share: LanguageShare) -> LanguageShareResponse:
        return cls(name=share.name, bytes=share.bytes, percentage=share.percentage)


class SnapshotResponse(BaseModel):
    """A cached repository as served to clients."""

    external_id: int
    full_name: str
    owner_login: str
    name: str
    description: str | None
    short_description: str | None
    html_url: str | None
    clone_url: str | None
    language: str | None
    default_branch: str
    license: str | None
    topics: list[str]
    is_private: bool
    is_fork: bool
    stars: int
    forks: int
    watchers: int
    open_issues: int
    languages: list[LanguageShareResponse]
    readme_preview: str | None
    github_created_at: datetime | None
    github_updated_at: datetime | None
    github_pushed_at: datetime | None
    last_synced_at: datetime | None
    sync_error: str | None

    @classmethod
    def from_snapshot(cls, snapshot: RepositorySnapshot) -> SnapshotResponse:
        data = snapshot.model_dump(
            exclude={"languages", "readme", "readme_fetched_at", "created_at"}
        )
        return cls(
            **data,
            short_description=snapshot.short_description,
            readme_preview=snapshot.readme_preview,
            languages=[LanguageShareResponse.from_share(s) for s in snapshot.languages],
        )


class SnapshotDetailResponse(SnapshotResponse):
    """Detail view: includes the full README."""

    readme: str | None

    @classmethod
    def from_snapshot(cls, snapshot: RepositorySnapshot) -> SnapshotDetailResponse:
        base = SnapshotResponse.from_snapshot(snapshot)
        return cls(**base.model_dump(), readme=snapshot.readme)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class SnapshotSearchResponse(BaseModel):
    repos: list[SnapshotResponse]
    pagination: Pagination

    @classmethod
    def from_page(cls, page: SnapshotPage) -> SnapshotSearchResponse:
        return cls(
            repos=[SnapshotResponse.from_snapshot(s) for s in page.items],
            pagination=Pagination(
                page=page.page,
                limit=page.limit,
                total=page.total,
                total_pages=page.total_pages,
            ),
        )


class RemoteRepositoryResponse(BaseModel):
    """A GitHub repository as returned by uncached discovery endpoints."""

    external_id: int
    full_name: str
    owner_login: str
    owner_avatar_url: str | None
    name: str
    description: str | None
    html_url: str | None
    language: str | None
    stars: int
    forks: int
    watchers: int
    topics: list[str]
    is_private: bool
    is_fork: bool
    github_created_at: datetime | None
    github_updated_at: datetime | None

    @classmethod
    def from_remote(cls, repo: RemoteRepository) -> RemoteRepositoryResponse:
        return cls(
            external_id=repo.external_id,
            full_name=repo.full_name,
            owner_login=repo.owner_login,
            owner_avatar_url=repo.owner_avatar_url,
            name=repo.name,
            description=repo.description,
            html_url=repo.html_url,
            language=repo.language,
            stars=repo.stars,
            forks=repo.forks,
            watchers=repo.watchers,
            topics=list(repo.topics),
            is_private=repo.is_private,
            is_fork=repo.is_fork,
            github_created_at=repo.github_created_at,
            github_updated_at=repo.github_updated_at,
        )


class RemoteSearchResponse(BaseModel):
    repos: list[RemoteRepositoryResponse]
    total_count: int
    page: int
    per_page: int
    total_pages: int

    @classmethod
    def from_page(cls, page: RemoteSearchPage) -> RemoteSearchResponse:
        return cls(
            repos=[RemoteRepositoryResponse.from_remote(r) for r in page.items],
            total_count=page.total_count,
            page=page.page,
            per_page=page.per_page,
            total_pages=page.total_pages,
        )


class ReadmeResponse(BaseModel):
    readme: str | None


class RateLimitResponse(BaseModel):
    limit: int
    remaining: int
    used: int
    reset_at: datetime | None

    @classmethod
    def from_status(cls, status: RateLimitStatus) -> RateLimitResponse:
        return cls(
            limit=status.limit,
            remaining=status.remaining,
            used=status.used,
            reset_at=status.reset_at,
        )


class RepoRefIn(BaseModel):
    owner: str
    name: str

    @field_validator("owner", "name")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            msg = "owner and name must not be empty."
            raise ValueError(msg)
        return stripped


class BulkSyncRequest(BaseModel):
    """Request body for ``POST /repos/bulk-sync``."""

    repositories: list[RepoRefIn] = Field(..., min_length=1, max_length=100)
    force: bool = False


class BulkSyncFailureResponse(BaseModel):
    full_name: str
    error: str
    kind: str | None


class BulkSyncResponse(BaseModel):
    succeeded: list[SnapshotResponse]
    failed: list[BulkSyncFailureResponse]

    @classmethod
    def from_result(cls, result: BulkSyncResult) -> BulkSyncResponse:
        return cls(
            succeeded=[SnapshotResponse.from_snapshot(s) for s in result.succeeded],
            failed=[
                BulkSyncFailureResponse(
                    full_name=f.ref.full_name,
                    error=f.message,
                    kind=f.error.kind.value if isinstance(f.error, GitHubError) else None,
                )
                for f in result.failed
            ],
        )


class ErrorResponse(BaseModel):
    """Standard error envelope returned on all failure paths."""

    status: str = "error"
    message: str
