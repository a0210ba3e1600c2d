"""Domain entities.

``RepositorySnapshot`` is the persisted document; the frozen dataclasses are
plain carriers between the remote client, the services and the interface.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from snapshot_cache.domain.value_objects import RepoRef

DESCRIPTION_MAX_CHARS = 1000
README_MAX_CHARS = 50_000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LanguageShare(BaseModel):
    """One entry of a repository's language breakdown."""

    name: str
    bytes: int
    percentage: int

    @classmethod
    def from_byte_counts(cls, byte_counts: Mapping[str, int]) -> list[LanguageShare]:
        """Build the ordered breakdown from GitHub's ``{language: bytes}`` map.

        Percentages are rounded half-up to the nearest integer.
        """
        total = sum(byte_counts.values())
        shares = [
            cls(
                name=lang,
                bytes=count,
                percentage=math.floor(count * 100 / total + 0.5) if total else 0,
            )
            for lang, count in byte_counts.items()
        ]
        shares.sort(key=lambda s: s.bytes, reverse=True)
        return shares


class RepositorySnapshot(BaseModel):
    """Cached mirror of one GitHub repository, keyed by its GitHub id."""

    model_config = ConfigDict(populate_by_name=True)

    # Identity
    external_id: int = Field(..., alias="_id")
    full_name: str = ""

    # Descriptive
    owner_login: str = ""
    name: str = ""
    description: str | None = None
    html_url: str | None = None
    clone_url: str | None = None
    language: str | None = None
    default_branch: str = "main"
    license: str | None = None
    topics: list[str] = Field(default_factory=list)
    is_private: bool = False
    is_fork: bool = False
    github_created_at: datetime | None = None
    github_updated_at: datetime | None = None
    github_pushed_at: datetime | None = None

    # Metrics
    stars: int = 0
    forks: int = 0
    watchers: int = 0
    open_issues: int = 0

    # Enrichments, each with its own freshness rule
    languages: list[LanguageShare] = Field(default_factory=list)
    readme: str | None = None
    readme_fetched_at: datetime | None = None

    # Sync bookkeeping
    last_synced_at: datetime | None = None
    sync_error: str | None = None
    created_at: datetime | None = None

    @field_validator(
        "github_created_at",
        "github_updated_at",
        "github_pushed_at",
        "readme_fetched_at",
        "last_synced_at",
        "created_at",
    )
    @classmethod
    def _assume_utc(cls, v: datetime | None) -> datetime | None:
        # BSON dates come back naive unless the client is tz-aware.
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def short_description(self) -> str | None:
        if not self.description:
            return None
        if len(self.description) <= 150:
            return self.description
        return self.description[:147] + "..."

    @property
    def readme_preview(self) -> str | None:
        if not self.readme:
            return None
        if len(self.readme) <= 500:
            return self.readme
        return self.readme[:497] + "..."


# Every field a store update may carry (the id itself is the key, not a field).
SNAPSHOT_FIELDS = frozenset(
    name for name in RepositorySnapshot.model_fields if name != "external_id"
)


def _parse_timestamp(raw: str | None) -> datetime | None:
    if not raw:
        return None
    return datetime.fromisoformat(raw.replace("Z", "+00:00"))


@dataclass(frozen=True, slots=True)
class RemoteRepository:
    """Typed projection of a GitHub repository payload."""

    external_id: int
    full_name: str
    owner_login: str
    name: str
    description: str | None = None
    html_url: str | None = None
    clone_url: str | None = None
    owner_avatar_url: str | None = None
    language: str | None = None
    default_branch: str = "main"
    license: str | None = None
    topics: tuple[str, ...] = ()
    is_private: bool = False
    is_fork: bool = False
    stars: int = 0
    forks: int = 0
    watchers: int = 0
    open_issues: int = 0
    github_created_at: datetime | None = None
    github_updated_at: datetime | None = None
    github_pushed_at: datetime | None = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> RemoteRepository:
        """Map a ``/repos``, ``/repositories`` or search item payload."""
        owner = data.get("owner") or {}
        license_info = data.get("license") or {}
        return cls(
            external_id=int(data["id"]),
            full_name=data["full_name"],
            owner_login=owner.get("login") or data["full_name"].split("/", 1)[0],
            name=data["name"],
            description=data.get("description"),
            html_url=data.get("html_url"),
            clone_url=data.get("clone_url"),
            owner_avatar_url=owner.get("avatar_url"),
            language=data.get("language"),
            default_branch=data.get("default_branch") or "main",
            license=license_info.get("spdx_id"),
            topics=tuple(data.get("topics") or ()),
            is_private=bool(data.get("private", False)),
            is_fork=bool(data.get("fork", False)),
            stars=data.get("stargazers_count", 0),
            forks=data.get("forks_count", 0),
            watchers=data.get("watchers_count", 0),
            open_issues=data.get("open_issues_count", 0),
            github_created_at=_parse_timestamp(data.get("created_at")),
            github_updated_at=_parse_timestamp(data.get("updated_at")),
            github_pushed_at=_parse_timestamp(data.get("pushed_at")),
        )

    def core_fields(self) -> dict[str, Any]:
        """Snapshot fields overwritten wholesale on every core refresh."""
        description = self.description
        if description and len(description) > DESCRIPTION_MAX_CHARS:
            description = description[:DESCRIPTION_MAX_CHARS]
        return {
            "full_name": self.full_name,
            "owner_login": self.owner_login,
            "name": self.name,
            "description": description,
            "html_url": self.html_url,
            "clone_url": self.clone_url,
            "language": self.language,
            "default_branch": self.default_branch,
            "license": self.license,
            "topics": list(self.topics),
            "is_private": self.is_private,
            "is_fork": self.is_fork,
            "stars": self.stars,
            "forks": self.forks,
            "watchers": self.watchers,
            "open_issues": self.open_issues,
            "github_created_at": self.github_created_at,
            "github_updated_at": self.github_updated_at,
            "github_pushed_at": self.github_pushed_at,
        }


@dataclass(frozen=True, slots=True)
class RemoteSearchPage:
    """One page of GitHub search results."""

    items: list[RemoteRepository]
    total_count: int
    page: int
    per_page: int

    @property
    def total_pages(self) -> int:
        # GitHub only serves the first 1000 search results.
        if self.per_page <= 0:
            return 0
        return math.ceil(min(self.total_count, 1000) / self.per_page)


@dataclass(frozen=True, slots=True)
class RateLimitStatus:
    """The ``core`` bucket of ``GET /rate_limit``."""

    limit: int
    remaining: int
    used: int
    reset_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class SearchFilters:
    """Optional filters shared by remote and cached search."""

    language: str | None = None
    sort: str = "stars"
    order: str = "desc"


@dataclass(frozen=True, slots=True)
class UserRepoOptions:
    """Listing options for ``GET /users/{username}/repos``."""

    type: str = "owner"
    sort: str = "updated"
    direction: str = "desc"
    page: int = 1
    per_page: int = 10


@dataclass(frozen=True, slots=True)
class SnapshotPage:
    """One page of cached snapshots plus the total match count."""

    items: list[RepositorySnapshot]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit > 0 else 0


@dataclass(frozen=True, slots=True)
class BulkSyncFailure:
    """A target that could not be synchronized, with the error it raised."""

    ref: RepoRef
    error: Exception

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass(slots=True)
class BulkSyncResult:
    """Outcome of a bulk synchronization; order within each list is unspecified."""

    succeeded: list[RepositorySnapshot] = field(default_factory=list)
    failed: list[BulkSyncFailure] = field(default_factory=list)
