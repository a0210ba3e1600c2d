"""Port: remote client — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol

from snapshot_cache.domain.entities import (
    RateLimitStatus,
    RemoteRepository,
    RemoteSearchPage,
    SearchFilters,
    UserRepoOptions,
)


class RemoteClient(Protocol):
    """Abstract contract for reading repository data from GitHub.

    Implementations translate failures into the ``GitHubError`` taxonomy and
    never retry on their own.
    """

    async def get_repository(self, owner: str, name: str) -> RemoteRepository:
        """Return one repository addressed by owner and name."""
        ...

    async def get_repository_by_id(self, external_id: int) -> RemoteRepository:
        """Return one repository addressed by its immutable GitHub id."""
        ...

    async def search_repositories(
        self,
        query: str,
        filters: SearchFilters | None = None,
        page: int = 1,
        per_page: int = 10,
    ) -> RemoteSearchPage:
        """Return one page of GitHub repository search results."""
        ...

    async def get_readme(self, owner: str, name: str) -> str | None:
        """Return the raw README text, or ``None`` when the repo has none."""
        ...

    async def get_languages(self, owner: str, name: str) -> dict[str, int]:
        """Return language → byte-count mapping from the GitHub Languages API."""
        ...

    async def get_user_repositories(
        self, username: str, options: UserRepoOptions | None = None
    ) -> list[RemoteRepository]:
        """Return one page of a user's repositories."""
        ...

    async def get_rate_limit_status(self) -> RateLimitStatus:
        """Return the core API rate-limit bucket."""
        ...
