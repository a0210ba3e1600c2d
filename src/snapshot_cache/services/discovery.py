"""Repository discovery — uncached pass-through queries against GitHub."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from snapshot_cache.domain.entities import (
    RateLimitStatus,
    RemoteRepository,
    RemoteSearchPage,
    SearchFilters,
    UserRepoOptions,
    utcnow,
)
from snapshot_cache.domain.exceptions import InvalidSearchQueryError
from snapshot_cache.domain.ports.remote_client import RemoteClient

logger = logging.getLogger(__name__)

_TRENDING_WINDOWS = {"daily": 1, "weekly": 7, "monthly": 30}
_TRENDING_LIMIT = 25
_MIN_QUERY_LENGTH = 2


class RepositoryDiscovery:
    """Search, listing and trending lookups that bypass the snapshot cache."""

    def __init__(self, remote: RemoteClient, clock=utcnow) -> None:
        self._remote = remote
        self._clock = clock

    async def search_remote(
        self,
        query: str,
        language: str | None = None,
        sort: str = "stars",
        page: int = 1,
        limit: int = 10,
    ) -> RemoteSearchPage:
        if not query or len(query.strip()) < _MIN_QUERY_LENGTH:
            raise InvalidSearchQueryError(
                f"Search query must be at least {_MIN_QUERY_LENGTH} characters"
            )
        return await self._remote.search_repositories(
            query.strip(),
            SearchFilters(language=language, sort=sort),
            page=page,
            per_page=limit,
        )

    async def user_repositories(
        self, username: str, sort: str = "updated", page: int = 1, limit: int = 10
    ) -> list[RemoteRepository]:
        return await self._remote.get_user_repositories(
            username, UserRepoOptions(sort=sort, page=page, per_page=limit)
        )

    async def trending(
        self, language: str | None = None, since: str = "weekly"
    ) -> list[RemoteRepository]:
        """Most-starred repositories created within the *since* window."""
        days = _TRENDING_WINDOWS.get(since, _TRENDING_WINDOWS["weekly"])
        created_after: datetime = self._clock() - timedelta(days=days)
        result = await self._remote.search_repositories(
            f"created:>{created_after.date().isoformat()}",
            SearchFilters(language=language, sort="stars", order="desc"),
            per_page=_TRENDING_LIMIT,
        )
        return result.items

    async def rate_limit(self) -> RateLimitStatus:
        return await self._remote.get_rate_limit_status()
