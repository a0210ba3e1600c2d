"""GitHub REST API adapter — implements the RemoteClient port."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from snapshot_cache.domain.entities import (
    RateLimitStatus,
    RemoteRepository,
    RemoteSearchPage,
    SearchFilters,
    UserRepoOptions,
)
from snapshot_cache.domain.exceptions import (
    GitHubApiError,
    GitHubRateLimitError,
    GitHubTransportError,
    GitHubUnauthorizedError,
    RepositoryNotFoundError,
)

logger = logging.getLogger(__name__)

_GITHUB_API = "https://api.github.com"
_MAX_PER_PAGE = 100


class GitHubRestAdapter:
    """Concrete RemoteClient backed by the GitHub v3 REST API.

    Every request carries the per-call *timeout*; nothing is retried here.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str | None = None,
        base_url: str = _GITHUB_API,
        timeout: float = 10.0,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout)
        self._api_headers: dict[str, str] = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "repo-snapshot-cache/1.0",
        }
        if token:
            self._api_headers["Authorization"] = f"Bearer {token}"

    async def get_repository(self, owner: str, name: str) -> RemoteRepository:
        """GET /repos/{owner}/{name} → RemoteRepository."""
        resp = await self._api_get(f"/repos/{owner}/{name}")
        return _repository(_json(resp), resp)

    async def get_repository_by_id(self, external_id: int) -> RemoteRepository:
        """GET /repositories/{id} → RemoteRepository."""
        resp = await self._api_get(f"/repositories/{external_id}")
        return _repository(_json(resp), resp)

    async def search_repositories(
        self,
        query: str,
        filters: SearchFilters | None = None,
        page: int = 1,
        per_page: int = 10,
    ) -> RemoteSearchPage:
        """GET /search/repositories → RemoteSearchPage."""
        filters = filters or SearchFilters()
        q = query.strip()
        if filters.language:
            q += f" language:{filters.language}"
        per_page = min(per_page, _MAX_PER_PAGE)

        resp = await self._api_get(
            "/search/repositories",
            params={
                "q": q,
                "sort": filters.sort,
                "order": filters.order,
                "page": str(page),
                "per_page": str(per_page),
            },
        )
        data = _json(resp, dict)
        return RemoteSearchPage(
            items=[_repository(item, resp) for item in data.get("items", [])],
            total_count=data.get("total_count", 0),
            page=page,
            per_page=per_page,
        )

    async def get_readme(self, owner: str, name: str) -> str | None:
        """GET /repos/{owner}/{name}/readme (raw) → text, or None if absent."""
        try:
            resp = await self._api_get(
                f"/repos/{owner}/{name}/readme",
                accept="application/vnd.github.raw",
            )
        except RepositoryNotFoundError:
            logger.debug("No README for %s/%s", owner, name)
            return None
        return resp.text

    async def get_languages(self, owner: str, name: str) -> dict[str, int]:
        """GET /repos/{owner}/{name}/languages → {lang: bytes}."""
        resp = await self._api_get(f"/repos/{owner}/{name}/languages")
        data: dict[str, int] = _json(resp, dict)
        return data

    async def get_user_repositories(
        self, username: str, options: UserRepoOptions | None = None
    ) -> list[RemoteRepository]:
        """GET /users/{username}/repos → [RemoteRepository]."""
        options = options or UserRepoOptions()
        resp = await self._api_get(
            f"/users/{username}/repos",
            params={
                "type": options.type,
                "sort": options.sort,
                "direction": options.direction,
                "page": str(options.page),
                "per_page": str(min(options.per_page, _MAX_PER_PAGE)),
            },
        )
        return [_repository(item, resp) for item in _json(resp, list)]

    async def get_rate_limit_status(self) -> RateLimitStatus:
        """GET /rate_limit → RateLimitStatus for the core bucket."""
        resp = await self._api_get("/rate_limit")
        rate = _json(resp, dict).get("rate", {})
        reset_raw = rate.get("reset")
        return RateLimitStatus(
            limit=rate.get("limit", 0),
            remaining=rate.get("remaining", 0),
            used=rate.get("used", 0),
            reset_at=_epoch_to_datetime(reset_raw) if reset_raw is not None else None,
        )

    async def _api_get(
        self,
        endpoint: str,
        params: dict[str, str] | None = None,
        accept: str | None = None,
    ) -> httpx.Response:
        """Perform a GitHub API GET request with error translation."""
        url = f"{self._base_url}{endpoint}"
        headers = self._api_headers
        if accept:
            headers = {**headers, "Accept": accept}
        try:
            resp = await self._client.get(
                url, headers=headers, params=params, timeout=self._timeout
            )
        except httpx.HTTPError as exc:
            raise GitHubTransportError(
                f"Network error fetching {url}: {exc}"
            ) from exc

        if resp.is_success:
            return resp

        message = _error_message(resp)

        if resp.status_code == 404:
            raise RepositoryNotFoundError(f"GitHub resource not found: {endpoint}")

        if resp.status_code == 401:
            raise GitHubUnauthorizedError(f"GitHub authentication failed: {message}")

        if resp.status_code == 429 or (
            resp.status_code == 403 and _is_rate_limited(resp, message)
        ):
            reset_at = _reset_hint(resp)
            logger.warning(
                "GitHub rate limit exceeded. Resets at: %s",
                reset_at.isoformat() if reset_at else "unknown",
            )
            raise GitHubRateLimitError(
                "GitHub API rate limit exceeded. Please try again later.",
                reset_at=reset_at,
            )

        raise GitHubApiError(
            f"GitHub API returned HTTP {resp.status_code} for {endpoint}: {message}",
            status_code=resp.status_code,
        )


def _json(resp: httpx.Response, expected: type = dict) -> Any:
    """Decode a 2xx body, treating anything but the expected JSON shape as an API error."""
    try:
        data = resp.json()
    except ValueError as exc:
        raise GitHubApiError(
            f"GitHub returned a non-JSON body for {resp.request.url.path}: {exc}",
            status_code=resp.status_code,
        ) from exc
    if not isinstance(data, expected):
        raise GitHubApiError(
            f"GitHub returned an unexpected {type(data).__name__} body "
            f"for {resp.request.url.path}",
            status_code=resp.status_code,
        )
    return data


def _repository(data: Any, resp: httpx.Response) -> RemoteRepository:
    try:
        return RemoteRepository.from_api(data)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise GitHubApiError(
            f"Malformed repository payload from {resp.request.url.path}: {exc!r}",
            status_code=resp.status_code,
        ) from exc


def _error_message(resp: httpx.Response) -> str:
    try:
        body: Any = resp.json()
    except ValueError:
        return resp.text[:200] or resp.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return resp.reason_phrase


def _is_rate_limited(resp: httpx.Response, message: str) -> bool:
    if resp.headers.get("x-ratelimit-remaining", "") == "0":
        return True
    # Secondary limits answer 403 with a retry-after header or a message.
    return "retry-after" in resp.headers or "rate limit" in message.lower()


def _reset_hint(resp: httpx.Response) -> datetime | None:
    reset_raw = resp.headers.get("x-ratelimit-reset")
    if reset_raw:
        try:
            return _epoch_to_datetime(int(reset_raw))
        except (ValueError, OSError, OverflowError):
            pass
    retry_after = resp.headers.get("retry-after")
    if retry_after and retry_after.isdigit():
        return datetime.now(timezone.utc) + timedelta(seconds=int(retry_after))
    return None


def _epoch_to_datetime(value: int) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)
