"""API routes — thin controllers that delegate to the services."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from snapshot_cache.domain.entities import SearchFilters
from snapshot_cache.domain.value_objects import RepoRef
from snapshot_cache.interface.dependencies import (
    get_bulk_synchronizer,
    get_discovery,
    get_synchronizer,
)
from snapshot_cache.interface.schemas import (
    BulkSyncRequest,
    BulkSyncResponse,
    ErrorResponse,
    LanguageShareResponse,
    RateLimitResponse,
    ReadmeResponse,
    RemoteRepositoryResponse,
    RemoteSearchResponse,
    SnapshotDetailResponse,
    SnapshotResponse,
    SnapshotSearchResponse,
)
from snapshot_cache.services.bulk_sync import BulkSynchronizer
from snapshot_cache.services.discovery import RepositoryDiscovery
from snapshot_cache.services.synchronizer import SnapshotSynchronizer

router = APIRouter(prefix="/repos", tags=["repositories"])
github_router = APIRouter(prefix="/github", tags=["github"])

_ERRORS = {
    404: {"model": ErrorResponse, "description": "Repository not found"},
    422: {"model": ErrorResponse, "description": "Invalid input"},
    429: {"model": ErrorResponse, "description": "GitHub API rate limit exceeded"},
    502: {"model": ErrorResponse, "description": "GitHub API error"},
    503: {"model": ErrorResponse, "description": "Snapshot store unavailable"},
}
_STORE_ERRORS = {
    422: _ERRORS[422],
    503: _ERRORS[503],
}


# ── Uncached discovery ──────────────────────────────────────────────────────


@router.get("/search", response_model=RemoteSearchResponse, responses=_ERRORS)
async def search_repos(
    q: str = Query(..., description="Search text"),
    language: str | None = None,
    sort: str = "stars",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    discovery: RepositoryDiscovery = Depends(get_discovery),
) -> RemoteSearchResponse:
    """Search GitHub directly."""
    result = await discovery.search_remote(q, language=language, sort=sort, page=page, limit=limit)
    return RemoteSearchResponse.from_page(result)


@router.get("/trending", response_model=list[RemoteRepositoryResponse], responses=_ERRORS)
async def trending_repos(
    language: str | None = None,
    since: str = "weekly",
    discovery: RepositoryDiscovery = Depends(get_discovery),
) -> list[RemoteRepositoryResponse]:
    repos = await discovery.trending(language=language, since=since)
    return [RemoteRepositoryResponse.from_remote(r) for r in repos]


@router.get("/user/{username}", response_model=list[RemoteRepositoryResponse], responses=_ERRORS)
async def user_repos(
    username: str,
    sort: str = "updated",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    discovery: RepositoryDiscovery = Depends(get_discovery),
) -> list[RemoteRepositoryResponse]:
    repos = await discovery.user_repositories(username, sort=sort, page=page, limit=limit)
    return [RemoteRepositoryResponse.from_remote(r) for r in repos]


# ── Cached snapshots ────────────────────────────────────────────────────────


@router.get("/local/search", response_model=SnapshotSearchResponse, responses=_STORE_ERRORS)
async def search_local_repos(
    q: str | None = None,
    language: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sync: SnapshotSynchronizer = Depends(get_synchronizer),
) -> SnapshotSearchResponse:
    """Search the local snapshot cache only; never calls GitHub."""
    result = await sync.search_cached(q, SearchFilters(language=language), page, limit)
    return SnapshotSearchResponse.from_page(result)


@router.get("/details/{owner}/{repo}", response_model=SnapshotDetailResponse, responses=_ERRORS)
async def repo_details(
    owner: str,
    repo: str,
    sync: SnapshotSynchronizer = Depends(get_synchronizer),
) -> SnapshotDetailResponse:
    snapshot = await sync.get_repository_details(f"{owner}/{repo}")
    return SnapshotDetailResponse.from_snapshot(snapshot)


@router.get("/by-name/{owner}/{repo}", response_model=SnapshotResponse, responses=_ERRORS)
async def repo_by_full_name(
    owner: str,
    repo: str,
    sync: SnapshotSynchronizer = Depends(get_synchronizer),
) -> SnapshotResponse:
    snapshot = await sync.get_snapshot_by_full_name(f"{owner}/{repo}")
    return SnapshotResponse.from_snapshot(snapshot)


@router.post("/bulk-sync", response_model=BulkSyncResponse, responses=_STORE_ERRORS)
async def bulk_sync(
    body: BulkSyncRequest,
    bulk: BulkSynchronizer = Depends(get_bulk_synchronizer),
) -> BulkSyncResponse:
    """Pre-warm the cache for several repositories; partial failure is reported, not raised."""
    refs = [RepoRef.from_string(f"{r.owner}/{r.name}") for r in body.repositories]
    result = await bulk.bulk_sync(refs, force=body.force)
    return BulkSyncResponse.from_result(result)


@router.get("/{external_id}", response_model=SnapshotResponse, responses=_ERRORS)
async def repo_by_id(
    external_id: int,
    sync: bool = False,
    synchronizer: SnapshotSynchronizer = Depends(get_synchronizer),
) -> SnapshotResponse:
    snapshot = await synchronizer.get_snapshot_by_id(external_id, force=sync)
    return SnapshotResponse.from_snapshot(snapshot)


@router.get("/{external_id}/readme", response_model=ReadmeResponse, responses=_ERRORS)
async def repo_readme(
    external_id: int,
    sync: SnapshotSynchronizer = Depends(get_synchronizer),
) -> ReadmeResponse:
    return ReadmeResponse(readme=await sync.load_readme(external_id))


@router.get(
    "/{external_id}/languages",
    response_model=list[LanguageShareResponse],
    responses=_ERRORS,
)
async def repo_languages(
    external_id: int,
    sync: SnapshotSynchronizer = Depends(get_synchronizer),
) -> list[LanguageShareResponse]:
    shares = await sync.load_languages(external_id)
    return [LanguageShareResponse.from_share(s) for s in shares]


# ── GitHub account status ───────────────────────────────────────────────────


@github_router.get("/rate-limit", response_model=RateLimitResponse, responses=_ERRORS)
async def rate_limit(
    discovery: RepositoryDiscovery = Depends(get_discovery),
) -> RateLimitResponse:
    return RateLimitResponse.from_status(await discovery.rate_limit())
