"""FastAPI dependency injection wiring.

The synchronizer is built once at startup and shared by every request, so its
in-flight fetch de-duplication spans concurrent requests.
"""

from __future__ import annotations

import asyncio
import logging

import httpx
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from snapshot_cache.infrastructure.config import get_settings
from snapshot_cache.infrastructure.github_rest_adapter import GitHubRestAdapter
from snapshot_cache.infrastructure.mongo import (
    create_client,
    ensure_snapshot_indexes,
    get_snapshot_collection,
)
from snapshot_cache.infrastructure.mongo_snapshot_store import MongoSnapshotStore
from snapshot_cache.services.bulk_sync import BulkSynchronizer
from snapshot_cache.services.discovery import RepositoryDiscovery
from snapshot_cache.services.freshness import FreshnessPolicy
from snapshot_cache.services.synchronizer import SnapshotSynchronizer

_http_client: httpx.AsyncClient | None = None
_mongo_client: MongoClient | None = None
_synchronizer: SnapshotSynchronizer | None = None
_discovery: RepositoryDiscovery | None = None

logger = logging.getLogger(__name__)


async def startup() -> None:
    """Initialise shared resources — called from the lifespan context manager."""
    global _http_client, _mongo_client, _synchronizer, _discovery  # noqa: PLW0603

    settings = get_settings()
    _http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.github_timeout_seconds),
        follow_redirects=True,
    )
    _mongo_client = create_client(settings)
    collection = get_snapshot_collection(_mongo_client, settings)
    await asyncio.to_thread(ensure_snapshot_indexes, collection)

    token = settings.github_token.get_secret_value() if settings.github_token else None
    remote = GitHubRestAdapter(
        client=_http_client,
        token=token,
        base_url=settings.github_api_url,
        timeout=settings.github_timeout_seconds,
    )
    _synchronizer = SnapshotSynchronizer(
        store=MongoSnapshotStore(collection),
        remote=remote,
        policy=FreshnessPolicy(core_ttl=settings.core_ttl, readme_ttl=settings.readme_ttl),
        readme_max_chars=settings.readme_max_chars,
    )
    _discovery = RepositoryDiscovery(remote)


async def shutdown() -> None:
    """Release shared resources."""
    global _http_client, _mongo_client, _synchronizer, _discovery  # noqa: PLW0603

    _synchronizer = None
    _discovery = None
    if _http_client:
        await _http_client.aclose()
        _http_client = None
    if _mongo_client:
        _mongo_client.close()
        _mongo_client = None


def get_synchronizer() -> SnapshotSynchronizer:
    assert _synchronizer is not None, "startup() was not called"
    return _synchronizer


def get_bulk_synchronizer() -> BulkSynchronizer:
    return BulkSynchronizer(get_synchronizer())


def get_discovery() -> RepositoryDiscovery:
    assert _discovery is not None, "startup() was not called"
    return _discovery


async def ping_store() -> bool:
    """Round-trip to MongoDB; False when it is unreachable or not started."""
    if _mongo_client is None:
        return False
    try:
        await asyncio.to_thread(_mongo_client.admin.command, "ping")
    except PyMongoError as exc:
        logger.warning("MongoDB ping failed: %s", exc)
        return False
    return True
