from __future__ import annotations

import asyncio

from conftest import remote_repo
from snapshot_cache.domain.exceptions import GitHubTransportError, RepositoryNotFoundError
from snapshot_cache.domain.value_objects import RepoRef
from snapshot_cache.services.bulk_sync import BulkSynchronizer
from snapshot_cache.services.synchronizer import SnapshotSynchronizer


def _bulk(store, remote, clock) -> BulkSynchronizer:
    return BulkSynchronizer(SnapshotSynchronizer(store=store, remote=remote, clock=clock))


def test_partial_failure_is_collected(store, remote, clock):
    remote.add(remote_repo(1, "acme/one"))
    remote.add(remote_repo(3, "acme/three"))
    remote.failing_names["acme/two"] = GitHubTransportError("timeout")
    refs = [RepoRef.from_string(n) for n in ("acme/one", "acme/two", "acme/three")]

    result = asyncio.run(_bulk(store, remote, clock).bulk_sync(refs))

    assert sorted(s.full_name for s in result.succeeded) == ["acme/one", "acme/three"]
    assert [f.ref.full_name for f in result.failed] == ["acme/two"]
    assert result.failed[0].message == "timeout"
    assert sorted(store.docs) == [1, 3]


def test_unknown_repository_is_a_failure(store, remote, clock):
    result = asyncio.run(_bulk(store, remote, clock).bulk_sync([RepoRef("acme", "ghost")]))

    assert result.succeeded == []
    assert isinstance(result.failed[0].error, RepositoryNotFoundError)


def test_empty_batch(store, remote, clock):
    result = asyncio.run(_bulk(store, remote, clock).bulk_sync([]))

    assert (result.succeeded, result.failed) == ([], [])
