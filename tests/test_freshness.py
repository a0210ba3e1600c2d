from __future__ import annotations

from datetime import timedelta

from conftest import NOW, make_snapshot
from snapshot_cache.domain.entities import LanguageShare
from snapshot_cache.services.freshness import FreshnessPolicy

policy = FreshnessPolicy()


def test_core_refresh_window():
    assert not policy.needs_core_refresh(make_snapshot(last_synced_at=NOW), NOW)
    assert not policy.needs_core_refresh(make_snapshot(last_synced_at=NOW - timedelta(hours=1)), NOW)
    assert policy.needs_core_refresh(make_snapshot(last_synced_at=NOW - timedelta(hours=2)), NOW)
    assert policy.needs_core_refresh(make_snapshot(last_synced_at=None), NOW)


def test_core_window_is_configurable():
    short = FreshnessPolicy(core_ttl=timedelta(minutes=5))

    assert short.needs_core_refresh(make_snapshot(last_synced_at=NOW - timedelta(minutes=10)), NOW)


def test_readme_refresh():
    fresh = make_snapshot(readme="# hi", readme_fetched_at=NOW - timedelta(days=1))
    old = make_snapshot(readme="# hi", readme_fetched_at=NOW - timedelta(days=8))

    assert not policy.needs_readme_refresh(fresh, NOW)
    assert policy.needs_readme_refresh(old, NOW)
    assert policy.needs_readme_refresh(make_snapshot(), NOW)
    assert policy.needs_readme_refresh(make_snapshot(readme="", readme_fetched_at=NOW), NOW)


def test_languages_refresh_only_when_empty():
    shares = [LanguageShare(name="Go", bytes=1, percentage=100)]

    assert policy.needs_languages_refresh(make_snapshot())
    assert not policy.needs_languages_refresh(make_snapshot(languages=shares))
