"""Tests for domain entities and value objects."""

from __future__ import annotations

import pytest

from conftest import make_snapshot, repo_payload, remote_repo
from snapshot_cache.domain.entities import (
    DESCRIPTION_MAX_CHARS,
    LanguageShare,
    RemoteRepository,
    RemoteSearchPage,
    RepositorySnapshot,
    SnapshotPage,
)
from snapshot_cache.domain.exceptions import InvalidRepoRefError
from snapshot_cache.domain.value_objects import RepoRef


class TestRepoRef:
    @pytest.mark.parametrize(
        "value",
        [
            "psf/requests",
            "  psf/requests  ",
            "https://github.com/psf/requests",
            "https://github.com/psf/requests.git",
            "http://github.com/psf/requests/",
        ],
    )
    def test_accepted_forms(self, value):
        ref = RepoRef.from_string(value)
        assert (ref.owner, ref.name) == ("psf", "requests")
        assert ref.full_name == "psf/requests"

    @pytest.mark.parametrize(
        "value", ["", "requests", "psf/requests/extra", "https://gitlab.com/psf/requests"]
    )
    def test_rejected_forms(self, value):
        with pytest.raises(InvalidRepoRefError):
            RepoRef.from_string(value)


class TestLanguageShare:
    def test_percentages_and_order(self):
        shares = LanguageShare.from_byte_counts({"JS": 100, "Go": 300})

        assert [(s.name, s.bytes, s.percentage) for s in shares] == [
            ("Go", 300, 75),
            ("JS", 100, 25),
        ]

    def test_rounds_half_up(self):
        # 12.5 -> 13 and 87.5 -> 88
        shares = LanguageShare.from_byte_counts({"A": 1, "B": 7})

        assert [s.percentage for s in shares] == [88, 13]

    def test_zero_total(self):
        shares = LanguageShare.from_byte_counts({"A": 0})

        assert [s.percentage for s in shares] == [0]

    def test_empty(self):
        assert LanguageShare.from_byte_counts({}) == []


class TestRemoteRepository:
    def test_from_api_tolerates_missing_optionals(self):
        payload = repo_payload(license=None, topics=None, pushed_at=None, owner=None)

        repo = RemoteRepository.from_api(payload)

        assert repo.license is None
        assert repo.topics == ()
        assert repo.github_pushed_at is None
        assert repo.owner_login == "acme"

    def test_core_fields_truncate_description(self):
        repo = remote_repo(description="d" * 5000)

        fields = repo.core_fields()

        assert len(fields["description"]) == DESCRIPTION_MAX_CHARS
        assert fields["topics"] == ["widgets", "go"]
        assert "external_id" not in fields


class TestRepositorySnapshot:
    def test_loads_from_mongo_document(self):
        snapshot = RepositorySnapshot.model_validate({"_id": 9, "full_name": "a/b"})

        assert snapshot.external_id == 9
        assert snapshot.languages == []

    def test_short_description(self):
        assert make_snapshot(description="short").short_description == "short"
        assert make_snapshot(description="x" * 150).short_description == "x" * 150
        assert make_snapshot(description="x" * 151).short_description == "x" * 147 + "..."
        assert make_snapshot().short_description is None

    def test_readme_preview(self):
        assert make_snapshot(readme="x" * 500).readme_preview == "x" * 500
        assert make_snapshot(readme="x" * 501).readme_preview == "x" * 497 + "..."

    def test_naive_datetimes_are_utc(self):
        snapshot = make_snapshot(last_synced_at="2026-01-01T00:00:00")

        assert snapshot.last_synced_at.utcoffset().total_seconds() == 0


def test_remote_search_pages_stop_at_result_cap():
    page = RemoteSearchPage(items=[], total_count=250_000, page=1, per_page=30)

    assert page.total_pages == 34


def test_snapshot_page_total_pages():
    assert SnapshotPage(items=[], total=41, page=1, limit=20).total_pages == 3
    assert SnapshotPage(items=[], total=0, page=1, limit=20).total_pages == 0
