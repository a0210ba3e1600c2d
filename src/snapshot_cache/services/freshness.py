"""Freshness policy — decides which parts of a snapshot must be re-fetched.

Core fields, README and the language breakdown age at different rates, so
each has its own rule.  All decisions are pure: the caller supplies ``now``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from snapshot_cache.domain.entities import RepositorySnapshot

DEFAULT_CORE_TTL = timedelta(hours=1)
DEFAULT_README_TTL = timedelta(days=7)


@dataclass(frozen=True, slots=True)
class FreshnessPolicy:
    """Refresh windows for one deployment; built once from settings."""

    core_ttl: timedelta = DEFAULT_CORE_TTL
    readme_ttl: timedelta = DEFAULT_README_TTL

    def needs_core_refresh(self, snapshot: RepositorySnapshot, now: datetime) -> bool:
        if snapshot.last_synced_at is None:
            return True
        return now - snapshot.last_synced_at > self.core_ttl

    def needs_readme_refresh(self, snapshot: RepositorySnapshot, now: datetime) -> bool:
        if not snapshot.readme or snapshot.readme_fetched_at is None:
            return True
        return now - snapshot.readme_fetched_at > self.readme_ttl

    def needs_languages_refresh(self, snapshot: RepositorySnapshot) -> bool:
        # Language mix is treated as stable once fetched.
        return not snapshot.languages
