"""MongoDB snapshot store — implements the SnapshotStore port.

One document per repository, keyed by the GitHub id in ``_id``.  pymongo is
blocking, so every public coroutine hands its work to a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime
from typing import Any, Callable, Mapping

from pydantic import BaseModel
from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from snapshot_cache.domain.entities import (
    SNAPSHOT_FIELDS,
    RepositorySnapshot,
    SearchFilters,
    SnapshotPage,
    utcnow,
)
from snapshot_cache.domain.exceptions import SnapshotStoreError

logger = logging.getLogger(__name__)

_RANKING = [("stars", DESCENDING), ("_id", 1)]
# Lowercased copy of full_name kept on the document for lookups.
FULL_NAME_KEY = "full_name_key"


def _to_document(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Turn an update payload into BSON-ready values."""
    doc: dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, BaseModel):
            value = value.model_dump()
        elif isinstance(value, (list, tuple)):
            value = [v.model_dump() if isinstance(v, BaseModel) else v for v in value]
        doc[key] = value
    return doc


def _insert_defaults() -> dict[str, Any]:
    return {
        name: info.get_default(call_default_factory=True)
        for name, info in RepositorySnapshot.model_fields.items()
        if name not in ("external_id", "created_at")
    }


class MongoSnapshotStore:
    """Snapshot persistence on a single MongoDB collection."""

    def __init__(
        self,
        collection: Collection,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.collection = collection
        self._clock = clock

    # ── Reads ───────────────────────────────────────────────────────────

    async def find_by_external_id(self, external_id: int) -> RepositorySnapshot | None:
        return await asyncio.to_thread(self._find_one, {"_id": external_id})

    async def find_by_full_name(self, full_name: str) -> RepositorySnapshot | None:
        return await asyncio.to_thread(self._find_by_full_name, full_name)

    async def search_by_text(
        self,
        query: str | None,
        filters: SearchFilters | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> SnapshotPage:
        return await asyncio.to_thread(
            self._search, query, filters or SearchFilters(), page, limit
        )

    # ── Writes ──────────────────────────────────────────────────────────

    async def upsert(
        self, external_id: int, fields: Mapping[str, Any]
    ) -> RepositorySnapshot:
        unknown = set(fields) - SNAPSHOT_FIELDS
        if unknown:
            raise ValueError(f"Unknown snapshot fields: {sorted(unknown)}")
        return await asyncio.to_thread(self._upsert, external_id, dict(fields))

    async def mark_sync_error(
        self, external_id: int, message: str
    ) -> RepositorySnapshot | None:
        return await asyncio.to_thread(self._mark_sync_error, external_id, message)

    # ── Blocking implementations ────────────────────────────────────────

    def _find_one(self, query: dict[str, Any]) -> RepositorySnapshot | None:
        try:
            doc = self.collection.find_one(query)
        except PyMongoError as exc:
            raise SnapshotStoreError(f"Snapshot lookup failed: {exc}") from exc
        return RepositorySnapshot.model_validate(doc) if doc else None

    def _find_by_full_name(self, full_name: str) -> RepositorySnapshot | None:
        # GitHub names are case-insensitive. A rename can leave an older record
        # holding the same name; prefer the one synced most recently.
        try:
            docs = list(
                self.collection.find({FULL_NAME_KEY: full_name.lower()})
                .sort("last_synced_at", DESCENDING)
                .limit(1)
            )
        except PyMongoError as exc:
            raise SnapshotStoreError(f"Snapshot lookup failed: {exc}") from exc
        return RepositorySnapshot.model_validate(docs[0]) if docs else None

    def _upsert(self, external_id: int, fields: dict[str, Any]) -> RepositorySnapshot:
        to_set = _to_document(fields)
        if "full_name" in to_set:
            to_set[FULL_NAME_KEY] = to_set["full_name"].lower()
        on_insert = {k: v for k, v in _insert_defaults().items() if k not in to_set}
        on_insert.setdefault("created_at", self._clock())
        update: dict[str, Any] = {"$setOnInsert": on_insert}
        if to_set:
            update["$set"] = to_set

        try:
            try:
                doc = self._find_one_and_upsert(external_id, update)
            except DuplicateKeyError:
                # Two inserting upserts raced; the retry matches the winner.
                logger.debug("Upsert race on snapshot %s, retrying", external_id)
                doc = self._find_one_and_upsert(external_id, update)
        except PyMongoError as exc:
            raise SnapshotStoreError(
                f"Upsert of snapshot {external_id} failed: {exc}"
            ) from exc
        return RepositorySnapshot.model_validate(doc)

    def _find_one_and_upsert(
        self, external_id: int, update: dict[str, Any]
    ) -> dict[str, Any]:
        return self.collection.find_one_and_update(
            {"_id": external_id},
            update,
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    def _mark_sync_error(
        self, external_id: int, message: str
    ) -> RepositorySnapshot | None:
        try:
            doc = self.collection.find_one_and_update(
                {"_id": external_id},
                {"$set": {"sync_error": message}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise SnapshotStoreError(
                f"Recording sync error on snapshot {external_id} failed: {exc}"
            ) from exc
        return RepositorySnapshot.model_validate(doc) if doc else None

    def _search(
        self, query: str | None, filters: SearchFilters, page: int, limit: int
    ) -> SnapshotPage:
        page = max(page, 1)
        limit = max(limit, 1)
        skip = (page - 1) * limit

        base: dict[str, Any] = {"is_private": False}
        if filters.language:
            base["language"] = filters.language

        try:
            if not query or not query.strip():
                total = self.collection.count_documents(base)
                cursor = self.collection.find(base).sort(_RANKING).skip(skip).limit(limit)
                docs = list(cursor)
            else:
                docs, total = self._ranked_text_search(base, query.strip(), skip, limit)
        except PyMongoError as exc:
            raise SnapshotStoreError(f"Snapshot search failed: {exc}") from exc

        return SnapshotPage(
            items=[RepositorySnapshot.model_validate(d) for d in docs],
            total=total,
            page=page,
            limit=limit,
        )

    def _ranked_text_search(
        self, base: dict[str, Any], query: str, skip: int, limit: int
    ) -> tuple[list[dict[str, Any]], int]:
        """Name matches rank above description-only matches, stars break ties."""
        pattern = {"$regex": re.escape(query), "$options": "i"}
        name_query = {**base, "name": pattern}
        description_query = {**base, "description": pattern, "$nor": [{"name": pattern}]}

        name_total = self.collection.count_documents(name_query)
        description_total = self.collection.count_documents(description_query)

        docs: list[dict[str, Any]] = []
        if skip < name_total:
            docs.extend(
                self.collection.find(name_query).sort(_RANKING).skip(skip).limit(limit)
            )
        remaining = limit - len(docs)
        if remaining > 0:
            docs.extend(
                self.collection.find(description_query)
                .sort(_RANKING)
                .skip(max(skip - name_total, 0))
                .limit(remaining)
            )
        return docs, name_total + description_total
