"""MongoDB connection and index helpers."""

from __future__ import annotations

import logging

from pymongo import ASCENDING, DESCENDING, TEXT, MongoClient
from pymongo.collection import Collection
from pymongo.errors import OperationFailure

from snapshot_cache.infrastructure.config import Settings
from snapshot_cache.infrastructure.mongo_snapshot_store import FULL_NAME_KEY

logger = logging.getLogger(__name__)


def create_client(settings: Settings) -> MongoClient:
    """Build the process-wide client; pymongo pools connections itself."""
    return MongoClient(settings.mongodb_uri, tz_aware=True)


def get_snapshot_collection(client: MongoClient, settings: Settings) -> Collection:
    return client[settings.mongodb_db_name][settings.snapshot_collection]


def ensure_snapshot_indexes(collection: Collection) -> None:
    """Create the indexes the snapshot store relies on.

    The external id is the document ``_id`` and is unique by construction.
    The lowercased name key is non-unique: a renamed repository can leave
    a stale record carrying the old name until it is refreshed.
    """
    specs = [
        ([(FULL_NAME_KEY, ASCENDING)], {"name": "full_name_key_idx"}),
        ([("stars", DESCENDING)], {"name": "stars_desc_idx"}),
        ([("topics", ASCENDING)], {"name": "topics_idx"}),
        (
            [("name", TEXT), ("description", TEXT)],
            {"name": "name_description_text", "language_override": "textSearchLanguage"},
        ),
    ]
    for keys, options in specs:
        try:
            collection.create_index(keys, background=True, **options)
            logger.debug("Ensured index: %s", options["name"])
        except OperationFailure as exc:
            # Index may already exist with different options
            if "already exists" not in str(exc):
                logger.warning("Failed to create %s index: %s", options["name"], exc)
    logger.info("Snapshot indexes ensured on %s", collection.full_name)
