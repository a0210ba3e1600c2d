from __future__ import annotations
import logging
import uvicorn
from snapshot_cache.infrastructure.config import get_settings

logger = logging.getLogger("snapshot_cache")


def main() -> None:
    """Configure logging and serve the API with uvicorn."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )
    # httpx logs every request line at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logger.info(
        "Serving snapshots from %s/%s (core TTL %ss, README TTL %sd, token %s)",
        settings.mongodb_db_name,
        settings.snapshot_collection,
        settings.core_ttl_seconds,
        settings.readme_ttl_days,
        "set" if settings.github_token else "unset",
    )
    uvicorn.run(
        "snapshot_cache.interface.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
