"""Global exception handlers — translate domain errors to HTTP responses.

Each domain exception maps to a specific HTTP status code and the
standard ``{"status": "error", "message": "..."}`` envelope.
"""

from __future__ import annotations

import logging
import math

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from snapshot_cache.domain.entities import utcnow
from snapshot_cache.domain.exceptions import (
    GitHubApiError,
    GitHubRateLimitError,
    GitHubTransportError,
    GitHubUnauthorizedError,
    InvalidRepoRefError,
    InvalidSearchQueryError,
    RepositoryNotFoundError,
    SnapshotCacheError,
    SnapshotStoreError,
)

logger = logging.getLogger(__name__)

_EXCEPTION_STATUS: list[tuple[type[SnapshotCacheError], int]] = [
    (InvalidRepoRefError, 422),
    (InvalidSearchQueryError, 422),
    (RepositoryNotFoundError, 404),
    (GitHubUnauthorizedError, 502),
    (GitHubApiError, 502),
    (GitHubTransportError, 502),
    (SnapshotStoreError, 503),
]


def _error_json(
    status_code: int, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message},
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach exception handlers to the FastAPI application."""

    # ── Domain exceptions ───────────────────────────────────────────────

    for exc_type, code in _EXCEPTION_STATUS:

        def _make_handler(
            status_code: int,
        ):  # type: ignore[no-untyped-def]
            async def handler(request: Request, exc: Exception) -> JSONResponse:
                logger.warning("%s: %s", type(exc).__name__, exc)
                return _error_json(status_code, str(exc))

            return handler

        app.add_exception_handler(exc_type, _make_handler(code))

    @app.exception_handler(GitHubRateLimitError)
    async def rate_limit_handler(
        request: Request, exc: GitHubRateLimitError
    ) -> JSONResponse:
        logger.warning("GitHubRateLimitError: %s", exc)
        headers = None
        if exc.reset_at is not None:
            wait = max(math.ceil((exc.reset_at - utcnow()).total_seconds()), 0)
            headers = {"Retry-After": str(wait)}
        return _error_json(429, str(exc), headers)

    # ── Pydantic / FastAPI validation errors ────────────────────────────

    @app.exception_handler(RequestValidationError)
    async def validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        messages = []
        for err in exc.errors():
            loc = " → ".join(str(p) for p in err.get("loc", []))
            messages.append(f"{loc}: {err.get('msg', 'validation error')}")
        return _error_json(422, "; ".join(messages))

    # ── Catch-all for unexpected errors ─────────────────────────────────

    @app.exception_handler(Exception)
    async def generic_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception")
        return _error_json(500, "An unexpected error occurred. Please try again later.")
