"""Domain exception hierarchy.

Each exception maps to a specific HTTP status code at the interface layer.
Inner layers raise these; the outermost error-handler translates them.

GitHub failures form a closed set: every :class:`GitHubError` carries an
:class:`ErrorKind` tag so callers can branch on the kind without inspecting
ad hoc attributes.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum


class ErrorKind(str, Enum):
    """Tag identifying which branch of the remote error taxonomy was hit."""

    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    REMOTE_ERROR = "remote_error"
    TRANSPORT_ERROR = "transport_error"


class SnapshotCacheError(Exception):
    """Base exception for the entire application."""


# ── Input validation ────────────────────────────────────────────────────────


class InvalidRepoRefError(SnapshotCacheError):
    """The supplied value is not an ``owner/name`` pair or GitHub URL."""


class InvalidSearchQueryError(SnapshotCacheError):
    """The search query is empty or too short."""


# ── GitHub API errors ───────────────────────────────────────────────────────


class GitHubError(SnapshotCacheError):
    """Any failure reported by (or while reaching) the GitHub API."""

    kind: ErrorKind = ErrorKind.REMOTE_ERROR


class RepositoryNotFoundError(GitHubError):
    """Unknown to both the cache and GitHub (404)."""

    kind = ErrorKind.NOT_FOUND


class GitHubRateLimitError(GitHubError):
    """GitHub API rate limit exceeded (429 / 403 with rate-limit header)."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str, reset_at: datetime | None = None) -> None:
        super().__init__(message)
        self.reset_at = reset_at


class GitHubUnauthorizedError(GitHubError):
    """The configured token was rejected (401)."""

    kind = ErrorKind.UNAUTHORIZED


class GitHubApiError(GitHubError):
    """Any other non-2xx answer; carries GitHub's own message."""

    kind = ErrorKind.REMOTE_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GitHubTransportError(GitHubError):
    """Connection or timeout failure before a status code was obtained."""

    kind = ErrorKind.TRANSPORT_ERROR


# ── Persistence errors ──────────────────────────────────────────────────────


class SnapshotStoreError(SnapshotCacheError):
    """The snapshot store could not complete a read or write."""
