"""Value objects — self-validating domain primitives."""

from __future__ import annotations

import re
from dataclasses import dataclass

from snapshot_cache.domain.exceptions import InvalidRepoRefError

_GITHUB_URL_RE = re.compile(
    r"^https?://github\.com/(?P<owner>[A-Za-z0-9\-_.]+)/(?P<name>[A-Za-z0-9\-_.]+?)(?:\.git)?/?$"
)
_FULL_NAME_RE = re.compile(r"^(?P<owner>[A-Za-z0-9\-_.]+)/(?P<name>[A-Za-z0-9\-_.]+)$")


@dataclass(frozen=True, slots=True)
class RepoRef:
    """Validated ``owner/name`` reference to a GitHub repository.

    Accepts either the bare full name (``psf/requests``) or a repository URL
    like ``https://github.com/psf/requests``.  Rejects anything else.
    """

    owner: str
    name: str

    @classmethod
    def from_string(cls, value: str) -> RepoRef:
        """Parse and validate a full name or repository URL."""
        value = value.strip()
        match = _FULL_NAME_RE.match(value) or _GITHUB_URL_RE.match(value)
        if not match:
            raise InvalidRepoRefError(
                f"Invalid repository reference: '{value}'. "
                "Expected 'owner/name' or https://github.com/<owner>/<name>"
            )
        return cls(owner=match["owner"], name=match["name"])

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"
