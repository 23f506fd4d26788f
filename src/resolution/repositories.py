"""Repository list construction and validation.

Every resolution runs against the default registry plus up to
``Constants.MAX_CUSTOM_REPOSITORIES`` caller-supplied URLs. Validation runs
before any network access so a bad list never yields a partial result.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple
from urllib.parse import urlsplit

from constants import Constants
from errors import InvalidRepositoryError
from common.logging_utils import safe_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Repository:
    """A remote artifact repository; ``url`` always ends with a slash."""
    repo_id: str
    url: str


def default_repository() -> Repository:
    return Repository(Constants.DEFAULT_REPOSITORY_ID, _normalize(Constants.DEFAULT_REPOSITORY_URL))


def _normalize(url: str) -> str:
    return url.strip().rstrip("/") + "/"


def validate_repository_url(url: str) -> str:
    """Return the normalized URL or raise InvalidRepositoryError."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidRepositoryError("Repository URL must not be empty")
    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
    except ValueError as exc:
        raise InvalidRepositoryError(f"Invalid repository URL: {exc}") from exc
    if parts.scheme.lower() not in Constants.ALLOWED_REPOSITORY_SCHEMES:
        raise InvalidRepositoryError(
            f"Repository URL must use {'/'.join(Constants.ALLOWED_REPOSITORY_SCHEMES)}: {safe_url(url)}"
        )
    if not host:
        raise InvalidRepositoryError(f"Repository URL has no host: {safe_url(url)}")
    return _normalize(url)


def build_repositories(custom: Optional[Iterable[str]] = None) -> Tuple[Repository, ...]:
    """Validate custom URLs and prepend the default registry.

    Blank entries are ignored and duplicates collapse onto their first
    occurrence.

    Raises:
        InvalidRepositoryError: too many URLs, or any URL with a non-https
            scheme or empty host.
    """
    urls = [u for u in (custom or []) if isinstance(u, str) and u.strip()]
    if len(urls) > Constants.MAX_CUSTOM_REPOSITORIES:
        raise InvalidRepositoryError(
            f"At most {Constants.MAX_CUSTOM_REPOSITORIES} custom repositories are allowed, got {len(urls)}"
        )
    normalized = [validate_repository_url(u) for u in urls]

    repositories = [default_repository()]
    seen = {repositories[0].url}
    for index, url in enumerate(normalized, start=1):
        if url in seen:
            continue
        seen.add(url)
        repositories.append(Repository(f"custom-{index}", url))
    if len(repositories) > 1:
        logger.info("Using %d custom repositories", len(repositories) - 1)
    return tuple(repositories)


def repository_set_key(repositories: Iterable[Repository]) -> str:
    """Stable cache-key fragment for a repository list (order-insensitive)."""
    return "|".join(sorted(r.url for r in repositories))
