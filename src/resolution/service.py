"""Request-level entry points tying the manifest builder, resolver and cache together."""
from __future__ import annotations

import hashlib
import logging
from typing import Iterable, Optional, Union

from constants import CacheRegions, Constants
from common.cache import TTLCache
from manifest.parser import check_manifest_size, parse_manifest
from resolution.aggregator import MultiModuleAggregator
from resolution.models import Coordinate, MultiModuleResult, NodeStatus, ResolvedNode
from resolution.repositories import build_repositories, repository_set_key
from resolution.resolver import DependencyGraphResolver

logger = logging.getLogger(__name__)


class ResolutionService:
    """Resolves coordinates and manifests, memoizing trees when a cache is given.

    Cache trouble is logged and ignored; a failed lookup falls back to a
    live resolution.
    """

    def __init__(self, resolver: DependencyGraphResolver, cache: Optional[TTLCache] = None):
        self._resolver = resolver
        self._aggregator = MultiModuleAggregator(resolver)
        self._cache = cache

    def _cached(self, key: str):
        if self._cache is None:
            return None
        try:
            return self._cache.get(CacheRegions.RESOLVED_TREE, key)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Cache GET failed for %s: %s", key, exc)
            return None

    def _store(self, key: str, value) -> None:
        if self._cache is None:
            return
        tree = value.merged_tree if isinstance(value, MultiModuleResult) else value
        if tree.status in (NodeStatus.ERROR, NodeStatus.MISSING):
            return
        try:
            self._cache.set(CacheRegions.RESOLVED_TREE, key, value)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Cache PUT failed for %s: %s", key, exc)

    def resolve_coordinate(
        self,
        group: str,
        artifact: str,
        version: str,
        repositories: Optional[Iterable[str]] = None,
        extension: str = Constants.DEFAULT_EXTENSION,
    ) -> ResolvedNode:
        """Resolve a published artifact and its transitive dependencies.

        Trees whose root is MISSING or ERROR are not cached.
        """
        repos = build_repositories(repositories)
        key = f"gav:{group}:{artifact}:{extension}:{version}|{repository_set_key(repos)}"
        cached = self._cached(key)
        if cached is not None:
            return cached
        if not (group and artifact and version):
            return self._resolver.resolve(f"{group}:{artifact}:{version}", repos)
        tree = self._resolver.resolve(Coordinate(group, artifact, version, extension), repos)
        self._store(key, tree)
        return tree

    def analyze_manifest(
        self,
        text: str,
        repositories: Optional[Iterable[str]] = None,
        detect_multi_module: bool = True,
    ) -> Union[ResolvedNode, MultiModuleResult]:
        """Resolve the dependencies declared in manifest text.

        Raises:
            OversizeInputError: manifest over the size cap.
            InvalidRepositoryError: bad custom repository list.
            InvalidModelError: malformed or incomplete manifest.
        """
        check_manifest_size(text)
        repos = build_repositories(repositories)
        digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
        key = f"pom:{digest}:{int(detect_multi_module)}|{repository_set_key(repos)}"
        cached = self._cached(key)
        if cached is not None:
            return cached

        model = parse_manifest(text)
        if detect_multi_module:
            result = self._aggregator.aggregate(model, repos)
        else:
            result = self._resolver.resolve(list(model.dependencies), repos, root_coordinate=model.coordinate)
        self._store(key, result)
        return result
