"""Maven metadata client: dependency metadata, version listings and artifact search.

This is the resolver's only window onto the registry. ``fetch_metadata``
returns ``None`` for anything it cannot read, which the resolver turns into
a MISSING node; it never raises for upstream trouble. ``search`` is the
exception: an unanswered search raises RegistryUnavailableError.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import requests
from packaging import version as pkg_version

from constants import CacheRegions, Constants
from errors import InvalidModelError, InvalidQueryError, RegistryUnavailableError
from common.cache import TTLCache
from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from manifest.parser import (
    _child,
    _children,
    _read_properties,
    _text,
    fill_version,
    interpolate,
    managed_versions,
    parse_xml,
    read_declarations,
)
from resolution.models import ArtifactMetadata, Coordinate, DependencyDeclaration
from resolution.repositories import Repository, default_repository, repository_set_key
from versioning.models import VersionRecord
from versioning.stability import is_pre_release

from .models import LicenseInfo, PomDetails, SearchHit, SearchResult
from .discovery import _fetch_pom, _metadata_versions, _resolve_latest_version

logger = logging.getLogger(__name__)


def _sort_key(ver: str):
    """Order versions with packaging semantics, unparseable ones first."""
    try:
        return (1, pkg_version.Version(ver), ver)
    except pkg_version.InvalidVersion:
        return (0, pkg_version.Version("0"), ver)


class MavenMetadataClient:
    """Reads POM metadata and version listings from Maven repositories.

    Args:
        session: Optional requests session reused for all calls.
        cache: Optional TTL cache; lookups never fail because of it.
        search_url: Maven Central search endpoint for version listings.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        cache: Optional[TTLCache] = None,
        search_url: Optional[str] = None,
    ):
        self._session = session
        self._cache = cache
        self._search_url = search_url or Constants.REGISTRY_URL_MAVEN_SEARCH

    # ------------------------------------------------------------------ cache

    def _cache_get(self, region: CacheRegions, key: str):
        if self._cache is None:
            return None
        try:
            return self._cache.get(region, key)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Cache GET failed for %s: %s", key, exc)
            return None

    def _cache_set(self, region: CacheRegions, key: str, value) -> None:
        if self._cache is None:
            return
        try:
            self._cache.set(region, key, value)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Cache PUT failed for %s: %s", key, exc)

    # --------------------------------------------------------------- metadata

    def latest_release(self, group: str, artifact: str, repositories: Sequence[Repository]) -> Optional[str]:
        """Concrete version standing in for LATEST at request time."""
        return _resolve_latest_version(group, artifact, repositories, self._session)

    def fetch_metadata(
        self,
        coordinate: Coordinate,
        repositories: Sequence[Repository],
    ) -> Optional[ArtifactMetadata]:
        """Return the declared dependencies of ``coordinate`` or None if unreadable.

        Parent POMs are followed up to ``Constants.MAX_PARENT_DEPTH`` levels to
        inherit properties and dependencyManagement versions.
        """
        cache_key = f"pom:{coordinate}:{repository_set_key(repositories)}"
        cached = self._cache_get(CacheRegions.VERSION_INFO, cache_key)
        if cached is not None:
            return cached

        with Timer() as t:
            concrete = coordinate.version
            if concrete == Constants.LATEST_VERSION:
                concrete = self.latest_release(coordinate.group, coordinate.artifact, repositories)
                if not concrete:
                    logger.warning("No release found for floating %s", coordinate.key)
                    return None

            chain = self._load_chain(coordinate.group, coordinate.artifact, concrete, repositories)
            if not chain:
                return None
            metadata = self._effective_metadata(coordinate, concrete, chain)

        if is_debug_enabled(logger):
            logger.debug("Resolved artifact metadata", extra=extra_context(
                event="function_exit", component="client", action="fetch_metadata",
                outcome="success", count=len(metadata.dependencies),
                duration_ms=t.duration_ms(), target=str(coordinate), package_manager="maven"
            ))
        self._cache_set(CacheRegions.VERSION_INFO, cache_key, metadata)
        return metadata

    def _load_chain(
        self,
        group: str,
        artifact: str,
        version: str,
        repositories: Sequence[Repository],
    ) -> List[ET.Element]:
        """Fetch a POM and its ancestors, child first."""
        chain: List[ET.Element] = []
        seen = set()
        target: Optional[Tuple[str, str, str]] = (group, artifact, version)
        while target is not None and len(chain) <= Constants.MAX_PARENT_DEPTH:
            if target in seen:
                logger.warning("Parent cycle detected at %s", ":".join(target))
                break
            seen.add(target)
            fetched = _fetch_pom(*target, repositories, self._session)
            if fetched is None:
                if not chain:
                    return []
                logger.warning("Parent POM %s not found, inheritance truncated", ":".join(target))
                break
            try:
                project = parse_xml(fetched[0])
            except InvalidModelError as exc:
                if not chain:
                    logger.warning("Unreadable POM for %s: %s", ":".join(target), exc)
                    return []
                break
            chain.append(project)
            parent = _child(project, "parent")
            pg, pa, pv = _text(parent, "groupId"), _text(parent, "artifactId"), _text(parent, "version")
            target = (pg, pa, pv) if pg and pa and pv else None
        return chain

    @staticmethod
    def _effective_metadata(
        coordinate: Coordinate,
        concrete: str,
        chain: List[ET.Element],
    ) -> ArtifactMetadata:
        """Merge properties and managed versions down the parent chain."""
        properties: Dict[str, str] = {}
        for project in reversed(chain):
            properties.update(_read_properties(project))

        own = chain[0]
        parent_elem = _child(own, "parent")
        parent_group = _text(parent_elem, "groupId")
        parent_version = _text(parent_elem, "version")
        properties["project.groupId"] = _text(own, "groupId") or parent_group or coordinate.group
        properties["project.artifactId"] = coordinate.artifact
        properties["project.version"] = concrete
        properties.setdefault("java.version", Constants.IMPLICIT_JAVA_VERSION)

        managed: Dict[str, Tuple[str, Optional[str]]] = {}
        for project in chain:
            for key, value in managed_versions(
                    read_declarations(_child(project, "dependencyManagement"), properties)).items():
                managed.setdefault(key, value)

        declarations: List[DependencyDeclaration] = []
        for group, artifact, ver, ext, scope, optional, exclusions in read_declarations(own, properties):
            resolved, floating = fill_version(group, artifact, ver, interpolate(parent_version, properties), managed)
            declarations.append(DependencyDeclaration(
                coordinate=Coordinate(group, artifact, resolved, ext),
                scope=scope,
                optional=optional,
                exclusions=exclusions,
                floating=floating,
            ))

        parent = None
        parent_artifact = _text(parent_elem, "artifactId")
        if parent_group and parent_artifact and parent_version:
            parent = Coordinate(parent_group, parent_artifact, parent_version, "pom")

        return ArtifactMetadata(
            coordinate=coordinate,
            parent=parent,
            properties=properties,
            dependencies=tuple(declarations),
            resolved_version=concrete,
        )

    # --------------------------------------------------------------- versions

    def list_versions(
        self,
        group: str,
        artifact: str,
        repositories: Optional[Iterable[Repository]] = None,
    ) -> List[VersionRecord]:
        """Known versions, newest first.

        Uses the Maven Central search API (GAV core); when it is unreachable
        or empty, falls back to maven-metadata.xml without timestamps.
        """
        cache_key = f"versions:{group}:{artifact}"
        cached = self._cache_get(CacheRegions.VERSION_INFO, cache_key)
        if cached is not None:
            return list(cached)

        records = self._search_versions(group, artifact)
        if not records:
            repos = list(repositories) if repositories else [default_repository()]
            listed = _metadata_versions(group, artifact, repos, self._session)
            records = [
                VersionRecord(version=v, timestamp=0, is_release=not is_pre_release(v), repository="central")
                for v in sorted(listed, key=_sort_key, reverse=True)
            ]
            if records:
                logger.info("Version list for %s:%s taken from maven-metadata.xml", group, artifact)

        if records:
            self._cache_set(CacheRegions.VERSION_INFO, cache_key, tuple(records))
        return records

    def _search_versions(self, group: str, artifact: str) -> List[VersionRecord]:
        params = {
            "q": f'g:"{group}" AND a:"{artifact}"',
            "core": "gav",
            "rows": Constants.VERSION_LIST_ROWS,
            "wt": "json",
            "sort": "timestamp desc",
        }
        status_code, _, data = get_json(self._search_url, session=self._session, params=params)
        if status_code != 200 or not isinstance(data, dict):
            if status_code:
                logger.warning("Maven search returned HTTP %s for %s:%s", status_code, group, artifact)
            return []
        docs = data.get("response", {}).get("docs", []) or []
        records = []
        for doc in docs:
            ver = doc.get("v")
            if not ver:
                continue
            records.append(VersionRecord(
                version=ver,
                timestamp=int(doc.get("timestamp") or 0),
                is_release=not is_pre_release(ver),
                repository="central",
                packaging=doc.get("p") or "jar",
            ))
        return records

    # ----------------------------------------------------------------- search

    def search(self, query: str, page: int = 0, size: Optional[int] = None) -> SearchResult:
        """Free-text artifact search against the default (artifact) core.

        ``size`` is capped at ``Constants.SEARCH_MAX_PAGE_SIZE``.

        Raises:
            InvalidQueryError: blank query or negative page.
            RegistryUnavailableError: the search service failed to answer.
        """
        text = (query or "").strip()
        if not text:
            raise InvalidQueryError("Search query is required")
        if page < 0:
            raise InvalidQueryError(f"Page must be zero or positive, got {page}")
        size = size or Constants.SEARCH_DEFAULT_PAGE_SIZE
        size = max(1, min(size, Constants.SEARCH_MAX_PAGE_SIZE))

        cache_key = f"search:{text}:{page}:{size}"
        cached = self._cache_get(CacheRegions.SEARCH, cache_key)
        if cached is not None:
            return cached

        params = {"q": text, "start": page * size, "rows": size, "wt": "json"}
        with Timer() as t:
            status_code, _, data = get_json(self._search_url, session=self._session, params=params)
        if status_code != 200 or not isinstance(data, dict):
            logger.warning("Maven search for %r failed with HTTP %s", text, status_code or "error")
            raise RegistryUnavailableError(f"Search failed for '{text}' (HTTP {status_code or 'error'})")

        response = data.get("response", {}) or {}
        hits = []
        for doc in response.get("docs", []) or []:
            group, artifact = doc.get("g"), doc.get("a")
            if not group or not artifact:
                continue
            hits.append(SearchHit(
                group=group,
                artifact=artifact,
                latest_version=doc.get("latestVersion") or doc.get("v"),
                packaging=doc.get("p") or Constants.DEFAULT_EXTENSION,
                timestamp=int(doc.get("timestamp") or 0),
                version_count=int(doc.get("versionCount") or 0),
            ))
        result = SearchResult(
            query=text,
            total=int(response.get("numFound") or 0),
            page=page,
            page_size=size,
            hits=tuple(hits),
        )
        if is_debug_enabled(logger):
            logger.debug("Search complete", extra=extra_context(
                event="function_exit", component="client", action="search",
                outcome="success", count=len(hits), duration_ms=t.duration_ms(),
                target=safe_url(self._search_url), package_manager="maven"
            ))
        self._cache_set(CacheRegions.SEARCH, cache_key, result)
        return result

    def version_timestamp(self, group: str, artifact: str, version: str) -> int:
        """Publication time of one version in epoch ms, 0 when unknown."""
        params = {"q": f'g:"{group}" AND a:"{artifact}" AND v:"{version}"', "core": "gav", "rows": 1, "wt": "json"}
        status_code, _, data = get_json(self._search_url, session=self._session, params=params)
        if status_code != 200 or not isinstance(data, dict):
            return 0
        docs = data.get("response", {}).get("docs", []) or []
        return int(docs[0].get("timestamp") or 0) if docs else 0

    def pom_details(
        self,
        group: str,
        artifact: str,
        version: str,
        repositories: Optional[Iterable[Repository]] = None,
    ) -> Optional[PomDetails]:
        """Name, description, URL, packaging and licenses from a published POM.

        Returns None when no repository serves a readable POM.
        """
        repos = list(repositories) if repositories else [default_repository()]
        cache_key = f"details:{group}:{artifact}:{version}:{repository_set_key(repos)}"
        cached = self._cache_get(CacheRegions.VERSION_INFO, cache_key)
        if cached is not None:
            return cached

        fetched = _fetch_pom(group, artifact, version, repos, self._session)
        if fetched is None:
            return None
        try:
            project = parse_xml(fetched[0])
        except InvalidModelError as exc:
            logger.warning("Unreadable POM for %s:%s:%s: %s", group, artifact, version, exc)
            return None

        licenses = tuple(
            LicenseInfo(name=_text(lic, "name") or "Unknown", url=_text(lic, "url") or "")
            for lic in _children(_child(project, "licenses"), "license")
        )
        details = PomDetails(
            name=_text(project, "name"),
            description=_text(project, "description"),
            url=_text(project, "url"),
            packaging=_text(project, "packaging"),
            licenses=licenses,
        )
        self._cache_set(CacheRegions.VERSION_INFO, cache_key, details)
        return details
