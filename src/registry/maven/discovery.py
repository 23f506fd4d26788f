"""Maven repository layout helpers: POM and maven-metadata.xml retrieval."""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Iterable, List, Optional, Tuple

import requests

from common.http_client import robust_get
from common.logging_utils import extra_context, is_debug_enabled
from resolution.repositories import Repository

logger = logging.getLogger(__name__)


def _group_path(group: str) -> str:
    return group.replace(".", "/")


def _artifact_pom_url(base_url: str, group: str, artifact: str, version: str) -> str:
    """Construct POM URL for given Maven coordinates.

    Args:
        base_url: Repository base URL ending with a slash
        group: Maven group ID
        artifact: Maven artifact ID
        version: Version string

    Returns:
        Full URL to the POM file
    """
    return f"{base_url}{_group_path(group)}/{artifact}/{version}/{artifact}-{version}.pom"


def _metadata_url(base_url: str, group: str, artifact: str) -> str:
    return f"{base_url}{_group_path(group)}/{artifact}/maven-metadata.xml"


def _fetch_pom(
    group: str,
    artifact: str,
    version: str,
    repositories: Iterable[Repository],
    session: Optional[requests.Session] = None,
) -> Optional[Tuple[str, Repository]]:
    """Fetch POM text from the first repository that has it.

    Returns:
        Tuple of (pom_xml, repository) or None when no repository serves it.
    """
    for repo in repositories:
        url = _artifact_pom_url(repo.url, group, artifact, version)
        status_code, _, text = robust_get(url, session=session)
        if status_code == 200 and text:
            if is_debug_enabled(logger):
                logger.debug("Fetched POM", extra=extra_context(
                    event="function_exit", component="discovery", action="fetch_pom",
                    outcome="found", target=repo.repo_id, package_manager="maven"
                ))
            return text, repo
        if is_debug_enabled(logger):
            logger.debug("POM not served by repository", extra=extra_context(
                event="decision", component="discovery", action="fetch_pom",
                outcome="not_found", status_code=status_code, target=repo.repo_id,
                package_manager="maven"
            ))
    return None


def _fetch_metadata_root(
    group: str,
    artifact: str,
    repositories: Iterable[Repository],
    session: Optional[requests.Session] = None,
) -> Optional[ET.Element]:
    """Fetch and parse maven-metadata.xml from the first repository serving it."""
    for repo in repositories:
        status_code, _, text = robust_get(_metadata_url(repo.url, group, artifact), session=session)
        if status_code != 200 or not text:
            continue
        try:
            return ET.fromstring(text)
        except ET.ParseError:
            if is_debug_enabled(logger):
                logger.debug("Maven metadata parse error", extra=extra_context(
                    event="anomaly", component="discovery", action="fetch_metadata",
                    outcome="parse_error", target=repo.repo_id, package_manager="maven"
                ))
            continue
    return None


def _resolve_latest_version(
    group: str,
    artifact: str,
    repositories: Iterable[Repository],
    session: Optional[requests.Session] = None,
) -> Optional[str]:
    """Resolve latest release version from Maven metadata.

    Args:
        group: Maven group ID
        artifact: Maven artifact ID
        repositories: Repositories to query in order
        session: Optional HTTP session

    Returns:
        Latest release version string or None if not found
    """
    root = _fetch_metadata_root(group, artifact, repositories, session)
    if root is None:
        return None

    versioning = root.find("versioning")
    if versioning is not None:
        for tag in ("release", "latest"):
            elem = versioning.find(tag)
            if elem is not None and elem.text and elem.text.strip():
                if is_debug_enabled(logger):
                    logger.debug("Found metadata version", extra=extra_context(
                        event="function_exit", component="discovery", action="resolve_latest_version",
                        outcome=f"found_{tag}", package_manager="maven"
                    ))
                return elem.text.strip()
        versions = _versions_from_root(root)
        if versions:
            return versions[-1]
    return None


def _versions_from_root(root: ET.Element) -> List[str]:
    versions_elem = root.find("versioning/versions")
    if versions_elem is None:
        return []
    return [item.text.strip() for item in versions_elem.findall("version")
            if isinstance(item.text, str) and item.text.strip()]


def _metadata_versions(
    group: str,
    artifact: str,
    repositories: Iterable[Repository],
    session: Optional[requests.Session] = None,
) -> List[str]:
    """Return versions listed in maven-metadata.xml in source order (oldest first)."""
    root = _fetch_metadata_root(group, artifact, repositories, session)
    if root is None:
        return []
    return _versions_from_root(root)
