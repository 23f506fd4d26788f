"""Artifact overview and per-version detail built on the metadata client."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from constants import Constants
from errors import NotFoundError
from resolution.repositories import build_repositories
from resolution.service import ResolutionService

from .client import MavenMetadataClient
from .models import ArtifactDetail, ArtifactInfo, SearchResult

logger = logging.getLogger(__name__)


def dependency_snippets(group: str, artifact: str, version: str) -> Dict[str, str]:
    """Declaration of ``group:artifact:version`` for each of ``Constants.SNIPPET_FORMATS``."""
    return {
        "maven": (
            "<dependency>\n"
            f"    <groupId>{group}</groupId>\n"
            f"    <artifactId>{artifact}</artifactId>\n"
            f"    <version>{version}</version>\n"
            "</dependency>"
        ),
        "gradle": f"implementation '{group}:{artifact}:{version}'",
        "gradle_kotlin": f'implementation("{group}:{artifact}:{version}")',
        "sbt": f'libraryDependencies += "{group}" % "{artifact}" % "{version}"',
        "ivy": f'<dependency org="{group}" name="{artifact}" rev="{version}" />',
        "leiningen": f'[{group}/{artifact} "{version}"]',
        "buildr": f"'{group}:{artifact}:jar:{version}'",
    }


class ArtifactCatalog:
    """Answers "what is this artifact" questions for the CLI.

    Args:
        client: Registry client used for search, listings, POM details and timestamps.
        resolution: Optional service used to count a version's transitive
            dependencies; without it the count is 0.
    """

    def __init__(self, client: MavenMetadataClient, resolution: Optional[ResolutionService] = None):
        self._client = client
        self._resolution = resolution

    def search(self, query: str, page: int = 0, size: Optional[int] = None) -> SearchResult:
        return self._client.search(query, page, size)

    def info(self, group: str, artifact: str) -> ArtifactInfo:
        """Every known version plus descriptive fields of the newest one.

        Raises:
            NotFoundError: when no version of the artifact is known.
        """
        versions = self._client.list_versions(group, artifact)
        if not versions:
            raise NotFoundError(f"No versions found for {group}:{artifact}")

        latest = versions[0]
        recommended = next((v for v in versions if v.is_release), latest)
        details = self._client.pom_details(group, artifact, latest.version)
        if details is None:
            logger.info("No POM details for %s:%s:%s", group, artifact, latest.version)
        return ArtifactInfo(
            group=group,
            artifact=artifact,
            latest_version=latest.version,
            recommended_version=recommended.version,
            packaging=(details.packaging if details and details.packaging else latest.packaging),
            versions=tuple(versions),
            description=details.description if details else None,
            url=details.url if details else None,
            licenses=details.licenses if details else (),
            last_updated=max(v.timestamp for v in versions),
        )

    def detail(
        self,
        group: str,
        artifact: str,
        version: str,
        repositories: Optional[Iterable[str]] = None,
    ) -> ArtifactDetail:
        """Descriptive fields, snippets and dependency count of one version.

        Raises:
            NotFoundError: when no repository serves a readable POM for the version.
            InvalidRepositoryError: bad custom repository list.
        """
        repo_urls = list(repositories) if repositories else None
        details = self._client.pom_details(group, artifact, version, build_repositories(repo_urls))
        if details is None:
            raise NotFoundError(f"No POM found for {group}:{artifact}:{version}")

        dependency_count = 0
        if self._resolution is not None:
            tree = self._resolution.resolve_coordinate(group, artifact, version, repo_urls)
            dependency_count = sum(1 for _ in tree.walk()) - 1

        return ArtifactDetail(
            group=group,
            artifact=artifact,
            version=version,
            packaging=details.packaging or Constants.DEFAULT_EXTENSION,
            name=details.name,
            description=details.description,
            url=details.url,
            licenses=details.licenses,
            snippets=dependency_snippets(group, artifact, version),
            dependency_count=dependency_count,
            timestamp=self._client.version_timestamp(group, artifact, version),
        )

