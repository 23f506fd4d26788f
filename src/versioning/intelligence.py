"""Version intelligence: stability scoring fused with vulnerability severity."""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional

from constants import CacheRegions, Constants
from errors import NotFoundError
from common.cache import TTLCache
from versioning.models import (
    SafetyBadge,
    SafetyIndicator,
    Severity,
    VersionAssessment,
    VersionIntelligence,
    VulnerabilityReport,
)
from versioning.stability import (
    compute_safety_indicator,
    compute_stability_grade,
    compute_stability_score,
    label_for_indicator,
)

logger = logging.getLogger(__name__)


def summarize_advisories(group: str, artifact: str, version: str, advisories) -> VulnerabilityReport:
    """Count advisories per severity and find the most severe band present."""
    counts: Dict[Severity, int] = {}
    highest: Optional[Severity] = None
    for advisory in advisories:
        counts[advisory.severity] = counts.get(advisory.severity, 0) + 1
        if highest is None or advisory.severity.rank < highest.rank:
            highest = advisory.severity
    ordered = tuple(sorted(advisories, key=lambda a: a.severity.rank))
    return VulnerabilityReport(
        group=group,
        artifact=artifact,
        version=version,
        advisories=ordered,
        counts=counts,
        highest_severity=highest,
    )


def recommend(assessments: Iterable[VersionAssessment]) -> Optional[VersionAssessment]:
    """Pick the SAFE release with the highest stability score.

    Ties keep the earlier entry. Without a SAFE release, fall back to the
    first release, then to the first assessment.
    """
    items = list(assessments)
    best: Optional[VersionAssessment] = None
    for item in items:
        if item.is_release and item.safety_indicator == SafetyIndicator.SAFE:
            if best is None or item.stability_score > best.stability_score:
                best = item
    if best is not None:
        return best
    for item in items:
        if item.is_release:
            return item
    return items[0] if items else None


class VersionIntelligenceEngine:
    """Scores versions and fuses the score with vulnerability data.

    Args:
        feed: Vulnerability-feed collaborator with
            ``query(ecosystem, name, version) -> list | None``.
        metadata_client: Optional registry client providing ``list_versions``;
            only needed for ``intelligence``.
        cache: Optional TTL cache for vulnerability reports.
        clock: Optional callable returning "now" in epoch millis.
    """

    def __init__(
        self,
        feed,
        metadata_client=None,
        cache: Optional[TTLCache] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self._feed = feed
        self._metadata_client = metadata_client
        self._cache = cache
        self._clock = clock

    def _now(self) -> Optional[int]:
        return self._clock() if self._clock is not None else None

    def vulnerability_report(self, group: str, artifact: str, version: str) -> VulnerabilityReport:
        """Advisories for one exact version; a clean report if the feed is down."""
        cache_key = f"{group}:{artifact}:{version}"
        if self._cache is not None:
            try:
                cached = self._cache.get(CacheRegions.VULNERABILITIES, cache_key)
                if cached is not None:
                    return cached
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.warning("Cache GET failed for %s: %s", cache_key, exc)

        try:
            advisories = self._feed.query(Constants.OSV_ECOSYSTEM_MAVEN, f"{group}:{artifact}", version)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Vulnerability feed error for %s: %s", cache_key, exc)
            advisories = None

        if advisories is None:
            return VulnerabilityReport(group=group, artifact=artifact, version=version, available=False)

        report = summarize_advisories(group, artifact, version, advisories)
        if self._cache is not None:
            try:
                self._cache.set(CacheRegions.VULNERABILITIES, cache_key, report)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.warning("Cache PUT failed for %s: %s", cache_key, exc)
        return report

    def assess(
        self,
        group: str,
        artifact: str,
        version: str,
        is_release: bool,
        timestamp: Optional[int],
    ) -> VersionAssessment:
        """Compute the stability and safety assessment of one version."""
        report = self.vulnerability_report(group, artifact, version)
        now = self._now()
        grade = compute_stability_grade(version, timestamp, now)
        score = compute_stability_score(version, is_release, timestamp, now)
        indicator = compute_safety_indicator(report.counts, grade)
        return VersionAssessment(
            version=version,
            is_release=is_release,
            timestamp=int(timestamp or 0),
            vulnerability_count=report.total,
            highest_severity=report.highest_severity,
            stability_grade=grade,
            stability_score=score,
            safety_indicator=indicator,
            safety_label=label_for_indicator(indicator, report.total),
        )

    def intelligence(self, group: str, artifact: str, limit: Optional[int] = None) -> VersionIntelligence:
        """Assess the newest ``limit`` versions and recommend one.

        Raises:
            NotFoundError: the registry knows no versions of group:artifact.
        """
        if self._metadata_client is None:
            raise RuntimeError("intelligence() needs a metadata client")
        limit = Constants.INTELLIGENCE_DEFAULT_VERSIONS if limit is None else max(0, limit)
        records = self._metadata_client.list_versions(group, artifact)
        if not records:
            raise NotFoundError(f"Artifact not found: {group}:{artifact}")

        assessments: List[VersionAssessment] = [
            self.assess(group, artifact, r.version, r.is_release, r.timestamp) for r in records[:limit]
        ]
        picked = recommend(assessments)
        logger.info(
            "Assessed %d versions of %s:%s, recommended %s",
            len(assessments), group, artifact, picked.version if picked else None,
        )
        return VersionIntelligence(group=group, artifact=artifact, recommended=picked, versions=assessments)

    def badge(self, group: str, artifact: str, version: str) -> SafetyBadge:
        """Vulnerability-only indicator for badges and inline checks."""
        report = self.vulnerability_report(group, artifact, version)
        if report.count(Severity.CRITICAL) or report.count(Severity.HIGH):
            indicator = SafetyIndicator.DANGER
            label = f"{report.total} security issue(s), action recommended"
        elif report.count(Severity.MEDIUM):
            indicator = SafetyIndicator.WARNING
            label = f"{report.total} vulnerability(ies) found"
        elif report.count(Severity.LOW):
            indicator = SafetyIndicator.CAUTION
            label = f"{report.total} low-severity issue(s)"
        else:
            indicator = SafetyIndicator.SAFE
            label = "No known vulnerabilities"
        return SafetyBadge(
            group=group,
            artifact=artifact,
            version=version,
            indicator=indicator,
            label=label,
            vulnerability_count=report.total,
            highest_severity=report.highest_severity,
        )
