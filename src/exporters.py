"""Serialization of trees, assessments and artifact listings for output."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from registry.maven.models import ArtifactDetail, ArtifactInfo, LicenseInfo, SearchResult
from resolution.models import MultiModuleResult, NodeStatus, ResolvedNode
from versioning.models import (
    Advisory,
    SafetyBadge,
    Severity,
    VersionAssessment,
    VersionIntelligence,
    VulnerabilityReport,
)


def _sev(value: Optional[Severity]) -> Optional[str]:
    return value.value if value is not None else None


def node_to_dict(node: ResolvedNode) -> Dict[str, Any]:
    """Recursive camelCase view of a resolved node."""
    data = {
        "groupId": node.coordinate.group,
        "artifactId": node.coordinate.artifact,
        "version": node.coordinate.version,
        "scope": node.scope,
        "type": node.extension,
        "resolutionStatus": node.status.value,
        "conflictMessage": node.message,
        "children": [node_to_dict(child) for child in node.children],
    }
    if node.floating:
        data["floatingVersion"] = True
    return data


def multi_module_to_dict(result: MultiModuleResult) -> Dict[str, Any]:
    return {
        "parentGroupId": result.parent_coordinate.group,
        "parentArtifactId": result.parent_coordinate.artifact,
        "parentVersion": result.parent_coordinate.version,
        "isMultiModule": result.is_multi_module,
        "modules": [
            {
                "moduleName": m.module_name,
                "groupId": m.coordinate.group,
                "artifactId": m.coordinate.artifact,
                "version": m.coordinate.version,
                "packaging": m.packaging,
                "dependencyTree": node_to_dict(m.tree),
            }
            for m in result.modules
        ],
        "mergedTree": node_to_dict(result.merged_tree),
    }


def advisory_to_dict(advisory: Advisory) -> Dict[str, Any]:
    return {
        "id": advisory.id,
        "summary": advisory.summary,
        "details": advisory.details,
        "severity": advisory.severity.value,
        "cvssScore": advisory.cvss_score,
        "cvssVector": advisory.cvss_vector,
        "cweIds": list(advisory.cwe_ids),
        "aliases": list(advisory.aliases),
        "published": advisory.published,
        "modified": advisory.modified,
        "fixedVersion": advisory.fixed_version,
        "referenceUrl": advisory.reference_url,
    }


def report_to_dict(report: VulnerabilityReport) -> Dict[str, Any]:
    return {
        "groupId": report.group,
        "artifactId": report.artifact,
        "version": report.version,
        "totalVulnerabilities": report.total,
        "criticalCount": report.count(Severity.CRITICAL),
        "highCount": report.count(Severity.HIGH),
        "mediumCount": report.count(Severity.MEDIUM),
        "lowCount": report.count(Severity.LOW),
        "highestSeverity": _sev(report.highest_severity),
        "advisories": [advisory_to_dict(a) for a in report.advisories],
        "feedAvailable": report.available,
        "disclaimer": VulnerabilityReport.DISCLAIMER,
    }


def assessment_to_dict(assessment: VersionAssessment) -> Dict[str, Any]:
    return {
        "version": assessment.version,
        "isRelease": assessment.is_release,
        "timestamp": assessment.timestamp,
        "vulnerabilityCount": assessment.vulnerability_count,
        "highestSeverity": _sev(assessment.highest_severity),
        "stabilityGrade": assessment.stability_grade.value,
        "stabilityScore": assessment.stability_score,
        "safetyIndicator": assessment.safety_indicator.value,
        "safetyLabel": assessment.safety_label,
    }


def intelligence_to_dict(intel: VersionIntelligence) -> Dict[str, Any]:
    return {
        "groupId": intel.group,
        "artifactId": intel.artifact,
        "recommendedVersion": assessment_to_dict(intel.recommended) if intel.recommended else None,
        "versions": [assessment_to_dict(a) for a in intel.versions],
    }


def badge_to_dict(badge: SafetyBadge) -> Dict[str, Any]:
    return {
        "groupId": badge.group,
        "artifactId": badge.artifact,
        "version": badge.version,
        "indicator": badge.indicator.value,
        "label": badge.label,
        "vulnerabilityCount": badge.vulnerability_count,
        "highestSeverity": _sev(badge.highest_severity) or "NONE",
    }


def count_dependencies(node: Optional[ResolvedNode]) -> int:
    """Number of nodes below ``node``."""
    if node is None:
        return 0
    return sum(1 for _ in node.walk()) - 1


def conflict_summary(node: ResolvedNode) -> List[Dict[str, Any]]:
    """CONFLICT and ERROR nodes, de-duplicated by g:a:v and message."""
    unique: Dict[str, Dict[str, Any]] = {}
    for item in node.walk():
        if item.status not in (NodeStatus.CONFLICT, NodeStatus.ERROR):
            continue
        message = item.message or "Unspecified conflict"
        key = f"{item.coordinate.key}:{item.coordinate.version}:{message}"
        unique.setdefault(key, {
            "groupId": item.coordinate.group,
            "artifactId": item.coordinate.artifact,
            "version": item.coordinate.version,
            "conflictMessage": message,
            "resolutionStatus": item.status.value,
        })
    return list(unique.values())


def render_tree(node: ResolvedNode) -> str:
    """Indented text view in the style of ``mvn dependency:tree``."""
    lines: List[str] = []

    def _label(n: ResolvedNode) -> str:
        text = f"{n.coordinate.group}:{n.coordinate.artifact}:{n.extension}:{n.coordinate.version}:{n.scope}"
        if n.status != NodeStatus.RESOLVED:
            text += f" ({n.status.value.lower()}"
            text += f"; {n.message})" if n.message else ")"
        elif n.message:
            text += f" ({n.message})"
        return text

    def _walk(n: ResolvedNode, prefix: str) -> None:
        for i, child in enumerate(n.children):
            is_last = i == len(n.children) - 1
            branch = "\\- " if is_last else "+- "
            lines.append(prefix + branch + _label(child))
            _walk(child, prefix + ("   " if is_last else "|  "))

    lines.append(_label(node))
    _walk(node, "")
    return "\n".join(lines)


def license_to_dict(lic: LicenseInfo) -> Dict[str, Any]:
    return {"name": lic.name, "url": lic.url}


def search_result_to_dict(result: SearchResult) -> Dict[str, Any]:
    return {
        "query": result.query,
        "totalResults": result.total,
        "page": result.page,
        "pageSize": result.page_size,
        "items": [
            {
                "groupId": hit.group,
                "artifactId": hit.artifact,
                "latestVersion": hit.latest_version,
                "packaging": hit.packaging,
                "description": hit.description,
                "timestamp": hit.timestamp,
                "versionCount": hit.version_count,
            }
            for hit in result.hits
        ],
    }


def artifact_info_to_dict(info: ArtifactInfo) -> Dict[str, Any]:
    """Artifact overview; each version carries an ``isRecommended`` flag."""
    return {
        "groupId": info.group,
        "artifactId": info.artifact,
        "latestVersion": info.latest_version,
        "latestReleaseVersion": info.recommended_version,
        "packaging": info.packaging,
        "versionCount": len(info.versions),
        "versions": [
            {
                "version": v.version,
                "packaging": v.packaging,
                "timestamp": v.timestamp,
                "repository": v.repository,
                "isRelease": v.is_release,
                "isRecommended": v.version == info.recommended_version,
            }
            for v in info.versions
        ],
        "description": info.description,
        "url": info.url,
        "licenses": [license_to_dict(lic) for lic in info.licenses],
        "lastUpdated": info.last_updated,
    }


def artifact_detail_to_dict(detail: ArtifactDetail) -> Dict[str, Any]:
    return {
        "groupId": detail.group,
        "artifactId": detail.artifact,
        "version": detail.version,
        "packaging": detail.packaging,
        "description": detail.description,
        "url": detail.url,
        "name": detail.name,
        "licenses": [license_to_dict(lic) for lic in detail.licenses],
        "dependencySnippets": dict(detail.snippets),
        "dependencyCount": detail.dependency_count,
        "timestamp": detail.timestamp,
    }
