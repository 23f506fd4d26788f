"""Data models for version listings, advisories and safety assessments."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class Severity(Enum):
    """Coarse advisory severity bands, most severe first."""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"

    @property
    def rank(self) -> int:
        """Lower rank = more severe."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
    Severity.UNKNOWN: 4,
}


class StabilityGrade(Enum):
    """Maturity classification derived from naming and age."""
    STABLE = "STABLE"
    RECENT = "RECENT"
    PRE_RELEASE = "PRE_RELEASE"
    OUTDATED = "OUTDATED"
    UNKNOWN = "UNKNOWN"


class SafetyIndicator(Enum):
    """Traffic-light verdict fusing vulnerabilities and stability."""
    SAFE = "SAFE"
    CAUTION = "CAUTION"
    WARNING = "WARNING"
    DANGER = "DANGER"


@dataclass(frozen=True)
class VersionRecord:
    """One published version; ``timestamp`` is epoch millis, 0 when unknown."""
    version: str
    timestamp: int = 0
    is_release: bool = True
    repository: str = "central"
    packaging: str = "jar"


@dataclass(frozen=True)
class Advisory:
    """A single known vulnerability affecting a package version."""
    id: str
    severity: Severity = Severity.UNKNOWN
    summary: Optional[str] = None
    details: Optional[str] = None
    cvss_score: Optional[float] = None
    cvss_vector: Optional[str] = None
    cwe_ids: Tuple[str, ...] = ()
    aliases: Tuple[str, ...] = ()
    published: Optional[str] = None
    modified: Optional[str] = None
    fixed_version: Optional[str] = None
    reference_url: Optional[str] = None


@dataclass(frozen=True)
class VulnerabilityReport:
    """Per-severity counts for one group:artifact:version."""
    group: str
    artifact: str
    version: str
    advisories: Tuple[Advisory, ...] = ()
    counts: Dict[Severity, int] = field(default_factory=dict)
    highest_severity: Optional[Severity] = None
    available: bool = True

    DISCLAIMER = (
        "Vulnerability data is sourced from OSV.dev and may be incomplete. "
        "Absence of advisories does not guarantee a version is free of vulnerabilities."
    )

    @property
    def total(self) -> int:
        return len(self.advisories)

    def count(self, severity: Severity) -> int:
        return self.counts.get(severity, 0)


@dataclass(frozen=True)
class VersionAssessment:
    """Security and stability verdict for a single version."""
    version: str
    is_release: bool
    timestamp: int
    vulnerability_count: int
    highest_severity: Optional[Severity]
    stability_grade: StabilityGrade
    stability_score: float
    safety_indicator: SafetyIndicator
    safety_label: str


@dataclass(frozen=True)
class SafetyBadge:
    """Vulnerability-only verdict for one exact version."""
    group: str
    artifact: str
    version: str
    indicator: SafetyIndicator
    label: str
    vulnerability_count: int
    highest_severity: Optional[Severity]


@dataclass(frozen=True)
class VersionIntelligence:
    """Assessments for the newest versions of an artifact plus a pick."""
    group: str
    artifact: str
    recommended: Optional[VersionAssessment]
    versions: List[VersionAssessment]
