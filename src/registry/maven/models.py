"""Data models for artifact search hits and artifact/version detail pages."""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from versioning.models import VersionRecord


@dataclass(frozen=True)
class LicenseInfo:
    name: str = "Unknown"
    url: str = ""


@dataclass(frozen=True)
class PomDetails:
    """Descriptive fields of one published POM."""
    name: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    packaging: Optional[str] = None
    licenses: Tuple[LicenseInfo, ...] = ()


@dataclass(frozen=True)
class SearchHit:
    """Lightweight summary of one artifact returned by a search."""
    group: str
    artifact: str
    latest_version: Optional[str] = None
    packaging: str = "jar"
    description: Optional[str] = None
    timestamp: int = 0
    version_count: int = 0


@dataclass(frozen=True)
class SearchResult:
    query: str
    total: int
    page: int
    page_size: int
    hits: Tuple[SearchHit, ...] = ()


@dataclass(frozen=True)
class ArtifactInfo:
    """Summary of a group:artifact with every known version, newest first.

    ``recommended_version`` is the newest release, or the newest version when
    nothing has been released.
    """
    group: str
    artifact: str
    latest_version: Optional[str]
    recommended_version: Optional[str]
    packaging: str
    versions: Tuple[VersionRecord, ...]
    description: Optional[str] = None
    url: Optional[str] = None
    licenses: Tuple[LicenseInfo, ...] = ()
    last_updated: int = 0


@dataclass(frozen=True)
class ArtifactDetail:
    """One version of an artifact with ready-to-paste dependency snippets."""
    group: str
    artifact: str
    version: str
    packaging: str
    name: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    licenses: Tuple[LicenseInfo, ...] = ()
    snippets: Dict[str, str] = field(default_factory=dict)
    dependency_count: int = 0
    timestamp: int = 0
