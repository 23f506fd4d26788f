"""OSV.dev vulnerability-feed client.

API docs: https://google.github.io/osv.dev/api/
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from constants import Constants
from common.http_client import post_json
from common.logging_utils import extra_context, is_debug_enabled
from versioning.models import Advisory, Severity

logger = logging.getLogger(__name__)

_SEVERITY_NAMES = {
    "CRITICAL": Severity.CRITICAL,
    "HIGH": Severity.HIGH,
    "MODERATE": Severity.MEDIUM,
    "MEDIUM": Severity.MEDIUM,
    "LOW": Severity.LOW,
}


def cvss_to_severity(score: Optional[float]) -> Severity:
    """Band a numeric CVSS base score."""
    if score is None or score < 0:
        return Severity.UNKNOWN
    if score >= 9.0:
        return Severity.CRITICAL
    if score >= 7.0:
        return Severity.HIGH
    if score >= 4.0:
        return Severity.MEDIUM
    return Severity.LOW


def parse_severity_string(value: Optional[str]) -> Severity:
    return _SEVERITY_NAMES.get((value or "").strip().upper(), Severity.UNKNOWN)


def _numeric_score(value: Any) -> Optional[float]:
    """Numeric score if the OSV ``score`` field is a number, not a vector."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _fixed_version(vuln: Dict[str, Any], ecosystem: str) -> Optional[str]:
    """First ``fixed`` event across the affected ranges of this ecosystem."""
    for affected in vuln.get("affected") or []:
        if (affected.get("package") or {}).get("ecosystem") != ecosystem:
            continue
        for rng in affected.get("ranges") or []:
            for event in rng.get("events") or []:
                if "fixed" in event:
                    return event["fixed"]
    return None


def parse_vulnerability(vuln: Dict[str, Any], ecosystem: str = Constants.OSV_ECOSYSTEM_MAVEN) -> Advisory:
    """Convert one OSV vulnerability object into an Advisory."""
    vuln_id = vuln.get("id") or "UNKNOWN"
    aliases = [vuln_id] + [a for a in vuln.get("aliases") or [] if a != vuln_id]
    database_specific = vuln.get("database_specific") or {}

    severity = Severity.UNKNOWN
    cvss_score = None
    cvss_vector = None
    for entry in vuln.get("severity") or []:
        if entry.get("type") in ("CVSS_V3", "CVSS_V4"):
            raw = entry.get("score")
            cvss_score = _numeric_score(raw)
            if cvss_score is None:
                cvss_vector = raw
            severity = cvss_to_severity(cvss_score)
            break
    if severity == Severity.UNKNOWN:
        severity = parse_severity_string(database_specific.get("severity"))

    reference_url = None
    for ref in vuln.get("references") or []:
        if ref.get("type") in ("ADVISORY", "WEB") and ref.get("url"):
            reference_url = ref["url"]
            break

    return Advisory(
        id=vuln_id,
        severity=severity,
        summary=vuln.get("summary") or vuln_id,
        details=vuln.get("details"),
        cvss_score=cvss_score,
        cvss_vector=cvss_vector,
        cwe_ids=tuple(database_specific.get("cwe_ids") or ()),
        aliases=tuple(aliases),
        published=vuln.get("published"),
        modified=vuln.get("modified"),
        fixed_version=_fixed_version(vuln, ecosystem),
        reference_url=reference_url or f"{Constants.OSV_VULN_PAGE}{vuln_id}",
    )


class OsvClient:
    """Queries OSV.dev for advisories affecting an exact package version."""

    def __init__(self, session: Optional[requests.Session] = None, query_url: Optional[str] = None):
        self._session = session
        self._query_url = query_url or Constants.OSV_QUERY_URL

    def query(self, ecosystem: str, name: str, version: str) -> Optional[List[Advisory]]:
        """Return advisories sorted most severe first.

        Returns:
            A possibly empty list, or None when the feed could not be read.
        """
        payload = {"package": {"name": name, "ecosystem": ecosystem}, "version": version}
        status_code, _, data = post_json(self._query_url, payload, session=self._session)
        if status_code != 200 or not isinstance(data, dict):
            logger.warning("OSV query for %s@%s unavailable (HTTP %s)", name, version, status_code or "n/a")
            return None

        advisories = [parse_vulnerability(v, ecosystem) for v in data.get("vulns") or []
                      if isinstance(v, dict)]
        advisories.sort(key=lambda a: a.severity.rank)
        if is_debug_enabled(logger):
            logger.debug("OSV query complete", extra=extra_context(
                event="function_exit", component="osv", action="query",
                outcome="success", count=len(advisories), target=name
            ))
        return advisories
