"""Tests for OSV response parsing and the feed client."""

from unittest.mock import patch

import pytest

from security.osv import OsvClient, cvss_to_severity, parse_severity_string, parse_vulnerability
from versioning.models import Severity

LOG4SHELL = {
    "id": "GHSA-jfh8-c2jp-5v3q",
    "summary": "Remote code injection in Log4j",
    "details": "JNDI lookups ...",
    "aliases": ["CVE-2021-44228"],
    "published": "2021-12-10T00:00:00Z",
    "modified": "2024-01-01T00:00:00Z",
    "severity": [{"type": "CVSS_V3", "score": "CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:C/C:H/I:H/A:H"}],
    "database_specific": {"severity": "CRITICAL", "cwe_ids": ["CWE-502", "CWE-917"]},
    "affected": [{
        "package": {"ecosystem": "Maven", "name": "org.apache.logging.log4j:log4j-core"},
        "ranges": [{"type": "ECOSYSTEM", "events": [{"introduced": "2.0-beta9"}, {"fixed": "2.15.0"}]}],
    }],
    "references": [{"type": "ADVISORY", "url": "https://nvd.nist.gov/vuln/detail/CVE-2021-44228"}],
}


@pytest.mark.parametrize("score,expected", [
    (9.8, Severity.CRITICAL), (9.0, Severity.CRITICAL), (7.5, Severity.HIGH),
    (4.0, Severity.MEDIUM), (3.9, Severity.LOW), (None, Severity.UNKNOWN),
])
def test_cvss_bands(score, expected):
    assert cvss_to_severity(score) == expected


def test_moderate_maps_to_medium():
    assert parse_severity_string("moderate") == Severity.MEDIUM
    assert parse_severity_string(None) == Severity.UNKNOWN


def test_vector_only_severity_falls_back_to_database_label():
    advisory = parse_vulnerability(LOG4SHELL)

    assert advisory.severity == Severity.CRITICAL
    assert advisory.cvss_score is None
    assert advisory.cvss_vector.startswith("CVSS:3.1/")
    assert advisory.aliases == ("GHSA-jfh8-c2jp-5v3q", "CVE-2021-44228")
    assert advisory.cwe_ids == ("CWE-502", "CWE-917")
    assert advisory.fixed_version == "2.15.0"
    assert advisory.reference_url == "https://nvd.nist.gov/vuln/detail/CVE-2021-44228"


def test_numeric_score_is_banded():
    advisory = parse_vulnerability({"id": "X-1", "severity": [{"type": "CVSS_V3", "score": "7.1"}]})

    assert advisory.severity == Severity.HIGH
    assert advisory.cvss_score == 7.1
    assert advisory.summary == "X-1"
    assert advisory.reference_url == "https://osv.dev/vulnerability/X-1"
    assert advisory.fixed_version is None


@patch("security.osv.post_json")
def test_query_sorts_most_severe_first(mock_post):
    mock_post.return_value = (200, {}, {"vulns": [
        {"id": "LOW-1", "database_specific": {"severity": "LOW"}},
        LOG4SHELL,
    ]})

    advisories = OsvClient().query("Maven", "org.apache.logging.log4j:log4j-core", "2.14.1")

    assert [a.id for a in advisories] == ["GHSA-jfh8-c2jp-5v3q", "LOW-1"]
    payload = mock_post.call_args[0][1]
    assert payload == {
        "package": {"name": "org.apache.logging.log4j:log4j-core", "ecosystem": "Maven"},
        "version": "2.14.1",
    }


@patch("security.osv.post_json")
def test_query_without_vulns_is_empty(mock_post):
    mock_post.return_value = (200, {}, {})
    assert OsvClient().query("Maven", "g:a", "1") == []


@patch("security.osv.post_json")
def test_query_unavailable_returns_none(mock_post):
    mock_post.return_value = (0, {}, None)
    assert OsvClient().query("Maven", "g:a", "1") is None
