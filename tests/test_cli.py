"""CLI tests with in-memory services (no network)."""

import json
import logging
from unittest.mock import MagicMock

import pytest

import gavlens
from args import parse_args
from constants import Constants, ExitCodes
from conftest import FakeMetadataClient
from errors import RegistryUnavailableError
from registry.maven.catalog import ArtifactCatalog
from registry.maven.models import PomDetails, SearchHit, SearchResult
from resolution.resolver import DependencyGraphResolver
from resolution.service import ResolutionService
from versioning.intelligence import VersionIntelligenceEngine
from versioning.models import Advisory, Severity, VersionRecord

POM = """<project>
  <groupId>com.example</groupId>
  <artifactId>demo</artifactId>
  <version>1.0</version>
  <modules><module>core</module></modules>
  <dependencies>
    <dependency><groupId>g</groupId><artifactId>a</artifactId><version>1</version></dependency>
  </dependencies>
</project>"""


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv(Constants.CONFIG_ENV, raising=False)
    monkeypatch.delenv(Constants.LOG_LEVEL_ENV, raising=False)
    monkeypatch.setattr(Constants, "RESOLVE_MAX_WORKERS", Constants.RESOLVE_MAX_WORKERS)
    monkeypatch.setattr(Constants, "INTELLIGENCE_DEFAULT_VERSIONS", Constants.INTELLIGENCE_DEFAULT_VERSIONS)
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)
    for handler in list(root.handlers):
        if getattr(handler, "_gavlens", False):
            root.removeHandler(handler)


@pytest.fixture
def services(monkeypatch):
    client = FakeMetadataClient({"g:a:1": ["g:b:1"], "g:b:1": []})
    metadata = MagicMock()
    metadata.list_versions.return_value = [VersionRecord("2.0", 0, True), VersionRecord("1.0", 0, True)]
    feed = MagicMock()
    feed.query.side_effect = lambda eco, name, version: [Advisory("CVE-1", Severity.HIGH)] if version == "1.0" else []
    resolution = ResolutionService(DependencyGraphResolver(client))
    engine = VersionIntelligenceEngine(feed, metadata_client=metadata)
    catalog = ArtifactCatalog(metadata, resolution)
    monkeypatch.setattr(gavlens, "build_services", lambda: (resolution, engine, catalog))
    return {"client": client, "metadata": metadata, "feed": feed}


def test_parse_args_defaults():
    args = parse_args(["analyze", "pom.xml"])
    assert args.COMMAND == "analyze"
    assert args.MULTI_MODULE is True
    assert args.REPOSITORIES == []
    assert parse_args(["analyze", "pom.xml", "--no-multi-module"]).MULTI_MODULE is False


def test_resolve_prints_json(services, capsys):
    assert gavlens.main(["resolve", "g:a:1"]) == ExitCodes.SUCCESS.value

    data = json.loads(capsys.readouterr().out)
    assert data["artifactId"] == "a"
    assert data["children"][0]["artifactId"] == "b"
    assert data["totalDependencies"] == 1
    assert data["conflicts"] == []


def test_resolve_malformed_coordinate(services):
    assert gavlens.main(["resolve", "g:a"]) == ExitCodes.INPUT_ERROR.value


def test_analyze_writes_text_tree_to_file(services, tmp_path):
    manifest = tmp_path / "pom.xml"
    manifest.write_text(POM, encoding="utf-8")
    out = tmp_path / "tree.txt"

    code = gavlens.main(["analyze", str(manifest), "-f", "text", "-o", str(out)])

    assert code == ExitCodes.SUCCESS.value
    text = out.read_text(encoding="utf-8")
    assert text.startswith("com.example:demo:pom:1.0:compile")
    assert "com.example:core:jar:1.0:compile (local;" in text


def test_analyze_rejects_insecure_repository(services, tmp_path):
    manifest = tmp_path / "pom.xml"
    manifest.write_text(POM, encoding="utf-8")

    code = gavlens.main(["analyze", str(manifest), "--repo", "http://plain.example.com/"])

    assert code == ExitCodes.INPUT_ERROR.value
    assert services["client"].calls == []


def test_analyze_missing_file(services, tmp_path):
    assert gavlens.main(["analyze", str(tmp_path / "nope.xml")]) == ExitCodes.FILE_ERROR.value


def test_intelligence_json(services, capsys):
    assert gavlens.main(["intelligence", "g:a", "--versions", "5"]) == ExitCodes.SUCCESS.value

    data = json.loads(capsys.readouterr().out)
    assert [v["version"] for v in data["versions"]] == ["2.0", "1.0"]
    assert data["versions"][1]["safetyIndicator"] == "DANGER"
    assert data["recommendedVersion"]["version"] == "2.0"


def test_intelligence_not_found(services):
    services["metadata"].list_versions.return_value = []
    assert gavlens.main(["intelligence", "g:missing"]) == ExitCodes.NOT_FOUND.value


def test_vulns_feed_unavailable(services, capsys):
    services["feed"].query.side_effect = None
    services["feed"].query.return_value = None

    assert gavlens.main(["vulns", "g:a:1.0"]) == ExitCodes.CONNECTION_ERROR.value
    data = json.loads(capsys.readouterr().out)
    assert data["totalVulnerabilities"] == 0
    assert data["feedAvailable"] is False


def test_badge_text(services, capsys):
    assert gavlens.main(["badge", "g:a:1.0", "-f", "text"]) == ExitCodes.SUCCESS.value
    assert "DANGER" in capsys.readouterr().out


def test_config_file_applies_before_cli_overrides(services, tmp_path, capsys):
    config = tmp_path / "custom.yml"
    config.write_text("gavlens:\n  intelligence_default_versions: 1\n", encoding="utf-8")

    gavlens.main(["-c", str(config), "intelligence", "g:a"])
    assert len(json.loads(capsys.readouterr().out)["versions"]) == 1

    gavlens.main(["-c", str(config), "intelligence", "g:a", "--versions", "2"])
    assert len(json.loads(capsys.readouterr().out)["versions"]) == 2


def test_resolve_keeps_declared_extension(services, capsys):
    assert gavlens.main(["resolve", "g:a:pom:1"]) == ExitCodes.SUCCESS.value

    data = json.loads(capsys.readouterr().out)
    assert data["type"] == "pom"


def test_log_level_falls_back_to_environment(services, monkeypatch):
    assert parse_args(["badge", "g:a:1.0"]).LOG_LEVEL is None
    monkeypatch.setenv(Constants.LOG_LEVEL_ENV, "DEBUG")

    gavlens.main(["badge", "g:a:1.0"])

    assert logging.getLogger().level == logging.DEBUG


def test_log_level_flag_wins_over_environment(services, monkeypatch):
    monkeypatch.setenv(Constants.LOG_LEVEL_ENV, "DEBUG")

    gavlens.main(["--loglevel", "ERROR", "badge", "g:a:1.0"])

    assert logging.getLogger().level == logging.ERROR


def test_search_json(services, capsys):
    services["metadata"].search.return_value = SearchResult(
        "guava", 1, 0, 20, (SearchHit("com.google.guava", "guava", "33.0.0-jre", version_count=120),)
    )

    assert gavlens.main(["search", "guava", "--size", "20"]) == ExitCodes.SUCCESS.value

    data = json.loads(capsys.readouterr().out)
    assert data["items"][0]["artifactId"] == "guava"
    services["metadata"].search.assert_called_once_with("guava", 0, 20)


def test_search_unavailable(services):
    services["metadata"].search.side_effect = RegistryUnavailableError("HTTP 503")

    assert gavlens.main(["search", "guava"]) == ExitCodes.CONNECTION_ERROR.value


def test_info_text_marks_recommended(services, capsys):
    services["metadata"].pom_details.return_value = PomDetails(description="A library.")

    assert gavlens.main(["info", "g:a", "-f", "text"]) == ExitCodes.SUCCESS.value

    out = capsys.readouterr().out
    assert "latest: 2.0  recommended: 2.0" in out
    assert "* 2.0" in out
    assert "A library." in out


def test_detail_json_and_single_snippet(services, capsys):
    services["metadata"].pom_details.return_value = PomDetails(name="A")
    services["metadata"].version_timestamp.return_value = 0

    assert gavlens.main(["detail", "g:a:1"]) == ExitCodes.SUCCESS.value
    data = json.loads(capsys.readouterr().out)
    assert data["dependencyCount"] == 1
    assert data["dependencySnippets"]["gradle"] == "implementation 'g:a:1'"

    assert gavlens.main(["detail", "g:a:1", "--snippet", "sbt"]) == ExitCodes.SUCCESS.value
    assert capsys.readouterr().out == 'libraryDependencies += "g" % "a" % "1"\n'


def test_detail_not_found(services):
    services["metadata"].pom_details.return_value = None

    assert gavlens.main(["detail", "g:a:9"]) == ExitCodes.NOT_FOUND.value
