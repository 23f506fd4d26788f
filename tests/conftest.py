"""Shared fixtures: an in-memory metadata client and manifest builders."""

import threading

import pytest

from resolution.models import ArtifactMetadata, Coordinate, DependencyDeclaration, Exclusion


def dep(gav, scope="compile", optional=False, exclusions=(), floating=False):
    """Build a DependencyDeclaration from ``g:a:v`` or ``g:a:ext:v``."""
    parts = gav.split(":")
    if len(parts) == 4:
        coord = Coordinate(parts[0], parts[1], parts[3], parts[2])
    else:
        coord = Coordinate(parts[0], parts[1], parts[2])
    excl = tuple(Exclusion(*e.split(":")) for e in exclusions)
    return DependencyDeclaration(coord, scope=scope, optional=optional, exclusions=excl, floating=floating)


class FakeMetadataClient:
    """Serves canned dependency lists keyed by ``g:a:v``; unknown keys are MISSING."""

    def __init__(self, graph=None, failing=(), latest=None):
        self.graph = dict(graph or {})
        self.failing = set(failing)
        self.latest = dict(latest or {})
        self.calls = []
        self._lock = threading.Lock()

    def fetch_metadata(self, coordinate, repositories):
        with self._lock:
            self.calls.append(f"{coordinate.group}:{coordinate.artifact}:{coordinate.version}")
        key = f"{coordinate.group}:{coordinate.artifact}:{coordinate.version}"
        if key in self.failing:
            raise RuntimeError(f"boom for {key}")
        concrete = coordinate.version
        if concrete == "LATEST":
            concrete = self.latest.get(f"{coordinate.group}:{coordinate.artifact}")
            if concrete is None:
                return None
            key = f"{coordinate.group}:{coordinate.artifact}:{concrete}"
        if key not in self.graph:
            return None
        return ArtifactMetadata(
            coordinate=coordinate,
            dependencies=tuple(dep(d) if isinstance(d, str) else d for d in self.graph[key]),
            resolved_version=concrete,
        )


@pytest.fixture
def fake_client():
    return FakeMetadataClient


POM_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
{body}
</project>
"""


@pytest.fixture
def pom():
    def _build(body):
        return POM_TEMPLATE.format(body=body)
    return _build
