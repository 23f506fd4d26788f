"""Data models for manifests, dependency declarations and resolved trees."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple

from constants import Constants, Scopes


class NodeStatus(Enum):
    """Resolution status attached to every node of a tree."""
    RESOLVED = "RESOLVED"
    CONFLICT = "CONFLICT"
    OPTIONAL = "OPTIONAL"
    MISSING = "MISSING"
    LOCAL = "LOCAL"
    ERROR = "ERROR"


# Scopes that never reach a runtime classpath.
NON_RUNTIME_SCOPES = frozenset({Scopes.TEST.value, Scopes.PROVIDED.value, Scopes.SYSTEM.value})


@dataclass(frozen=True)
class Coordinate:
    """Maven coordinate; ``identity`` is the mediation key (version excluded)."""
    group: str
    artifact: str
    version: str
    extension: str = Constants.DEFAULT_EXTENSION

    @property
    def key(self) -> str:
        """group:artifact pair."""
        return f"{self.group}:{self.artifact}"

    @property
    def identity(self) -> str:
        """group:artifact:extension, the key nearest-wins mediates on."""
        return f"{self.group}:{self.artifact}:{self.extension}"

    def with_version(self, version: str) -> "Coordinate":
        return Coordinate(self.group, self.artifact, version, self.extension)

    def __str__(self) -> str:
        if self.extension == Constants.DEFAULT_EXTENSION:
            return f"{self.group}:{self.artifact}:{self.version}"
        return f"{self.group}:{self.artifact}:{self.extension}:{self.version}"


def parse_coordinate(text: str) -> Coordinate:
    """Parse ``g:a:v`` or ``g:a:ext:v``.

    Raises:
        ValueError: when the text has the wrong number of parts or an empty one.
    """
    if not isinstance(text, str):
        raise ValueError(f"Coordinate must be a string, got {type(text).__name__}")
    parts = [p.strip() for p in text.strip().split(":")]
    if len(parts) == 3:
        group, artifact, version = parts
        extension = Constants.DEFAULT_EXTENSION
    elif len(parts) == 4:
        group, artifact, extension, version = parts
    else:
        raise ValueError(
            f"Bad artifact coordinates {text!r}, expected format is "
            "<groupId>:<artifactId>[:<extension>]:<version>"
        )
    if not all((group, artifact, extension, version)):
        raise ValueError(f"Bad artifact coordinates {text!r}, empty component")
    return Coordinate(group, artifact, version, extension)


@dataclass(frozen=True)
class Exclusion:
    """Exclusion pattern on a declaration; ``*`` matches any value."""
    group: str
    artifact: str

    def matches(self, coordinate: Coordinate) -> bool:
        return (self.group in ("*", coordinate.group)
                and self.artifact in ("*", coordinate.artifact))


@dataclass(frozen=True)
class DependencyDeclaration:
    """A declared dependency, in manifest declaration order.

    ``floating`` marks declarations whose version was not stated and was
    assigned the LATEST sentinel; such results are not reproducible over time.
    """
    coordinate: Coordinate
    scope: str = Constants.DEFAULT_SCOPE
    optional: bool = False
    exclusions: Tuple[Exclusion, ...] = ()
    floating: bool = False


@dataclass(frozen=True)
class ProjectModel:
    """Immutable view of one parsed manifest."""
    coordinate: Coordinate
    parent: Optional[Coordinate] = None
    packaging: str = Constants.DEFAULT_EXTENSION
    properties: Mapping[str, str] = field(default_factory=dict)
    dependencies: Tuple[DependencyDeclaration, ...] = ()
    managed_dependencies: Tuple[DependencyDeclaration, ...] = ()
    modules: Tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.properties, MappingProxyType):
            object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))

    @property
    def is_multi_module(self) -> bool:
        return bool(self.modules)


@dataclass(frozen=True)
class ArtifactMetadata:
    """What the metadata-fetch collaborator knows about one artifact.

    ``resolved_version`` differs from ``coordinate.version`` only for floating
    requests, where it is the concrete version whose POM was read.
    """
    coordinate: Coordinate
    parent: Optional[Coordinate] = None
    properties: Mapping[str, str] = field(default_factory=dict)
    dependencies: Tuple[DependencyDeclaration, ...] = ()
    resolved_version: Optional[str] = None


@dataclass(frozen=True)
class ResolvedNode:
    """One node of a resolved dependency tree; children are fixed at build."""
    coordinate: Coordinate
    scope: str = Constants.DEFAULT_SCOPE
    status: NodeStatus = NodeStatus.RESOLVED
    message: Optional[str] = None
    children: Tuple["ResolvedNode", ...] = ()
    floating: bool = False

    @property
    def extension(self) -> str:
        return self.coordinate.extension

    def walk(self) -> Iterator["ResolvedNode"]:
        """Pre-order iteration over this node and all descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


def error_node(message: str, coordinate: Optional[Coordinate] = None) -> ResolvedNode:
    """Single-node placeholder tree returned for malformed call input."""
    return ResolvedNode(
        coordinate=coordinate or Coordinate("unknown", "unknown", "0.0.0", "pom"),
        status=NodeStatus.ERROR,
        message=message,
    )


@dataclass(frozen=True)
class ModuleDescriptor:
    """A declared sub-module and the tree standing in for it."""
    module_name: str
    coordinate: Coordinate
    packaging: str
    tree: ResolvedNode


@dataclass(frozen=True)
class MultiModuleResult:
    """Aggregate of a project's own tree and its sub-module placeholders."""
    parent_coordinate: Coordinate
    is_multi_module: bool
    modules: Tuple[ModuleDescriptor, ...]
    merged_tree: ResolvedNode
