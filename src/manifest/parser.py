"""Manifest (pom.xml) model builder.

Turns manifest text into an immutable ``ProjectModel``: effective project
coordinate, property set, ordered dependency declarations and module names.
Only the data the XML yields is of interest here; no build-tool semantics
(profiles, plugins, imported BOMs) are applied.
"""
from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from constants import Constants, Scopes
from errors import InvalidModelError, OversizeInputError
from common.logging_utils import extra_context, is_debug_enabled
from resolution.models import (
    Coordinate,
    DependencyDeclaration,
    Exclusion,
    ProjectModel,
)

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


def check_manifest_size(text: Optional[str]) -> None:
    """Reject empty manifests and manifests over the size cap.

    The cap is measured in UTF-8 bytes; a manifest of exactly
    ``Constants.MAX_MANIFEST_BYTES`` is accepted.
    """
    if text is None or not text.strip():
        raise InvalidModelError("Manifest content cannot be empty")
    size = len(text.encode("utf-8"))
    if size > Constants.MAX_MANIFEST_BYTES:
        raise OversizeInputError(
            f"Manifest is {size} bytes, exceeds maximum size of "
            f"{Constants.MAX_MANIFEST_BYTES // 1024} KB"
        )


def interpolate(value: Optional[str], properties: Mapping[str, str]) -> Optional[str]:
    """Replace ``${key}`` placeholders with literal property values.

    Single pass: substituted text is not scanned again, and placeholders
    without a matching property are left verbatim.
    """
    if value is None or "${" not in value:
        return value
    return _PLACEHOLDER.sub(lambda m: properties.get(m.group(1), m.group(0)), value)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def _child(elem: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    if elem is None:
        return None
    for item in elem:
        if _local(item.tag) == name:
            return item
    return None


def _children(elem: Optional[ET.Element], name: str) -> List[ET.Element]:
    if elem is None:
        return []
    return [item for item in elem if _local(item.tag) == name]


def _text(elem: Optional[ET.Element], name: str) -> Optional[str]:
    node = _child(elem, name)
    if node is None or node.text is None:
        return None
    text = node.text.strip()
    return text or None


def _read_properties(project: ET.Element) -> Dict[str, str]:
    props: Dict[str, str] = {}
    container = _child(project, "properties")
    if container is None:
        return props
    for item in container:
        key = _local(item.tag)
        if key:
            props[key] = (item.text or "").strip()
    return props


def _read_exclusions(dep: ET.Element, properties: Mapping[str, str]) -> Tuple[Exclusion, ...]:
    exclusions = []
    for ex in _children(_child(dep, "exclusions"), "exclusion"):
        group = interpolate(_text(ex, "groupId"), properties) or "*"
        artifact = interpolate(_text(ex, "artifactId"), properties) or "*"
        exclusions.append(Exclusion(group, artifact))
    return tuple(exclusions)


def read_declarations(
    container: Optional[ET.Element],
    properties: Mapping[str, str],
) -> List[Tuple[str, str, Optional[str], str, str, bool, Tuple[Exclusion, ...]]]:
    """Read raw ``<dependency>`` entries below a ``<dependencies>`` element.

    Returns tuples of (group, artifact, version-or-None, extension, scope,
    optional, exclusions) after interpolation; entries lacking a group or
    artifact are skipped.
    """
    rows = []
    for dep in _children(_child(container, "dependencies"), "dependency"):
        group = interpolate(_text(dep, "groupId"), properties)
        artifact = interpolate(_text(dep, "artifactId"), properties)
        if not group or not artifact:
            logger.warning("Skipping dependency without groupId/artifactId")
            continue
        version = interpolate(_text(dep, "version"), properties) or None
        extension = interpolate(_text(dep, "type"), properties) or Constants.DEFAULT_EXTENSION
        scope = interpolate(_text(dep, "scope"), properties) or Constants.DEFAULT_SCOPE
        optional = (_text(dep, "optional") or "").lower() == "true"
        rows.append((group, artifact, version, extension, scope, optional,
                     _read_exclusions(dep, properties)))
    return rows


def managed_versions(rows: Iterable[tuple]) -> Dict[str, Tuple[str, Optional[str]]]:
    """Map group:artifact to (version, scope) from dependencyManagement rows."""
    managed: Dict[str, Tuple[str, Optional[str]]] = {}
    for group, artifact, version, _ext, scope, _opt, _exc in rows:
        if scope == Scopes.IMPORT.value or not version:
            continue
        managed.setdefault(f"{group}:{artifact}", (version, scope))
    return managed


def fill_version(
    group: str,
    artifact: str,
    version: Optional[str],
    parent_version: Optional[str],
    managed: Optional[Mapping[str, Tuple[str, Optional[str]]]] = None,
) -> Tuple[str, bool]:
    """Apply the missing-version rules; returns (version, floating).

    ``managed`` is only consulted for published POMs read during resolution;
    a manifest under analysis gets the parent version for the managed group
    prefix and LATEST otherwise.
    """
    if version:
        return version, False
    entry = managed.get(f"{group}:{artifact}") if managed else None
    if entry is not None:
        return entry[0], False
    if parent_version and group.startswith(Constants.MANAGED_GROUP_PREFIX):
        return parent_version, False
    return Constants.LATEST_VERSION, True


def parse_xml(text: str) -> ET.Element:
    """Parse manifest XML and return the ``<project>`` element."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise InvalidModelError(f"Failed to parse manifest XML: {exc}") from exc
    if _local(root.tag) != "project":
        raise InvalidModelError(f"Invalid manifest: root element is <{_local(root.tag)}>, expected <project>")
    return root


def parse_manifest(text: str) -> ProjectModel:
    """Build a ProjectModel from manifest text.

    Raises:
        OversizeInputError: text over the size cap.
        InvalidModelError: empty or malformed text, or missing coordinates.
    """
    check_manifest_size(text)
    project = parse_xml(text)

    explicit = _read_properties(project)
    parent_elem = _child(project, "parent")
    parent_group = interpolate(_text(parent_elem, "groupId"), explicit)
    parent_artifact = interpolate(_text(parent_elem, "artifactId"), explicit)
    parent_version = interpolate(_text(parent_elem, "version"), explicit)

    group = interpolate(_text(project, "groupId"), explicit) or parent_group
    artifact = interpolate(_text(project, "artifactId"), explicit)
    version = interpolate(_text(project, "version"), explicit) or parent_version

    missing = [name for name, value in (("groupId", group), ("artifactId", artifact), ("version", version))
               if not value]
    if missing:
        raise InvalidModelError(f"Invalid manifest: missing {', '.join(missing)}")

    properties = dict(explicit)
    properties["project.groupId"] = group
    properties["project.artifactId"] = artifact
    properties["project.version"] = version
    properties.setdefault("java.version", Constants.IMPLICIT_JAVA_VERSION)

    parent = None
    if parent_group and parent_artifact and parent_version:
        parent = Coordinate(parent_group, parent_artifact, parent_version, "pom")

    modules = tuple(m.text.strip() for m in _children(_child(project, "modules"), "module")
                    if m.text and m.text.strip())
    local_keys = {f"{group}:{name.rstrip('/').rsplit('/', 1)[-1]}" for name in modules}

    managed_rows = read_declarations(_child(project, "dependencyManagement"), properties)

    declarations = []
    for dep_group, dep_artifact, dep_version, ext, scope, optional, exclusions in read_declarations(project, properties):
        if f"{dep_group}:{dep_artifact}" in local_keys:
            if is_debug_enabled(logger):
                logger.debug("Skipping local module dependency", extra=extra_context(
                    event="decision", component="manifest", action="exclude_local_module",
                    target=f"{dep_group}:{dep_artifact}", outcome="excluded"
                ))
            continue
        resolved_version, floating = fill_version(dep_group, dep_artifact, dep_version, parent_version)
        if floating:
            logger.warning(
                "No version for %s:%s, using %s; result is not reproducible",
                dep_group, dep_artifact, Constants.LATEST_VERSION,
            )
        declarations.append(DependencyDeclaration(
            coordinate=Coordinate(dep_group, dep_artifact, resolved_version, ext),
            scope=scope,
            optional=optional,
            exclusions=exclusions,
            floating=floating,
        ))

    managed_decls = tuple(
        DependencyDeclaration(Coordinate(g, a, v, ext), scope=s, optional=o, exclusions=exc)
        for g, a, v, ext, s, o, exc in managed_rows if v and s != Scopes.IMPORT.value
    )

    model = ProjectModel(
        coordinate=Coordinate(group, artifact, version, "pom"),
        parent=parent,
        packaging=_text(project, "packaging") or Constants.DEFAULT_EXTENSION,
        properties=properties,
        dependencies=tuple(declarations),
        managed_dependencies=managed_decls,
        modules=modules,
    )
    logger.info(
        "Parsed manifest %s with %d dependencies and %d modules",
        model.coordinate, len(model.dependencies), len(model.modules),
    )
    return model
