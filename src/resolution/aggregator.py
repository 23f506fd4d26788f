"""Multi-module aggregation of a single manifest.

A manifest with ``<modules>`` only describes its children by name; their own
manifests are not available, so each module is represented by a LOCAL
placeholder next to the parent's resolved dependencies.
"""
from __future__ import annotations

import logging
from dataclasses import replace

from constants import Constants
from resolution.models import (
    Coordinate,
    ModuleDescriptor,
    MultiModuleResult,
    NodeStatus,
    ProjectModel,
    ResolvedNode,
)
from resolution.resolver import DependencyGraphResolver, coerce_repositories

logger = logging.getLogger(__name__)


def _module_artifact(module_name: str) -> str:
    """Artifact id a module path most likely publishes under."""
    return module_name.rstrip("/").rsplit("/", 1)[-1]


def copy_tree(node: ResolvedNode) -> ResolvedNode:
    """Node-for-node copy, so two trees never share a node."""
    return replace(node, children=tuple(copy_tree(child) for child in node.children))


def module_placeholder(model: ProjectModel, module_name: str) -> ResolvedNode:
    coordinate = Coordinate(
        model.coordinate.group,
        _module_artifact(module_name),
        model.coordinate.version,
        Constants.DEFAULT_EXTENSION,
    )
    return ResolvedNode(
        coordinate=coordinate,
        scope=Constants.DEFAULT_SCOPE,
        status=NodeStatus.LOCAL,
        message=Constants.MODULE_PLACEHOLDER_MESSAGE,
    )


class MultiModuleAggregator:
    """Combines a project's own tree with placeholders for its declared modules."""

    def __init__(self, resolver: DependencyGraphResolver):
        self._resolver = resolver

    def aggregate(self, model: ProjectModel, repositories=None) -> MultiModuleResult:
        """Resolve ``model`` and attach one LOCAL node per declared module.

        Raises:
            InvalidRepositoryError: before any fetch, when a repository is unacceptable.
        """
        repos = coerce_repositories(repositories)
        own_tree = self._resolver.resolve(list(model.dependencies), repos, root_coordinate=model.coordinate)

        if not model.modules:
            module = ModuleDescriptor(
                module_name=model.coordinate.artifact,
                coordinate=model.coordinate,
                packaging=model.packaging,
                tree=copy_tree(own_tree),
            )
            return MultiModuleResult(
                parent_coordinate=model.coordinate,
                is_multi_module=False,
                modules=(module,),
                merged_tree=own_tree,
            )

        descriptors = []
        placeholders = []
        for name in model.modules:
            node = module_placeholder(model, name)
            placeholders.append(module_placeholder(model, name))
            descriptors.append(ModuleDescriptor(
                module_name=name,
                coordinate=node.coordinate,
                packaging=Constants.DEFAULT_EXTENSION,
                tree=node,
            ))

        merged = ResolvedNode(
            coordinate=model.coordinate,
            scope=Constants.DEFAULT_SCOPE,
            status=NodeStatus.RESOLVED,
            children=own_tree.children + tuple(placeholders),
        )
        logger.info(
            "Aggregated %s: %d direct dependencies, %d modules",
            model.coordinate, len(own_tree.children), len(placeholders),
        )
        return MultiModuleResult(
            parent_coordinate=model.coordinate,
            is_multi_module=True,
            modules=tuple(descriptors),
            merged_tree=merged,
        )
