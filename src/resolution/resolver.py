"""Dependency graph resolver: transitive expansion with nearest-wins mediation.

Expansion works on an arena of slots addressed by index. Nodes are mediated
in nearest-first order (depth, then declaration index), which makes the first
occurrence of a ``group:artifact:extension`` identity the winner: it is the
shallowest and, among equally shallow ones, the first declared. Only winners
are expanded, so cyclic metadata terminates in a leaf and every identity is
fetched at most once per call. Metadata for one depth level may be fetched
concurrently; results are consumed by index so completion order never
affects the tree.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from constants import Constants, Scopes
from common.logging_utils import extra_context, is_debug_enabled, Timer
from resolution.models import (
    NON_RUNTIME_SCOPES,
    ArtifactMetadata,
    Coordinate,
    DependencyDeclaration,
    Exclusion,
    NodeStatus,
    ResolvedNode,
    error_node,
    parse_coordinate,
)
from resolution.repositories import Repository, build_repositories

logger = logging.getLogger(__name__)

RootSpec = Union[str, Coordinate, Sequence[DependencyDeclaration]]

_NOT_FOLLOWED_TRANSITIVELY = frozenset({
    Scopes.TEST.value, Scopes.PROVIDED.value, Scopes.SYSTEM.value, Scopes.IMPORT.value,
})


@dataclass
class _Slot:
    """Mutable arena entry; frozen into a ResolvedNode once mediation is done."""
    coordinate: Coordinate
    scope: str
    depth: int
    optional: bool = False
    floating: bool = False
    exclusions: Tuple[Exclusion, ...] = ()
    status: NodeStatus = NodeStatus.RESOLVED
    message: Optional[str] = None
    children: List[int] = field(default_factory=list)


def derive_scope(parent_scope: str, child_scope: str) -> str:
    """Scope a transitive dependency ends up with under its parent's scope."""
    if child_scope not in (Scopes.COMPILE.value, Scopes.RUNTIME.value):
        return child_scope
    if parent_scope in (Scopes.TEST.value, Scopes.PROVIDED.value):
        return parent_scope
    if parent_scope == Scopes.RUNTIME.value:
        return Scopes.RUNTIME.value
    return child_scope


def coerce_repositories(repositories) -> Tuple[Repository, ...]:
    """Accept validated Repository objects or raw URLs (validated here)."""
    if repositories is None:
        return build_repositories()
    items = list(repositories)
    if items and all(isinstance(r, Repository) for r in items):
        return tuple(items)
    return build_repositories(items)


class DependencyGraphResolver:
    """Expands coordinates or declarations into a conflict-annotated tree.

    Args:
        client: Metadata-fetch collaborator exposing
            ``fetch_metadata(coordinate, repositories) -> ArtifactMetadata | None``.
        max_workers: Threads used to fetch one depth level; 1 means sequential.
    """

    def __init__(self, client, max_workers: Optional[int] = None):
        self._client = client
        self._max_workers = max(1, max_workers or Constants.RESOLVE_MAX_WORKERS)

    def resolve(
        self,
        root: RootSpec,
        repositories=None,
        *,
        root_coordinate: Optional[Coordinate] = None,
    ) -> ResolvedNode:
        """Resolve a root coordinate, or a list of declarations under a project root.

        Raises:
            InvalidRepositoryError: before any fetch, when a repository is unacceptable.

        Returns:
            The resolved tree; an ERROR placeholder when ``root`` itself is malformed.
        """
        repos = coerce_repositories(repositories)

        if isinstance(root, str):
            try:
                root = parse_coordinate(root)
            except ValueError as exc:
                logger.error("Cannot resolve %r: %s", root, exc)
                return error_node(str(exc))
        if root is None:
            return error_node("No root coordinate or dependency list given")

        with Timer() as t:
            if isinstance(root, Coordinate):
                arena = [_Slot(coordinate=root, scope=Constants.DEFAULT_SCOPE, depth=0)]
                winners: Dict[str, int] = {root.identity: 0}
                frontier = [0]
            else:
                declarations = list(root)
                if not all(isinstance(d, DependencyDeclaration) for d in declarations):
                    return error_node("Dependency list contains entries that are not declarations")
                project = root_coordinate or Coordinate("project", "project", "0", "pom")
                arena = [_Slot(coordinate=project, scope=Constants.DEFAULT_SCOPE, depth=0)]
                winners = {project.identity: 0}
                frontier = self._attach(arena, winners, 0, declarations, transitive=False)

            while frontier:
                fetched = self._fetch_level([arena[i] for i in frontier], repos)
                next_frontier: List[int] = []
                for index, metadata in zip(frontier, fetched):
                    slot = arena[index]
                    if metadata is None:
                        slot.status = NodeStatus.MISSING
                        slot.message = (
                            f"Unable to read metadata for {slot.coordinate} "
                            f"from {len(repos)} repositor{'y' if len(repos) == 1 else 'ies'}"
                        )
                        continue
                    if slot.floating:
                        slot.message = (
                            f"Version not declared; {Constants.LATEST_VERSION} read as "
                            f"{metadata.resolved_version} at request time"
                        )
                    next_frontier.extend(
                        self._attach(arena, winners, index, metadata.dependencies, transitive=True)
                    )
                frontier = next_frontier

            tree = self._freeze(arena, 0)

        conflicts = sum(1 for s in arena if s.status == NodeStatus.CONFLICT)
        logger.info(
            "Resolved %s: %d nodes, %d conflicts in %d ms",
            arena[0].coordinate, len(arena), conflicts, t.duration_ms(),
        )
        return tree

    def _attach(
        self,
        arena: List[_Slot],
        winners: Dict[str, int],
        parent_index: int,
        declarations: Sequence[DependencyDeclaration],
        transitive: bool,
    ) -> List[int]:
        """Add children of ``parent_index`` in declaration order; return the winners."""
        parent = arena[parent_index]
        accepted: List[int] = []
        for decl in declarations:
            if transitive and (decl.scope in _NOT_FOLLOWED_TRANSITIVELY or decl.optional):
                continue
            if any(ex.matches(decl.coordinate) for ex in parent.exclusions):
                if is_debug_enabled(logger):
                    logger.debug("Dependency excluded", extra=extra_context(
                        event="decision", component="resolver", action="exclude",
                        target=decl.coordinate.key, outcome="excluded"
                    ))
                continue

            scope = derive_scope(parent.scope, decl.scope) if transitive else decl.scope
            slot = _Slot(
                coordinate=decl.coordinate,
                scope=scope,
                depth=parent.depth + 1,
                optional=decl.optional,
                floating=decl.floating,
                exclusions=parent.exclusions + decl.exclusions,
            )

            identity = decl.coordinate.identity
            winner_index = winners.get(identity)
            if winner_index is not None:
                winner = arena[winner_index]
                if winner.coordinate.version == decl.coordinate.version:
                    # Same version already in the tree; the winner carries the subtree.
                    continue
                slot.status = NodeStatus.CONFLICT
                slot.message = f"Conflict with version {winner.coordinate.version}"
                arena.append(slot)
                parent.children.append(len(arena) - 1)
                continue

            if slot.optional and slot.scope in NON_RUNTIME_SCOPES:
                slot.status = NodeStatus.OPTIONAL
            arena.append(slot)
            index = len(arena) - 1
            winners[identity] = index
            parent.children.append(index)
            accepted.append(index)
        return accepted

    def _fetch_one(self, slot: _Slot, repositories: Tuple[Repository, ...]) -> Optional[ArtifactMetadata]:
        try:
            return self._client.fetch_metadata(slot.coordinate, repositories)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.warning("Metadata fetch failed for %s: %s", slot.coordinate, exc)
            return None

    def _fetch_level(
        self,
        slots: List[_Slot],
        repositories: Tuple[Repository, ...],
    ) -> List[Optional[ArtifactMetadata]]:
        """Fetch metadata for one level; result order matches ``slots``."""
        if self._max_workers == 1 or len(slots) < 2:
            return [self._fetch_one(s, repositories) for s in slots]
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(slots))) as pool:
            return list(pool.map(lambda s: self._fetch_one(s, repositories), slots))

    def _freeze(self, arena: List[_Slot], index: int) -> ResolvedNode:
        slot = arena[index]
        return ResolvedNode(
            coordinate=slot.coordinate,
            scope=slot.scope,
            status=slot.status,
            message=slot.message,
            children=tuple(self._freeze(arena, child) for child in slot.children),
            floating=slot.floating,
        )
