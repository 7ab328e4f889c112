# src/topology/arena.py — v1
"""Resource arena: the build graph keyed by stable logical ids.

Backed by a NetworkX DiGraph whose edges point from a dependency to its
dependent. A node may only depend on nodes that already exist when it is
added. Values that must look forward go through topology.deferred.Deferred,
and add_dependency records their edge once the target exists.
"""

from __future__ import annotations

import logging
from typing import Iterator, TypeVar

import networkx as nx

from opennext_topology.topology.resources import ResourceKind, ResourceNode

logger = logging.getLogger(__name__)

N = TypeVar("N", bound=ResourceNode)


class TopologyError(Exception):
    """Raised when the build graph would become inconsistent."""


class DuplicateResourceError(TopologyError):
    """Raised when a logical id is added twice."""


class UnknownReferenceError(TopologyError):
    """Raised when a node references a logical id not yet in the arena."""


class ResourceArena:
    """Owns every resource node; nodes are created once and never replaced."""

    def __init__(self) -> None:
        self._graph = nx.DiGraph()
        self._order: list[str] = []

    def __contains__(self, logical_id: object) -> bool:
        return logical_id in self._graph

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[ResourceNode]:
        for logical_id in self._order:
            yield self._graph.nodes[logical_id]["node"]

    @property
    def construction_order(self) -> list[str]:
        return list(self._order)

    def add(self, node: N) -> N:
        """Insert a node after checking its id and dependencies.

        Raises:
            DuplicateResourceError: logical_id already present.
            UnknownReferenceError: a dependency has not been created yet.
        """
        if node.logical_id in self._graph:
            raise DuplicateResourceError(
                f"Resource '{node.logical_id}' already exists in the arena"
            )
        missing = [dep for dep in node.depends_on if dep not in self._graph]
        if missing:
            raise UnknownReferenceError(
                f"Resource '{node.logical_id}' depends on {missing} "
                "which have not been created yet"
            )

        self._graph.add_node(node.logical_id, node=node, kind=node.kind)
        for dep in dict.fromkeys(node.depends_on):
            self._graph.add_edge(dep, node.logical_id)
        self._order.append(node.logical_id)

        logger.debug(
            "Added %s '%s' (depends on %s)",
            node.kind, node.logical_id, node.depends_on or "nothing",
        )
        return node

    def add_dependency(self, dependent: str, dependency: str) -> None:
        """Record an edge between two existing nodes after both were created.

        Used when a value on `dependent` is filled in by a later step.

        Raises:
            UnknownReferenceError: either node is not in the arena.
            TopologyError: the edge would close a cycle.
        """
        for logical_id in (dependent, dependency):
            if logical_id not in self._graph:
                raise UnknownReferenceError(f"Resource '{logical_id}' not found")
        if nx.has_path(self._graph, dependent, dependency):
            raise TopologyError(
                f"Resource '{dependent}' cannot depend on '{dependency}': "
                "the edge would create a cycle"
            )

        self._graph.add_edge(dependency, dependent)
        node = self._graph.nodes[dependent]["node"]
        if dependency not in node.depends_on:
            node.depends_on.append(dependency)
        logger.debug("Added late dependency '%s' -> '%s'", dependent, dependency)

    def get(self, logical_id: str) -> ResourceNode:
        if logical_id not in self._graph:
            raise UnknownReferenceError(f"Resource '{logical_id}' not found")
        return self._graph.nodes[logical_id]["node"]

    def find(self, logical_id: str) -> ResourceNode | None:
        if logical_id not in self._graph:
            return None
        return self._graph.nodes[logical_id]["node"]

    def nodes_of_kind(self, kind: ResourceKind) -> list[ResourceNode]:
        """Nodes of one kind, in construction order."""
        return [node for node in self if node.kind == kind]

    def dependencies_of(self, logical_id: str) -> list[str]:
        return sorted(self._graph.predecessors(logical_id))

    def dependents_of(self, logical_id: str) -> list[str]:
        return sorted(self._graph.successors(logical_id))

    def topological_order(self) -> list[str]:
        """A dependency-respecting order, tie-broken by construction order."""
        if not nx.is_directed_acyclic_graph(self._graph):
            cycle = nx.find_cycle(self._graph)
            raise TopologyError(f"Cycle detected in resource graph: {cycle}")
        position = {logical_id: i for i, logical_id in enumerate(self._order)}
        return list(
            nx.lexicographical_topological_sort(self._graph, key=position.__getitem__)
        )
