# tests/unit/topology/test_unit_arena.py — v1
"""Tests for topology/arena.py — resource graph integrity."""

from __future__ import annotations

import pytest

from opennext_topology.topology.arena import (
    DuplicateResourceError,
    ResourceArena,
    TopologyError,
    UnknownReferenceError,
)
from opennext_topology.topology.resources import FunctionNode, ResourceNode


@pytest.fixture
def arena() -> ResourceArena:
    arena = ResourceArena()
    arena.add(ResourceNode(logical_id="AssetsBucket", kind="bucket"))
    arena.add(ResourceNode(logical_id="RevalidationQueue", kind="queue"))
    arena.add(
        FunctionNode(
            logical_id="ServerFunction",
            depends_on=["AssetsBucket", "RevalidationQueue", "AssetsBucket"],
        )
    )
    return arena


class TestAdd:
    def test_construction_order(self, arena):
        assert arena.construction_order == ["AssetsBucket", "RevalidationQueue", "ServerFunction"]
        assert len(arena) == 3
        assert "ServerFunction" in arena

    def test_rejects_duplicate(self, arena):
        with pytest.raises(DuplicateResourceError, match="AssetsBucket"):
            arena.add(ResourceNode(logical_id="AssetsBucket", kind="bucket"))

    def test_rejects_forward_reference(self, arena):
        with pytest.raises(UnknownReferenceError, match="Distribution"):
            arena.add(
                ResourceNode(logical_id="AssetDeployment0", kind="asset_deployment",
                             depends_on=["Distribution"])
            )
        assert "AssetDeployment0" not in arena

    def test_errors_share_base(self):
        assert issubclass(DuplicateResourceError, TopologyError)
        assert issubclass(UnknownReferenceError, TopologyError)


class TestQueries:
    def test_get_and_find(self, arena):
        assert arena.get("AssetsBucket").kind == "bucket"
        assert arena.find("Nope") is None
        with pytest.raises(UnknownReferenceError):
            arena.get("Nope")

    def test_nodes_of_kind(self, arena):
        assert [n.logical_id for n in arena.nodes_of_kind("function")] == ["ServerFunction"]

    def test_dependency_edges_deduplicated(self, arena):
        assert arena.dependencies_of("ServerFunction") == ["AssetsBucket", "RevalidationQueue"]
        assert arena.dependents_of("AssetsBucket") == ["ServerFunction"]

    def test_topological_order_follows_construction(self, arena):
        assert arena.topological_order() == arena.construction_order


class TestAddDependency:
    def test_late_edge_reorders(self, arena):
        arena.add(ResourceNode(logical_id="ServerFunctionUrl", kind="function_url"))
        arena.add_dependency("ServerFunction", "ServerFunctionUrl")
        assert "ServerFunctionUrl" in arena.dependencies_of("ServerFunction")
        assert arena.get("ServerFunction").depends_on[-1] == "ServerFunctionUrl"
        order = arena.topological_order()
        assert order.index("ServerFunctionUrl") < order.index("ServerFunction")

    def test_repeated_edge_recorded_once(self, arena):
        arena.add_dependency("ServerFunction", "AssetsBucket")
        assert arena.get("ServerFunction").depends_on.count("AssetsBucket") == 2
        assert arena.dependencies_of("ServerFunction") == ["AssetsBucket", "RevalidationQueue"]

    def test_unknown_node(self, arena):
        with pytest.raises(UnknownReferenceError, match="Nope"):
            arena.add_dependency("ServerFunction", "Nope")
        with pytest.raises(UnknownReferenceError, match="Nope"):
            arena.add_dependency("Nope", "AssetsBucket")

    def test_rejects_cycle(self, arena):
        with pytest.raises(TopologyError, match="cycle"):
            arena.add_dependency("AssetsBucket", "ServerFunction")
        assert arena.dependencies_of("AssetsBucket") == []
