# src/topology/exporter.py — v1
"""Topology exporter: serialize a built topology to plain JSON data.

Refs become `${LogicalId.Attribute}` tokens and every Deferred is
resolved here, once, after construction has finished.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from opennext_topology.topology.builder import ResourceTopology
from opennext_topology.topology.deferred import resolve_value
from opennext_topology.topology.resources import FunctionNode, ResourceNode

logger = logging.getLogger(__name__)

EXPORT_FORMAT_VERSION = "1"


class TopologyExporter:
    """Turns a ResourceTopology into a JSON-serializable document."""

    def __init__(self, indent: int | None = 2) -> None:
        self.indent = indent

    def to_dict(self, topology: ResourceTopology) -> dict[str, Any]:
        arena = topology.arena
        resources = []
        for node in arena:
            entry = self._node_to_dict(node)
            entry["dependencies"] = arena.dependencies_of(node.logical_id)
            resources.append(entry)

        routing = topology.routing
        return {
            "format_version": EXPORT_FORMAT_VERSION,
            "build_id": topology.build_id,
            "prefix": topology.prefix,
            "flags": topology.flags.model_dump(),
            "origins": {key: role.kind.value for key, role in topology.roles.items()},
            "resources": resources,
            "routing": {
                "default_rule": routing.default_rule.to_dict(),
                "rules": [rule.to_dict() for rule in routing.rules.values()],
                "dropped_patterns": [b.pattern for b in routing.dropped],
            },
            "outputs": resolve_value(topology.outputs),
            "url": topology.url,
            "diagnostics": [d.model_dump() for d in topology.diagnostics],
        }

    def export(self, topology: ResourceTopology, path: str | Path) -> Path:
        """Write the document to `path` as JSON and return the path."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        document = self.to_dict(topology)
        path.write_text(json.dumps(document, indent=self.indent), encoding="utf-8")
        logger.info("Exported %d resources to %s", len(document["resources"]), path)
        return path

    @staticmethod
    def _node_to_dict(node: ResourceNode) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "logical_id": node.logical_id,
            "kind": node.kind,
            "name": node.name,
            "imported": node.imported,
            "properties": resolve_value(node.properties),
        }
        if isinstance(node, FunctionNode):
            entry["role"] = node.role
            entry["environment"] = resolve_value(node.environment)
            entry["grants"] = [grant.to_dict() for grant in node.grants]
        return entry
