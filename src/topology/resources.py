# src/topology/resources.py — v1
"""Resource node types held in the arena.

Each node is created once by the builder and only referenced afterwards.
`properties` carries the resource-specific configuration; values may be
plain data, `Ref` tokens or `Deferred` thunks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from opennext_topology.topology.deferred import Ref

ResourceKind = Literal[
    "bucket",
    "table",
    "queue",
    "encryption_key",
    "function",
    "function_url",
    "task",
    "web_acl",
    "log_group",
    "distribution",
    "viewer_function",
    "cache_policy",
    "origin_request_policy",
    "response_headers_policy",
    "asset_deployment",
    "alarm",
    "dns_record",
    "schedule",
]

Access = Literal["read", "read_write", "send_messages", "invoke", "write"]


@dataclass(frozen=True)
class Grant:
    """Explicit permission: `principal` may perform `access` on `resource`."""

    principal: str
    resource: str
    access: Access

    def to_dict(self) -> dict[str, str]:
        return {
            "principal": self.principal,
            "resource": self.resource,
            "access": self.access,
        }


@dataclass
class ResourceNode:
    """One resource in the build graph."""

    logical_id: str
    kind: ResourceKind
    name: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)
    depends_on: list[str] = field(default_factory=list)
    imported: bool = False

    def ref(self, attribute: str) -> Ref:
        return Ref(self.logical_id, attribute)


@dataclass
class FunctionNode(ResourceNode):
    """A function with its environment and permission descriptors."""

    kind: ResourceKind = "function"
    role: str = ""
    environment: dict[str, Any] = field(default_factory=dict)
    grants: list[Grant] = field(default_factory=list)

    @property
    def function_name(self) -> Ref:
        return self.ref("FunctionName")

    @property
    def arn(self) -> Ref:
        return self.ref("Arn")


@dataclass
class RoutingRule:
    """A pattern-to-origin binding of the distribution."""

    pattern: str
    origin_id: str
    allowed_methods: tuple[str, ...]
    cached_methods: tuple[str, ...]
    cache_policy: str
    origin_request_policy: str | None = None
    response_headers_policy: str | None = None
    viewer_functions: tuple[str, ...] = ()
    viewer_protocol_policy: str = "redirect-to-https"
    compress: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "origin": self.origin_id,
            "allowed_methods": list(self.allowed_methods),
            "cached_methods": list(self.cached_methods),
            "cache_policy": self.cache_policy,
            "origin_request_policy": self.origin_request_policy,
            "response_headers_policy": self.response_headers_policy,
            "viewer_functions": list(self.viewer_functions),
            "viewer_protocol_policy": self.viewer_protocol_policy,
            "compress": self.compress,
        }
