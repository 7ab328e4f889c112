# src/topology/classifier.py — v1
"""Origin classifier: assign each manifest origin key a role."""

from __future__ import annotations

from opennext_topology.config.defaults import (
    DEFAULT_ORIGIN_KEY,
    IMAGE_OPTIMIZER_ORIGIN_KEY,
    STATIC_ORIGIN_KEY,
)
from opennext_topology.core.models import Origin, OriginRole, RoleKind

_RESERVED_ROLES: dict[str, RoleKind] = {
    DEFAULT_ORIGIN_KEY: RoleKind.DEFAULT_COMPUTE,
    STATIC_ORIGIN_KEY: RoleKind.STATIC_ASSETS,
    IMAGE_OPTIMIZER_ORIGIN_KEY: RoleKind.IMAGE_OPTIMIZER,
}


def classify(origin_key: str, origins: dict[str, Origin]) -> OriginRole | None:
    """Return the role of origin_key, or None if it plays no role.

    Reserved keys map to their fixed role. Any other key is split compute
    only when its origin is compute-typed; other non-reserved origins and
    keys absent from `origins` get no role.
    """
    origin = origins.get(origin_key)
    if origin is None:
        return None

    reserved = _RESERVED_ROLES.get(origin_key)
    if reserved is not None:
        return OriginRole(kind=reserved, key=origin_key)

    if origin.is_compute:
        return OriginRole(kind=RoleKind.SPLIT_COMPUTE, key=origin_key)
    return None


def classify_all(origins: dict[str, Origin]) -> dict[str, OriginRole]:
    """Classify every origin, keeping manifest order and dropping role-less keys."""
    roles: dict[str, OriginRole] = {}
    for key in origins:
        role = classify(key, origins)
        if role is not None:
            roles[key] = role
    return roles


def split_compute_keys(roles: dict[str, OriginRole]) -> list[str]:
    return [key for key, role in roles.items() if role.kind is RoleKind.SPLIT_COMPUTE]
