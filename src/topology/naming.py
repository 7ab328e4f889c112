# src/topology/naming.py — v1
"""Deterministic naming: logical ids and physical names from role + prefix."""

from __future__ import annotations

import re

from opennext_topology.config.defaults import DEFAULT_PREFIX


def resource_name(prefix: str | None, suffix: str) -> str:
    """Physical name, e.g. resource_name('opennext', 'server') -> 'opennext-server'."""
    return f"{prefix or DEFAULT_PREFIX}-{suffix}"


def to_resource_id(name: str) -> str:
    """PascalCase logical id, e.g. 'my-server_function' -> 'MyServerFunction'.

    Only the first character of each word is changed, so ids of keys that
    differ by case stay distinct.
    """
    return "".join(
        word[:1].upper() + word[1:]
        for word in re.split(r"[-_.\s/]+", name)
        if word
    )


def origin_key_to_suffix(origin_key: str) -> str:
    """Safe name suffix for an origin key, e.g. 'api/trpc' -> 'api-trpc'."""
    suffix = re.sub(r"[^a-zA-Z0-9]", "-", origin_key)
    suffix = re.sub(r"-+", "-", suffix)
    return suffix.strip("-")


def compute_ids(origin_key: str) -> tuple[str, str]:
    """(logical id, name suffix) of a compute origin's function."""
    if origin_key == "default":
        return "ServerFunction", "server"
    suffix = origin_key_to_suffix(origin_key)
    return f"ServerFunction{to_resource_id(suffix)}", suffix
