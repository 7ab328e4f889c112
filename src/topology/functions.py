# src/topology/functions.py — v1
"""Function node factory shared by every function-creating step.

Applies role sizing defaults, caller overrides and the composed wiring,
and adds the function's log group (and optional URL) to the arena.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from opennext_topology.api.models import FunctionOverrides
from opennext_topology.config.defaults import (
    DEFAULT_HANDLER,
    DEFAULT_LAMBDA_ARCHITECTURE,
    DEFAULT_LAMBDA_RUNTIME,
    DEFAULT_LOG_RETENTION_DAYS,
    FUNCTION_SIZING,
)
from opennext_topology.topology.arena import ResourceArena
from opennext_topology.topology.environment import FunctionWiring, merge_environment
from opennext_topology.topology.resources import FunctionNode, ResourceNode


def runtime_settings(sizing_key: str, overrides: FunctionOverrides | None) -> dict[str, Any]:
    """Resolve memory/timeout/architecture/runtime against role defaults."""
    memory, timeout = FUNCTION_SIZING[sizing_key]
    opts = overrides or FunctionOverrides()
    settings: dict[str, Any] = {
        "memory_size": opts.memory_size or memory,
        "timeout": opts.timeout or timeout,
        "architecture": opts.architecture or DEFAULT_LAMBDA_ARCHITECTURE,
        "runtime": opts.runtime or DEFAULT_LAMBDA_RUNTIME,
        "tracing": "Active" if opts.enable_tracing else "PassThrough",
    }
    if opts.reserved_concurrent_executions is not None:
        settings["reserved_concurrent_executions"] = opts.reserved_concurrent_executions
    return settings


def add_function(
    arena: ResourceArena,
    *,
    logical_id: str,
    name: str,
    role: str,
    sizing_key: str,
    wiring: FunctionWiring,
    overrides: FunctionOverrides | None = None,
    bundle: Path | None = None,
    inline_code: str | None = None,
    handler: str = DEFAULT_HANDLER,
    depends_on: list[str] | None = None,
    extra_properties: dict[str, Any] | None = None,
) -> FunctionNode:
    """Add a function (and its log group) to the arena.

    With overrides.existing_function set, the function is imported by
    reference: no log group, no environment, no grants.
    """
    opts = overrides or FunctionOverrides()

    if opts.existing_function:
        return arena.add(
            FunctionNode(
                logical_id=logical_id,
                name=opts.existing_function,
                role=role,
                imported=True,
            )
        )

    log_group = arena.add(
        ResourceNode(
            logical_id=f"{logical_id}LogGroup",
            kind="log_group",
            properties={
                "retention_days": opts.log_retention or DEFAULT_LOG_RETENTION_DAYS,
                "removal_policy": "destroy",
            },
        )
    )

    properties = runtime_settings(sizing_key, opts)
    properties["handler"] = handler
    if bundle is not None:
        properties["code"] = {"type": "asset", "path": str(bundle)}
    elif inline_code is not None:
        properties["code"] = {"type": "inline", "source": inline_code}
    properties["log_group"] = log_group.logical_id
    if extra_properties:
        properties.update(extra_properties)

    return arena.add(
        FunctionNode(
            logical_id=logical_id,
            name=name,
            role=role,
            properties=properties,
            environment=merge_environment(wiring, opts.environment),
            grants=list(wiring.grants),
            depends_on=[
                *(depends_on or []),
                *(grant.resource for grant in wiring.grants),
                log_group.logical_id,
            ],
        )
    )


def add_function_url(
    arena: ResourceArena, function: FunctionNode, streaming: bool = False
) -> ResourceNode:
    """Public URL for a function; streaming origins use response-stream mode."""
    return arena.add(
        ResourceNode(
            logical_id=f"{function.logical_id}Url",
            kind="function_url",
            properties={
                "function": function.logical_id,
                "auth_type": "NONE",
                "invoke_mode": "RESPONSE_STREAM" if streaming else "BUFFERED",
            },
            depends_on=[function.logical_id],
        )
    )
