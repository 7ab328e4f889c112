# src/topology/environment.py — v1
"""Environment and permission composer.

Computes, per function role, the environment variables and explicit
permission grants as a function of the resolved flags:

  role                 | always                  | conditional
  ---------------------+-------------------------+------------------------------
  default / split      | queue URL + region,     | bucket trio iff incremental
                       | send on queue           | cache on (+ read_write);
                       |                         | table name iff table (+ rw);
                       |                         | split origin map (default)
  image optimizer      | bucket name + prefix,   |
                       | read on bucket          |
  revalidation         | bucket trio, rw bucket  | table name iff table (+ rw)
  seeder               | table name + region,    |
                       | rw on table             |
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from opennext_topology.config.defaults import (
    ENV_BUCKET_KEY_PREFIX,
    ENV_BUCKET_NAME,
    ENV_CACHE_BUCKET_KEY_PREFIX,
    ENV_CACHE_BUCKET_NAME,
    ENV_CACHE_BUCKET_REGION,
    ENV_CACHE_DYNAMO_TABLE,
    ENV_LOG_GROUP_NAME,
    ENV_REVALIDATION_QUEUE_REGION,
    ENV_REVALIDATION_QUEUE_URL,
    ENV_WARMER_CONCURRENCY,
    ENV_WARMER_FUNCTIONS,
    INCREMENTAL_CACHE_KEY_PREFIX,
)
from opennext_topology.topology.deferred import Deferred, Ref, resolve_value
from opennext_topology.topology.flags import ResolvedFlags
from opennext_topology.topology.resources import FunctionNode, Grant, ResourceNode


@dataclass
class FunctionWiring:
    environment: dict[str, Any] = field(default_factory=dict)
    grants: list[Grant] = field(default_factory=list)


def _bucket_variables(bucket: ResourceNode, region: str | Ref) -> dict[str, Any]:
    return {
        ENV_CACHE_BUCKET_NAME: bucket.ref("BucketName"),
        ENV_CACHE_BUCKET_KEY_PREFIX: INCREMENTAL_CACHE_KEY_PREFIX,
        ENV_CACHE_BUCKET_REGION: region,
    }


def compose_compute(
    principal: str,
    *,
    bucket: ResourceNode,
    queue: ResourceNode,
    table: ResourceNode | None,
    flags: ResolvedFlags,
    region: str | Ref,
) -> FunctionWiring:
    """Wiring shared by the default and split compute functions."""
    wiring = FunctionWiring()

    if flags.incremental_cache_enabled:
        wiring.environment.update(_bucket_variables(bucket, region))
        wiring.grants.append(Grant(principal, bucket.logical_id, "read_write"))

    wiring.environment[ENV_REVALIDATION_QUEUE_URL] = queue.ref("QueueUrl")
    wiring.environment[ENV_REVALIDATION_QUEUE_REGION] = region
    wiring.grants.append(Grant(principal, queue.logical_id, "send_messages"))

    if table is not None and flags.tag_cache_enabled:
        wiring.environment[ENV_CACHE_DYNAMO_TABLE] = table.ref("TableName")
        wiring.grants.append(Grant(principal, table.logical_id, "read_write"))

    return wiring


def split_origin_map(url_refs: Mapping[str, Ref]) -> Deferred:
    """JSON map of split key -> {"url": ...}, read when serialized.

    `url_refs` is read lazily, so it may still be filling up when this is
    called; the default key is never included.
    """

    def produce() -> str:
        origin_map = {
            key: {"url": resolve_value(ref)}
            for key, ref in url_refs.items()
            if key != "default"
        }
        return json.dumps(origin_map)

    return Deferred(produce, description="split origin map")


def compose_image_optimizer(
    principal: str, *, bucket: ResourceNode, key_prefix: str | None
) -> FunctionWiring:
    return FunctionWiring(
        environment={
            ENV_BUCKET_NAME: bucket.ref("BucketName"),
            ENV_BUCKET_KEY_PREFIX: key_prefix or "",
        },
        grants=[Grant(principal, bucket.logical_id, "read")],
    )


def compose_revalidation(
    principal: str,
    *,
    bucket: ResourceNode,
    table: ResourceNode | None,
    region: str | Ref,
) -> FunctionWiring:
    """Bucket access here is unconditional, unlike the compute functions."""
    wiring = FunctionWiring(
        environment=_bucket_variables(bucket, region),
        grants=[Grant(principal, bucket.logical_id, "read_write")],
    )
    if table is not None:
        wiring.environment[ENV_CACHE_DYNAMO_TABLE] = table.ref("TableName")
        wiring.grants.append(Grant(principal, table.logical_id, "read_write"))
    return wiring


def compose_seeder(
    principal: str, *, table: ResourceNode, region: str | Ref
) -> FunctionWiring:
    return FunctionWiring(
        environment={
            ENV_CACHE_DYNAMO_TABLE: table.ref("TableName"),
            ENV_CACHE_BUCKET_REGION: region,
        },
        grants=[Grant(principal, table.logical_id, "read_write")],
    )


def compose_warmer(
    principal: str, *, functions: Mapping[str, FunctionNode], concurrency: int
) -> FunctionWiring:
    names = {key: fn.function_name for key, fn in functions.items()}
    return FunctionWiring(
        environment={
            ENV_WARMER_FUNCTIONS: Deferred(
                lambda: json.dumps(resolve_value(names)), description="warmer targets"
            ),
            ENV_WARMER_CONCURRENCY: str(concurrency),
        },
        grants=[Grant(principal, fn.logical_id, "invoke") for fn in functions.values()],
    )


def compose_log_forwarder(
    principal: str, *, log_bucket: ResourceNode, log_group: ResourceNode
) -> FunctionWiring:
    return FunctionWiring(
        environment={ENV_LOG_GROUP_NAME: log_group.ref("LogGroupName")},
        grants=[
            Grant(principal, log_bucket.logical_id, "read"),
            Grant(principal, log_group.logical_id, "write"),
        ],
    )


def merge_environment(
    wiring: FunctionWiring, extra: Mapping[str, str] | None
) -> dict[str, Any]:
    """Caller-supplied variables are applied last and win on conflict."""
    environment = dict(wiring.environment)
    if extra:
        environment.update(extra)
    return environment
