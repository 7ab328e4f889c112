# src/topology/builder.py — v1
"""Resource topology builder: sequence every resource of a deployment.

Construction order is fixed because later steps consume identifiers
produced by earlier ones:

    1. tag cache table (or none)         9. image optimizer function
    2. access control (web ACL)         10. access-log pipeline
    3. assets bucket                    11. distribution + routing rules
    4. revalidation queue + consumer    12. static asset uploads
    5. tag cache seeder (if eligible)   13. alarms
    6. default compute function         14. DNS records
    7. split compute functions          15. warmer
    8. split origin map on default

The arena refuses references to resources that do not exist yet, so a
reordering fails loudly instead of producing a dangling reference.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from opennext_topology.api.models import FunctionOverrides, TopologyOverrides
from opennext_topology.config.defaults import (
    ACCESS_LOG_EXPIRATION_DAYS,
    ALARM_PERIOD_SECONDS,
    DEFAULT_5XX_RATE_THRESHOLD,
    DEFAULT_CACHE_DEFAULT_TTL_SECONDS,
    DEFAULT_CACHE_MAX_TTL_SECONDS,
    DEFAULT_CACHE_MIN_TTL_SECONDS,
    DEFAULT_DLQ_MESSAGE_THRESHOLD,
    DEFAULT_HSTS_MAX_AGE,
    DEFAULT_LAMBDA_ERROR_THRESHOLD,
    DEFAULT_LOG_RETENTION_DAYS,
    DEFAULT_ORIGIN_KEY,
    DEFAULT_WARMER_CONCURRENCY,
    DEFAULT_WARMER_SCHEDULE,
    ENV_SPLIT_ORIGINS,
    HOST_HEADER_REWRITE_CODE,
    IMAGE_OPTIMIZER_ORIGIN_KEY,
    NEXT_CACHE_KEY_HEADERS,
    ORIGIN_REQUEST_HEADERS,
    REVALIDATION_BATCH_SIZE,
    REVALIDATION_DLQ_RETENTION_DAYS,
    REVALIDATION_MAX_RECEIVE_COUNT,
    REVALIDATION_QUEUE_RETENTION_DAYS,
    REVALIDATION_VISIBILITY_MULTIPLIER,
    STATIC_CACHE_CONTROL,
    TAG_CACHE_GSI_NAME,
    TAG_CACHE_GSI_PARTITION_KEY,
    TAG_CACHE_GSI_SORT_KEY,
    TAG_CACHE_PARTITION_KEY,
    TAG_CACHE_SORT_KEY,
    VERSIONED_CACHE_CONTROL,
    WAF_MANAGED_RULE_GROUPS,
    FUNCTION_SIZING,
)
from opennext_topology.config.settings import Settings
from opennext_topology.core.models import Diagnostic, Manifest, OriginRole, RoleKind
from opennext_topology.logging.context import set_step_context
from opennext_topology.manifest import layout
from opennext_topology.manifest.reader import (
    get_asset_copy_entries,
    get_static_origin_path,
)
from opennext_topology.topology.arena import ResourceArena
from opennext_topology.topology.behaviors import BehaviorSet, PolicySet, synthesize_behaviors
from opennext_topology.topology.classifier import classify_all, split_compute_keys
from opennext_topology.topology.deferred import REGION, Ref
from opennext_topology.topology.environment import (
    FunctionWiring,
    compose_compute,
    compose_image_optimizer,
    compose_log_forwarder,
    compose_revalidation,
    compose_seeder,
    compose_warmer,
    split_origin_map,
)
from opennext_topology.topology.flags import ResolvedFlags, resolve_flags
from opennext_topology.topology.functions import add_function, add_function_url
from opennext_topology.topology.naming import compute_ids, resource_name
from opennext_topology.topology.resources import FunctionNode, ResourceNode

logger = logging.getLogger(__name__)

EDGE_FUNCTIONS_UNSUPPORTED = "edge-functions-unsupported"

# Inline source of the access-log forwarder; its runtime behavior is owned
# by the provisioning layer, only the handle is modelled here.
LOG_FORWARDER_CODE = "exports.handler = require('./forwarder').handler;"


@dataclass
class ResourceTopology:
    """The finished build graph and its outward-facing handles."""

    arena: ResourceArena
    flags: ResolvedFlags
    roles: dict[str, OriginRole]
    routing: BehaviorSet
    bucket: ResourceNode
    distribution: ResourceNode
    server_functions: dict[str, FunctionNode]
    image_optimization_function: FunctionNode
    revalidation_function: FunctionNode
    revalidation_queue: ResourceNode
    tag_cache_table: ResourceNode | None = None
    warmer_function: FunctionNode | None = None
    seeder_function: FunctionNode | None = None
    build_id: str = ""
    prefix: str = ""
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def url(self) -> str:
        return f"https://{self.distribution.ref('DomainName').token}"

    @property
    def outputs(self) -> dict[str, Ref]:
        return {
            "DistributionDomainName": self.distribution.ref("DomainName"),
            "DistributionId": self.distribution.ref("DistributionId"),
            "BucketName": self.bucket.ref("BucketName"),
        }


class TopologyBuilder:
    """Compiles one normalized manifest into a ResourceTopology.

    One builder per build; call build() once.
    """

    def __init__(
        self,
        manifest: Manifest,
        build_dir: str | Path,
        overrides: TopologyOverrides | None = None,
        settings: Settings | None = None,
        build_id: str | None = None,
    ) -> None:
        self.manifest = manifest
        self.build_dir = Path(build_dir)
        self.overrides = overrides or TopologyOverrides()
        self.settings = settings or Settings()
        self.build_id = build_id or generate_build_id()
        self.prefix = self.overrides.prefix or self.settings.default_prefix
        self.region: str | Ref = self.overrides.region or REGION
        self.arena = ResourceArena()
        self.diagnostics: list[Diagnostic] = []
        self._built = False

    # --- Public ---

    def build(self) -> ResourceTopology:
        if self._built:
            raise RuntimeError("TopologyBuilder.build() may only be called once")
        self._built = True

        flags = resolve_flags(self.manifest, self.overrides)
        roles = classify_all(self.manifest.origins)

        with self._step("tag-cache"):
            table = self._create_tag_cache(flags)
        with self._step("access-control"):
            web_acl_arn = self._create_access_control()
        with self._step("assets-bucket"):
            bucket = self._create_assets_bucket()
        with self._step("revalidation"):
            queue, dlq, revalidation_fn = self._create_revalidation(bucket, table)
        with self._step("tag-cache-seeder"):
            seeder_fn = self._create_seeder(flags, table)

        self._warn_on_edge_functions()

        server_functions: dict[str, FunctionNode] = {}
        url_refs: dict[str, Ref] = {}
        function_urls: dict[str, ResourceNode] = {}

        with self._step("default-compute"):
            default_fn, default_url = self._create_compute(
                DEFAULT_ORIGIN_KEY, self.overrides.server_function,
                bucket, queue, table, flags,
            )
            server_functions[DEFAULT_ORIGIN_KEY] = default_fn
            function_urls[DEFAULT_ORIGIN_KEY] = default_url
            url_refs[DEFAULT_ORIGIN_KEY] = default_url.ref("Url")

        split_keys = split_compute_keys(roles)
        with self._step("split-compute"):
            for key in split_keys:
                fn, fn_url = self._create_compute(
                    key, self.overrides.split_functions.get(key),
                    bucket, queue, table, flags,
                )
                server_functions[key] = fn
                function_urls[key] = fn_url
                url_refs[key] = fn_url.ref("Url")

        with self._step("split-origin-map"):
            self._inject_split_origin_map(default_fn, split_keys, url_refs)

        with self._step("image-optimizer"):
            image_fn, image_url = self._create_image_optimizer(bucket)
            function_urls[IMAGE_OPTIMIZER_ORIGIN_KEY] = image_url

        with self._step("access-logs"):
            log_bucket = self._create_access_logs()

        with self._step("distribution"):
            distribution, routing = self._create_distribution(
                roles, bucket, function_urls, web_acl_arn, log_bucket,
            )

        with self._step("asset-upload"):
            self._create_asset_uploads(bucket, distribution)
        with self._step("alarms"):
            self._create_alarms(dlq, server_functions, revalidation_fn, distribution)
        with self._step("dns"):
            self._create_dns(distribution)
        with self._step("warmer"):
            warmer_fn = self._create_warmer(server_functions)

        topology = ResourceTopology(
            arena=self.arena,
            flags=flags,
            roles=roles,
            routing=routing,
            bucket=bucket,
            distribution=distribution,
            server_functions=server_functions,
            image_optimization_function=image_fn,
            revalidation_function=revalidation_fn,
            revalidation_queue=queue,
            tag_cache_table=table,
            warmer_function=warmer_fn,
            seeder_function=seeder_fn,
            build_id=self.build_id,
            prefix=self.prefix,
            diagnostics=list(self.diagnostics),
        )
        logger.info(
            "Built topology: %d resources, %d compute functions, %d routing rules, "
            "%d diagnostics",
            len(self.arena), len(server_functions), len(routing.rules) + 1,
            len(self.diagnostics),
        )
        return topology

    # --- Steps ---

    def _create_tag_cache(self, flags: ResolvedFlags) -> ResourceNode | None:
        opts = self.overrides.tag_cache
        if flags.tag_cache_disabled:
            logger.debug("Tag cache disabled, no table")
            return None
        if opts.existing_table:
            return self.arena.add(
                ResourceNode(
                    logical_id="TagCacheTable", kind="table",
                    name=opts.existing_table, imported=True,
                )
            )
        return self.arena.add(
            ResourceNode(
                logical_id="TagCacheTable",
                kind="table",
                name=resource_name(self.prefix, "tag-cache"),
                properties={
                    "partition_key": {"name": TAG_CACHE_PARTITION_KEY, "type": "S"},
                    "sort_key": {"name": TAG_CACHE_SORT_KEY, "type": "S"},
                    "global_secondary_indexes": [
                        {
                            "name": TAG_CACHE_GSI_NAME,
                            "partition_key": {"name": TAG_CACHE_GSI_PARTITION_KEY, "type": "S"},
                            "sort_key": {"name": TAG_CACHE_GSI_SORT_KEY, "type": "S"},
                            "projection": "ALL",
                        }
                    ],
                    "billing_mode": opts.billing_mode,
                    "point_in_time_recovery": True,
                    "removal_policy": "destroy",
                },
            )
        )

    def _create_access_control(self) -> str | Ref | None:
        opts = self.overrides.waf
        if not opts.enabled:
            return None
        if opts.existing_web_acl_arn:
            return opts.existing_web_acl_arn

        rules = [
            {
                "name": name,
                "priority": priority,
                "override_action": "none",
                "statement": {"managed_rule_group": {"name": name, "vendor": vendor}},
                "metric_name": resource_name(self.prefix, name),
            }
            for name, vendor, priority in WAF_MANAGED_RULE_GROUPS
        ]
        rules.extend(opts.additional_rules)

        web_acl = self.arena.add(
            ResourceNode(
                logical_id="WebAcl",
                kind="web_acl",
                name=resource_name(self.prefix, "waf"),
                properties={
                    "scope": "CLOUDFRONT",
                    "default_action": "allow",
                    "rules": rules,
                    "metric_name": resource_name(self.prefix, "waf"),
                },
            )
        )
        return web_acl.ref("Arn")

    def _create_assets_bucket(self) -> ResourceNode:
        if self.overrides.assets_bucket:
            return self.arena.add(
                ResourceNode(
                    logical_id="AssetsBucket", kind="bucket",
                    name=self.overrides.assets_bucket, imported=True,
                )
            )

        access_log_bucket = self.arena.add(
            ResourceNode(
                logical_id="AssetsAccessLogBucket",
                kind="bucket",
                properties={
                    **_secure_bucket_properties("destroy"),
                    "object_ownership": "BucketOwnerPreferred",
                    "lifecycle_expiration_days": ACCESS_LOG_EXPIRATION_DAYS,
                },
            )
        )
        removal = self.overrides.assets_removal_policy
        return self.arena.add(
            ResourceNode(
                logical_id="AssetsBucket",
                kind="bucket",
                properties={
                    **_secure_bucket_properties(removal),
                    "server_access_logs_bucket": access_log_bucket.logical_id,
                    "server_access_logs_prefix": "assets-bucket/",
                },
                depends_on=[access_log_bucket.logical_id],
            )
        )

    def _create_revalidation(
        self, bucket: ResourceNode, table: ResourceNode | None
    ) -> tuple[ResourceNode, ResourceNode, FunctionNode]:
        opts = self.overrides.revalidation
        fn_opts = opts.function or FunctionOverrides()
        depends: list[str] = []

        if opts.encryption_key_arn:
            encryption_key: str | Ref = opts.encryption_key_arn
        else:
            key = self.arena.add(
                ResourceNode(
                    logical_id="RevalidationQueueKey",
                    kind="encryption_key",
                    properties={
                        "description": (
                            f"{resource_name(self.prefix, 'revalidation')} "
                            "SQS encryption key"
                        ),
                        "enable_key_rotation": True,
                        "removal_policy": "destroy",
                    },
                )
            )
            encryption_key = key.ref("Arn")
            depends.append(key.logical_id)

        dlq = self.arena.add(
            ResourceNode(
                logical_id="RevalidationDeadLetterQueue",
                kind="queue",
                name=f"{resource_name(self.prefix, 'revalidation-dlq')}.fifo",
                properties={
                    "fifo": True,
                    "content_based_deduplication": True,
                    "encryption_key": encryption_key,
                    "enforce_ssl": True,
                    "retention_days": REVALIDATION_DLQ_RETENTION_DAYS,
                },
                depends_on=list(depends),
            )
        )

        timeout = fn_opts.timeout or FUNCTION_SIZING["revalidation"][1]
        queue = self.arena.add(
            ResourceNode(
                logical_id="RevalidationQueue",
                kind="queue",
                name=f"{resource_name(self.prefix, 'revalidation')}.fifo",
                properties={
                    "fifo": True,
                    "content_based_deduplication": True,
                    "encryption_key": encryption_key,
                    "enforce_ssl": True,
                    "retention_days": REVALIDATION_QUEUE_RETENTION_DAYS,
                    "visibility_timeout": timeout * REVALIDATION_VISIBILITY_MULTIPLIER,
                    "dead_letter_queue": {
                        "queue": dlq.logical_id,
                        "max_receive_count": REVALIDATION_MAX_RECEIVE_COUNT,
                    },
                },
                depends_on=[*depends, dlq.logical_id],
            )
        )

        wiring = compose_revalidation(
            "RevalidationFunction", bucket=bucket, table=table, region=self.region,
        )
        function = add_function(
            self.arena,
            logical_id="RevalidationFunction",
            name=resource_name(self.prefix, "revalidation"),
            role="revalidation",
            sizing_key="revalidation",
            wiring=wiring,
            overrides=fn_opts,
            bundle=self._bundle(
                layout.revalidation_bundle_path(self.build_dir),
                self.manifest.additional_props.revalidation_function,
            ),
            depends_on=[queue.logical_id],
            extra_properties={
                "event_sources": [
                    {
                        "type": "sqs",
                        "queue": queue.logical_id,
                        "batch_size": REVALIDATION_BATCH_SIZE,
                        "report_batch_item_failures": True,
                    }
                ]
            },
        )
        return queue, dlq, function

    def _create_seeder(
        self, flags: ResolvedFlags, table: ResourceNode | None
    ) -> FunctionNode | None:
        if not flags.seeder_eligible or table is None:
            return None

        opts = self.overrides.seeder
        wiring = compose_seeder("TagCacheSeederFunction", table=table, region=self.region)
        function = add_function(
            self.arena,
            logical_id="TagCacheSeederFunction",
            name=resource_name(self.prefix, "tag-cache-seeder"),
            role="seeder",
            sizing_key="tag-cache-seeder",
            wiring=wiring,
            overrides=opts.function,
            bundle=self._bundle(
                layout.seeder_bundle_path(self.build_dir),
                self.manifest.additional_props.initialization_function,
            ),
        )
        # Re-run on every build: a fresh trigger token changes the task inputs.
        self.arena.add(
            ResourceNode(
                logical_id="TagCacheSeederTask",
                kind="task",
                properties={
                    "service_token": function.arn,
                    "trigger_token": opts.trigger_token or self.build_id,
                },
                depends_on=[function.logical_id, table.logical_id],
            )
        )
        return function

    def _warn_on_edge_functions(self) -> None:
        if not self.manifest.edge_functions:
            return
        message = (
            "Edge functions found in manifest but not yet supported. "
            "Behaviors referencing edge functions will be skipped."
        )
        logger.warning(
            "%s (%s)", message, ", ".join(sorted(self.manifest.edge_functions)),
        )
        self.diagnostics.append(
            Diagnostic(code=EDGE_FUNCTIONS_UNSUPPORTED, message=message)
        )

    def _create_compute(
        self,
        origin_key: str,
        overrides: FunctionOverrides | None,
        bucket: ResourceNode,
        queue: ResourceNode,
        table: ResourceNode | None,
        flags: ResolvedFlags,
    ) -> tuple[FunctionNode, ResourceNode]:
        logical_id, suffix = compute_ids(origin_key)
        origin = self.manifest.origins[origin_key]
        wiring = compose_compute(
            logical_id, bucket=bucket, queue=queue, table=table,
            flags=flags, region=self.region,
        )
        function = add_function(
            self.arena,
            logical_id=logical_id,
            name=resource_name(self.prefix, suffix),
            role="default" if origin_key == DEFAULT_ORIGIN_KEY else "split",
            sizing_key="server",
            wiring=wiring,
            overrides=overrides,
            bundle=self._bundle(layout.function_bundle_path(self.build_dir, origin_key), origin),
            handler=origin.handler or "index.handler",
            extra_properties={"origin_key": origin_key},
        )
        function_url = add_function_url(self.arena, function, streaming=origin.streaming)
        return function, function_url

    def _inject_split_origin_map(
        self, default_fn: FunctionNode, split_keys: list[str], url_refs: dict[str, Ref]
    ) -> None:
        if not split_keys:
            return
        if default_fn.imported:
            logger.warning(
                "Default function is imported; %s cannot be injected for %d split origins",
                ENV_SPLIT_ORIGINS, len(split_keys),
            )
            return
        default_fn.environment[ENV_SPLIT_ORIGINS] = split_origin_map(url_refs)
        for key in split_keys:
            self.arena.add_dependency(default_fn.logical_id, url_refs[key].logical_id)

    def _create_image_optimizer(
        self, bucket: ResourceNode
    ) -> tuple[FunctionNode, ResourceNode]:
        wiring = compose_image_optimizer(
            "ImageOptimizationFunction",
            bucket=bucket,
            key_prefix=get_static_origin_path(self.manifest),
        )
        origin = self.manifest.origins.get(IMAGE_OPTIMIZER_ORIGIN_KEY)
        function = add_function(
            self.arena,
            logical_id="ImageOptimizationFunction",
            name=resource_name(self.prefix, "image-optimization"),
            role="image_optimizer",
            sizing_key="image-optimization",
            wiring=wiring,
            overrides=self.overrides.image_optimization_function,
            bundle=self._bundle(layout.image_optimization_bundle_path(self.build_dir), origin),
            handler=(origin.handler if origin and origin.handler else "index.handler"),
        )
        return function, add_function_url(self.arena, function)

    def _create_access_logs(self) -> ResourceNode | None:
        opts = self.overrides.logs
        if not opts.enabled:
            return None
        retention = opts.log_retention or DEFAULT_LOG_RETENTION_DAYS

        if opts.existing_log_bucket:
            log_bucket = self.arena.add(
                ResourceNode(
                    logical_id="AccessLogsBucket", kind="bucket",
                    name=opts.existing_log_bucket, imported=True,
                )
            )
        else:
            log_bucket = self.arena.add(
                ResourceNode(
                    logical_id="AccessLogsBucket",
                    kind="bucket",
                    properties={
                        **_secure_bucket_properties("destroy"),
                        "object_ownership": "BucketOwnerPreferred",
                        "lifecycle_expiration_days": ACCESS_LOG_EXPIRATION_DAYS,
                    },
                )
            )

        log_group = self.arena.add(
            ResourceNode(
                logical_id="AccessLogsLogGroup",
                kind="log_group",
                name=f"/aws/cloudfront/{resource_name(self.prefix, 'access-logs')}",
                properties={"retention_days": retention, "removal_policy": "destroy"},
            )
        )

        fn_opts = opts.function or FunctionOverrides()
        if fn_opts.log_retention is None:
            fn_opts = fn_opts.model_copy(update={"log_retention": retention})
        add_function(
            self.arena,
            logical_id="AccessLogsForwarderFunction",
            name=resource_name(self.prefix, "cf-log-forwarder"),
            role="log_forwarder",
            sizing_key="log-forwarder",
            wiring=compose_log_forwarder(
                "AccessLogsForwarderFunction", log_bucket=log_bucket, log_group=log_group,
            ),
            overrides=fn_opts,
            inline_code=LOG_FORWARDER_CODE,
            extra_properties={
                "event_sources": [
                    {"type": "s3", "bucket": log_bucket.logical_id, "events": ["ObjectCreated"]}
                ]
            },
        )
        return log_bucket

    def _create_distribution(
        self,
        roles: dict[str, OriginRole],
        bucket: ResourceNode,
        function_urls: dict[str, ResourceNode],
        web_acl_arn: str | Ref | None,
        log_bucket: ResourceNode | None,
    ) -> tuple[ResourceNode, BehaviorSet]:
        opts = self.overrides.distribution
        policies = self._create_routing_policies()

        origins: dict[str, dict[str, object]] = {}
        targets: dict[str, str] = {}
        depends = [
            policies.cache_policy,
            policies.origin_request_policy,
            policies.response_headers_policy,
            policies.host_rewrite_function,
            bucket.logical_id,
        ]

        for key, role in roles.items():
            if role.kind is RoleKind.STATIC_ASSETS:
                origin_id = "StaticAssetsOrigin"
                origin_path = get_static_origin_path(self.manifest)
                origins[origin_id] = {
                    "type": "s3",
                    "bucket": bucket.ref("RegionalDomainName"),
                    "origin_path": f"/{origin_path}" if origin_path else None,
                    "access": "origin-access-control",
                }
            else:
                url = function_urls.get(key)
                if url is None:
                    continue
                origin_id = f"{url.properties['function']}Origin"
                origins[origin_id] = {
                    "type": "http",
                    "domain": url.ref("Domain"),
                    "protocol_policy": "https-only",
                }
                depends.append(url.logical_id)
            targets[key] = origin_id

        routing = synthesize_behaviors(
            self.manifest, roles, targets, policies,
            additional_rules=opts.additional_rules,
        )

        if log_bucket is not None:
            depends.append(log_bucket.logical_id)
        if isinstance(web_acl_arn, Ref):
            depends.append(web_acl_arn.logical_id)

        properties: dict[str, object] = {
            "comment": resource_name(self.prefix, "distribution"),
            "origins": origins,
            "default_rule": routing.default_rule.to_dict(),
            "rules": [rule.to_dict() for rule in routing.rules.values()],
            "domain_names": list(opts.domain_names),
            "certificate": opts.certificate_arn,
            "price_class": opts.price_class,
            "web_acl": web_acl_arn,
            "http_version": "http2and3",
            "minimum_protocol_version": "TLSv1.2_2021",
            "geo_restriction": (
                {"type": "allowlist", "locations": list(opts.geo_restriction_locations)}
                if opts.geo_restriction_locations
                else None
            ),
        }
        if log_bucket is not None:
            properties["logging"] = {
                "bucket": log_bucket.logical_id,
                "prefix": "cloudfront/",
            }

        distribution = self.arena.add(
            ResourceNode(
                logical_id="Distribution",
                kind="distribution",
                properties=properties,
                depends_on=depends,
            )
        )
        return distribution, routing

    def _create_routing_policies(self) -> PolicySet:
        opts = self.overrides.distribution
        cache_opts = opts.cache_policy

        viewer_fn = self.arena.add(
            ResourceNode(
                logical_id="HostHeaderRewriteFunction",
                kind="viewer_function",
                name=resource_name(self.prefix, "host-rewrite"),
                properties={"runtime": "cloudfront-js-2.0", "code": HOST_HEADER_REWRITE_CODE},
            )
        )
        cache_policy = self.arena.add(
            ResourceNode(
                logical_id="ServerCachePolicy",
                kind="cache_policy",
                name=resource_name(self.prefix, "server-cache"),
                properties={
                    "default_ttl": _first_set(cache_opts.default_ttl, DEFAULT_CACHE_DEFAULT_TTL_SECONDS),
                    "max_ttl": _first_set(cache_opts.max_ttl, DEFAULT_CACHE_MAX_TTL_SECONDS),
                    "min_ttl": _first_set(cache_opts.min_ttl, DEFAULT_CACHE_MIN_TTL_SECONDS),
                    "headers": [*NEXT_CACHE_KEY_HEADERS, *cache_opts.additional_headers],
                    "query_strings": "all",
                    "cookies": "all",
                    "accept_encoding_gzip": True,
                    "accept_encoding_brotli": True,
                },
            )
        )
        origin_request = self.arena.add(
            ResourceNode(
                logical_id="ServerOriginRequestPolicy",
                kind="origin_request_policy",
                name=resource_name(self.prefix, "server-origin-request"),
                properties={
                    "headers": list(ORIGIN_REQUEST_HEADERS),
                    "query_strings": "all",
                    "cookies": "all",
                },
            )
        )

        response_props: dict[str, object] = {}
        if opts.hsts:
            response_props["security_headers"] = {
                "strict_transport_security": {
                    "max_age": opts.hsts_max_age or DEFAULT_HSTS_MAX_AGE,
                    "include_subdomains": True,
                    "preload": True,
                    "override": True,
                },
                "content_type_options": {"override": True},
                "frame_options": {"frame_option": "DENY", "override": True},
                "referrer_policy": {
                    "referrer_policy": "strict-origin-when-cross-origin",
                    "override": True,
                },
            }
        if opts.cors:
            response_props["cors"] = {
                "allow_origins": opts.cors_allow_origins or ["*"],
                "allow_headers": ["*"],
                "allow_methods": ["ALL"],
                "allow_credentials": False,
                "origin_override": True,
            }
        response_headers = self.arena.add(
            ResourceNode(
                logical_id="ResponseHeadersPolicy",
                kind="response_headers_policy",
                name=resource_name(self.prefix, "response-headers"),
                properties=response_props,
            )
        )

        return PolicySet(
            cache_policy=cache_policy.logical_id,
            origin_request_policy=origin_request.logical_id,
            response_headers_policy=response_headers.logical_id,
            host_rewrite_function=viewer_fn.logical_id,
        )

    def _create_asset_uploads(self, bucket: ResourceNode, distribution: ResourceNode) -> None:
        for index, entry in enumerate(get_asset_copy_entries(self.manifest)):
            destination = None if entry.to in ("/", "") else entry.to
            self.arena.add(
                ResourceNode(
                    logical_id=f"AssetDeployment{index}",
                    kind="asset_deployment",
                    properties={
                        "source": str(layout.asset_source_path(self.build_dir, entry.from_)),
                        "destination_bucket": bucket.logical_id,
                        "destination_key_prefix": destination,
                        "cache_control": (
                            VERSIONED_CACHE_CONTROL if entry.cached else STATIC_CACHE_CONTROL
                        ),
                        "prune": False,
                        "distribution": distribution.logical_id,
                        "invalidation_paths": ["/*"],
                    },
                    depends_on=[bucket.logical_id, distribution.logical_id],
                )
            )

    def _create_alarms(
        self,
        dlq: ResourceNode,
        server_functions: dict[str, FunctionNode],
        revalidation_fn: FunctionNode,
        distribution: ResourceNode,
    ) -> None:
        opts = self.overrides.alarms
        if not opts.enabled:
            return

        error_threshold = opts.lambda_error_threshold or DEFAULT_LAMBDA_ERROR_THRESHOLD
        actions = [opts.sns_topic_arn] if opts.sns_topic_arn else []

        def add_alarm(logical_id: str, suffix: str, description: str,
                      metric: dict[str, object], threshold: float, source: str) -> None:
            self.arena.add(
                ResourceNode(
                    logical_id=logical_id,
                    kind="alarm",
                    name=resource_name(self.prefix, suffix),
                    properties={
                        "description": description,
                        "metric": {**metric, "period": ALARM_PERIOD_SECONDS},
                        "threshold": threshold,
                        "evaluation_periods": 1,
                        "comparison": "GreaterThanOrEqualToThreshold",
                        "treat_missing_data": "notBreaching",
                        "actions": list(actions),
                    },
                    depends_on=[source],
                )
            )

        add_alarm(
            "RevalidationDlqDepthAlarm", "revalidation-dlq-depth",
            "Revalidation DLQ has messages, revalidation failures detected",
            {"source": dlq.logical_id, "name": "ApproximateNumberOfMessagesVisible"},
            opts.dlq_message_threshold or DEFAULT_DLQ_MESSAGE_THRESHOLD,
            dlq.logical_id,
        )
        for key, fn in server_functions.items():
            suffix = "server" if key == DEFAULT_ORIGIN_KEY else compute_ids(key)[1]
            add_alarm(
                f"{fn.logical_id}ErrorAlarm", f"{suffix}-errors",
                f"Lambda errors on {suffix} function",
                {"source": fn.logical_id, "name": "Errors"},
                error_threshold,
                fn.logical_id,
            )
        add_alarm(
            "RevalidationErrorAlarm", "revalidation-errors",
            "Lambda errors on revalidation function",
            {"source": revalidation_fn.logical_id, "name": "Errors"},
            error_threshold,
            revalidation_fn.logical_id,
        )
        add_alarm(
            "Distribution5xxAlarm", "cloudfront-5xx-rate",
            "CloudFront 5xx error rate exceeds threshold",
            {
                "source": distribution.logical_id,
                "name": "5xxErrorRate",
                "statistic": "Average",
                "dimensions": {"DistributionId": distribution.ref("DistributionId"), "Region": "Global"},
            },
            opts.cloudfront_5xx_threshold or DEFAULT_5XX_RATE_THRESHOLD,
            distribution.logical_id,
        )

    def _create_dns(self, distribution: ResourceNode) -> None:
        opts = self.overrides.dns
        if opts is None:
            return
        if opts.record_names is not None:
            names = opts.record_names
        else:
            names = [opts.zone_name] if opts.zone_name else []

        for index, record_name in enumerate(names):
            for record_type in ("A", "AAAA"):
                self.arena.add(
                    ResourceNode(
                        logical_id=f"{record_type.title()}Record{index}",
                        kind="dns_record",
                        properties={
                            "type": record_type,
                            "zone": opts.hosted_zone_id,
                            "record_name": record_name,
                            "alias_target": distribution.ref("DomainName"),
                            "evaluate_target_health": opts.evaluate_target_health,
                        },
                        depends_on=[distribution.logical_id],
                    )
                )

    def _create_warmer(self, server_functions: dict[str, FunctionNode]) -> FunctionNode | None:
        opts = self.overrides.warmer
        if not opts.enabled:
            return None

        wiring: FunctionWiring = compose_warmer(
            "WarmerFunction",
            functions=server_functions,
            concurrency=opts.concurrency or DEFAULT_WARMER_CONCURRENCY,
        )
        function = add_function(
            self.arena,
            logical_id="WarmerFunction",
            name=resource_name(self.prefix, "warmer"),
            role="warmer",
            sizing_key="warmer",
            wiring=wiring,
            overrides=opts.function,
            bundle=self._bundle(
                layout.warmer_bundle_path(self.build_dir),
                self.manifest.additional_props.warmer,
            ),
        )
        self.arena.add(
            ResourceNode(
                logical_id="WarmerSchedule",
                kind="schedule",
                name=resource_name(self.prefix, "warmer-schedule"),
                properties={
                    "schedule": opts.schedule or DEFAULT_WARMER_SCHEDULE,
                    "target": function.logical_id,
                },
                depends_on=[function.logical_id],
            )
        )
        return function

    # --- Helpers ---

    def _bundle(self, conventional: Path, declared: object | None = None) -> Path:
        """Bundle path declared by the manifest, else the conventional layout path."""
        bundle = getattr(declared, "bundle", None)
        path = self.build_dir / bundle if bundle else conventional
        return layout.ensure_bundle(path, self.settings.verify_bundles)

    @contextmanager
    def _step(self, name: str) -> Iterator[None]:
        set_step_context(name)
        before = len(self.arena)
        try:
            yield
        finally:
            set_step_context(None)
        logger.debug("Step %s added %d resources", name, len(self.arena) - before)


def generate_build_id() -> str:
    """Unique build ID: yyyymmdd_hhmmss_{uuid4_short}."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"{ts}_{uuid.uuid4().hex[:8]}"


def _secure_bucket_properties(removal_policy: str) -> dict[str, object]:
    return {
        "encryption": "S3_MANAGED",
        "block_public_access": "BLOCK_ALL",
        "enforce_ssl": True,
        "versioned": True,
        "removal_policy": removal_policy,
        "auto_delete_objects": removal_policy == "destroy",
    }


def _first_set(value: int | None, default: int) -> int:
    return default if value is None else value
