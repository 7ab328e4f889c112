# tests/unit/topology/test_unit_environment.py — v1
"""Tests for topology/environment.py — per-role variables and grants."""

from __future__ import annotations

import json

from opennext_topology.topology.deferred import REGION, Ref
from opennext_topology.topology.environment import (
    FunctionWiring,
    compose_compute,
    compose_image_optimizer,
    compose_log_forwarder,
    compose_revalidation,
    compose_seeder,
    compose_warmer,
    merge_environment,
    split_origin_map,
)
from opennext_topology.topology.flags import ResolvedFlags
from opennext_topology.topology.resources import FunctionNode, Grant, ResourceNode

BUCKET = ResourceNode(logical_id="AssetsBucket", kind="bucket")
QUEUE = ResourceNode(logical_id="RevalidationQueue", kind="queue")
TABLE = ResourceNode(logical_id="TagCacheTable", kind="table")

ALL_ON = ResolvedFlags(
    tag_cache_disabled=False, incremental_cache_disabled=False, seeder_eligible=False
)
NO_INCREMENTAL = ResolvedFlags(
    tag_cache_disabled=False, incremental_cache_disabled=True, seeder_eligible=False
)
NO_TAG_CACHE = ResolvedFlags(
    tag_cache_disabled=True, incremental_cache_disabled=False, seeder_eligible=False
)


class TestComposeCompute:
    def test_everything_enabled(self):
        wiring = compose_compute(
            "ServerFunction", bucket=BUCKET, queue=QUEUE, table=TABLE,
            flags=ALL_ON, region="eu-west-1",
        )
        env = wiring.environment
        assert env["CACHE_BUCKET_NAME"] == Ref("AssetsBucket", "BucketName")
        assert env["CACHE_BUCKET_KEY_PREFIX"] == "_cache"
        assert env["CACHE_BUCKET_REGION"] == "eu-west-1"
        assert env["REVALIDATION_QUEUE_URL"] == Ref("RevalidationQueue", "QueueUrl")
        assert env["REVALIDATION_QUEUE_REGION"] == "eu-west-1"
        assert env["CACHE_DYNAMO_TABLE"] == Ref("TagCacheTable", "TableName")
        assert set(wiring.grants) == {
            Grant("ServerFunction", "AssetsBucket", "read_write"),
            Grant("ServerFunction", "RevalidationQueue", "send_messages"),
            Grant("ServerFunction", "TagCacheTable", "read_write"),
        }

    def test_incremental_cache_disabled_keeps_queue(self):
        wiring = compose_compute(
            "ServerFunction", bucket=BUCKET, queue=QUEUE, table=TABLE,
            flags=NO_INCREMENTAL, region=REGION,
        )
        assert "CACHE_BUCKET_NAME" not in wiring.environment
        assert "CACHE_BUCKET_KEY_PREFIX" not in wiring.environment
        assert "REVALIDATION_QUEUE_URL" in wiring.environment
        assert all(g.resource != "AssetsBucket" for g in wiring.grants)

    def test_no_table(self):
        wiring = compose_compute(
            "ServerFunction", bucket=BUCKET, queue=QUEUE, table=None,
            flags=NO_TAG_CACHE, region=REGION,
        )
        assert "CACHE_DYNAMO_TABLE" not in wiring.environment
        assert all(g.resource != "TagCacheTable" for g in wiring.grants)


class TestComposeRevalidation:
    def test_bucket_variables_regardless_of_incremental_cache(self):
        wiring = compose_revalidation(
            "RevalidationFunction", bucket=BUCKET, table=TABLE, region=REGION,
        )
        assert wiring.environment["CACHE_BUCKET_NAME"] == Ref("AssetsBucket", "BucketName")
        assert Grant("RevalidationFunction", "AssetsBucket", "read_write") in wiring.grants
        assert "CACHE_DYNAMO_TABLE" in wiring.environment

    def test_without_table(self):
        wiring = compose_revalidation(
            "RevalidationFunction", bucket=BUCKET, table=None, region=REGION,
        )
        assert "CACHE_DYNAMO_TABLE" not in wiring.environment


class TestOtherRoles:
    def test_image_optimizer(self):
        wiring = compose_image_optimizer("Img", bucket=BUCKET, key_prefix="_assets")
        assert wiring.environment == {
            "BUCKET_NAME": Ref("AssetsBucket", "BucketName"),
            "BUCKET_KEY_PREFIX": "_assets",
        }
        assert wiring.grants == [Grant("Img", "AssetsBucket", "read")]

    def test_image_optimizer_without_prefix(self):
        wiring = compose_image_optimizer("Img", bucket=BUCKET, key_prefix=None)
        assert wiring.environment["BUCKET_KEY_PREFIX"] == ""

    def test_seeder(self):
        wiring = compose_seeder("Seeder", table=TABLE, region="us-east-1")
        assert wiring.environment["CACHE_DYNAMO_TABLE"] == Ref("TagCacheTable", "TableName")
        assert wiring.grants == [Grant("Seeder", "TagCacheTable", "read_write")]

    def test_warmer(self):
        functions = {
            "default": FunctionNode(logical_id="ServerFunction"),
            "api": FunctionNode(logical_id="ServerFunctionApi"),
        }
        wiring = compose_warmer("Warmer", functions=functions, concurrency=2)
        targets = json.loads(wiring.environment["FUNCTION_NAME"].resolve())
        assert targets == {
            "default": "${ServerFunction.FunctionName}",
            "api": "${ServerFunctionApi.FunctionName}",
        }
        assert wiring.environment["CONCURRENCY"] == "2"
        assert {g.access for g in wiring.grants} == {"invoke"}

    def test_log_forwarder(self):
        group = ResourceNode(logical_id="AccessLogsLogGroup", kind="log_group")
        logs = ResourceNode(logical_id="AccessLogsBucket", kind="bucket")
        wiring = compose_log_forwarder("Fwd", log_bucket=logs, log_group=group)
        assert wiring.environment["LOG_GROUP_NAME"] == Ref("AccessLogsLogGroup", "LogGroupName")
        assert Grant("Fwd", "AccessLogsLogGroup", "write") in wiring.grants


class TestSplitOriginMap:
    def test_excludes_default(self):
        refs = {
            "default": Ref("ServerFunctionUrl", "Url"),
            "api": Ref("ServerFunctionApiUrl", "Url"),
        }
        origin_map = json.loads(split_origin_map(refs).resolve())
        assert origin_map == {"api": {"url": "${ServerFunctionApiUrl.Url}"}}

    def test_reads_entries_added_later(self):
        refs: dict[str, Ref] = {}
        deferred = split_origin_map(refs)
        refs["fetch"] = Ref("ServerFunctionFetchUrl", "Url")
        assert list(json.loads(deferred.resolve())) == ["fetch"]


class TestMergeEnvironment:
    def test_caller_wins(self):
        wiring = FunctionWiring(environment={"A": "1", "B": "2"})
        assert merge_environment(wiring, {"B": "x", "C": "3"}) == {"A": "1", "B": "x", "C": "3"}

    def test_no_extra(self):
        wiring = FunctionWiring(environment={"A": "1"})
        merged = merge_environment(wiring, None)
        assert merged == {"A": "1"}
        assert merged is not wiring.environment
