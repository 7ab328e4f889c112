# src/api/models.py — v1
"""API-level models: caller overrides for a topology compilation.

Every field is optional; an empty TopologyOverrides() compiles the
manifest with the defaults from config.defaults.
"""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from opennext_topology.config.defaults import PREFIX_PATTERN

_PREFIX_RE = re.compile(PREFIX_PATTERN)


class FunctionOverrides(BaseModel):
    """Per-function overrides. `existing_function` imports a function instead."""

    memory_size: int | None = Field(default=None, gt=0)
    timeout: int | None = Field(default=None, gt=0)
    architecture: Literal["arm64", "x86_64"] | None = None
    runtime: Literal["nodejs20.x", "nodejs22.x"] | None = None
    environment: dict[str, str] = Field(default_factory=dict)
    existing_function: str | None = None
    log_retention: int | None = Field(default=None, gt=0)
    enable_tracing: bool = True
    reserved_concurrent_executions: int | None = Field(default=None, ge=0)


class CachePolicyOverrides(BaseModel):
    default_ttl: int | None = Field(default=None, ge=0)
    max_ttl: int | None = Field(default=None, ge=0)
    min_ttl: int | None = Field(default=None, ge=0)
    additional_headers: list[str] = Field(default_factory=list)


class RuleOverride(BaseModel):
    """A caller-supplied routing rule, keyed by pattern in DistributionOverrides.

    `origin` is a manifest origin key. `cache_policy` None means the
    dynamic server cache policy; "CachingOptimized" selects the managed one.
    """

    origin: str
    allowed_methods: Literal["GET_HEAD", "GET_HEAD_OPTIONS", "ALL"] = "ALL"
    cache_policy: Literal["CachingOptimized"] | None = None
    forward_headers: bool = True
    response_headers: bool = True
    host_rewrite: bool = True


class DistributionOverrides(BaseModel):
    domain_names: list[str] = Field(default_factory=list)
    certificate_arn: str | None = None
    price_class: Literal["PriceClass_100", "PriceClass_200", "PriceClass_All"] = (
        "PriceClass_100"
    )
    cors: bool = False
    cors_allow_origins: list[str] | None = None
    hsts: bool = True
    hsts_max_age: int | None = Field(default=None, gt=0)
    cache_policy: CachePolicyOverrides = Field(default_factory=CachePolicyOverrides)
    additional_rules: dict[str, RuleOverride] = Field(default_factory=dict)
    geo_restriction_locations: list[str] | None = None

    @model_validator(mode="after")
    def check_certificate(self) -> DistributionOverrides:
        if self.domain_names and not self.certificate_arn:
            raise ValueError("certificate_arn is required when domain_names is set")
        return self


class TagCacheOverrides(BaseModel):
    disabled: bool = False
    existing_table: str | None = None
    billing_mode: Literal["PAY_PER_REQUEST", "PROVISIONED"] = "PAY_PER_REQUEST"


class WafOverrides(BaseModel):
    enabled: bool = True
    existing_web_acl_arn: str | None = None
    additional_rules: list[dict[str, Any]] = Field(default_factory=list)


class DnsOverrides(BaseModel):
    hosted_zone_id: str
    zone_name: str | None = None
    record_names: list[str] | None = None
    evaluate_target_health: bool = False


class WarmerOverrides(BaseModel):
    enabled: bool = False
    schedule: str | None = None
    concurrency: int | None = Field(default=None, ge=1)
    function: FunctionOverrides | None = None


class LogsOverrides(BaseModel):
    enabled: bool = False
    existing_log_bucket: str | None = None
    log_retention: int | None = Field(default=None, gt=0)
    function: FunctionOverrides | None = None


class RevalidationOverrides(BaseModel):
    encryption_key_arn: str | None = None
    function: FunctionOverrides | None = None


class SeederOverrides(BaseModel):
    function: FunctionOverrides | None = None
    trigger_token: str | None = None


class AlarmOverrides(BaseModel):
    enabled: bool = False
    sns_topic_arn: str | None = None
    dlq_message_threshold: int | None = Field(default=None, ge=1)
    lambda_error_threshold: int | None = Field(default=None, ge=1)
    cloudfront_5xx_threshold: float | None = Field(default=None, gt=0)


class TopologyOverrides(BaseModel):
    """Everything a caller can change about the compiled topology."""

    prefix: str | None = None
    region: str | None = None
    server_function: FunctionOverrides | None = None
    image_optimization_function: FunctionOverrides | None = None
    split_functions: dict[str, FunctionOverrides] = Field(default_factory=dict)
    distribution: DistributionOverrides = Field(default_factory=DistributionOverrides)
    waf: WafOverrides = Field(default_factory=WafOverrides)
    dns: DnsOverrides | None = None
    warmer: WarmerOverrides = Field(default_factory=WarmerOverrides)
    logs: LogsOverrides = Field(default_factory=LogsOverrides)
    revalidation: RevalidationOverrides = Field(default_factory=RevalidationOverrides)
    tag_cache: TagCacheOverrides = Field(default_factory=TagCacheOverrides)
    seeder: SeederOverrides = Field(default_factory=SeederOverrides)
    alarms: AlarmOverrides = Field(default_factory=AlarmOverrides)
    assets_bucket: str | None = None
    assets_removal_policy: Literal["destroy", "retain"] = "destroy"

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: str | None) -> str | None:
        if v is not None and not _PREFIX_RE.match(v):
            raise ValueError("prefix must be lowercase alphanumerics and dashes")
        return v
