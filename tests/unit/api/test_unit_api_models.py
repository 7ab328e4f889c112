# tests/unit/api/test_unit_api_models.py — v1
"""Tests for api/models.py — caller override models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from opennext_topology.api.models import (
    DistributionOverrides,
    DnsOverrides,
    FunctionOverrides,
    RuleOverride,
    TagCacheOverrides,
    TopologyOverrides,
)


class TestTopologyOverrides:
    def test_empty_defaults(self):
        o = TopologyOverrides()
        assert o.prefix is None
        assert o.waf.enabled is True
        assert o.warmer.enabled is False
        assert o.tag_cache.disabled is False
        assert o.dns is None
        assert o.assets_removal_policy == "destroy"

    def test_from_dict(self):
        o = TopologyOverrides.model_validate(
            {
                "prefix": "shop",
                "split_functions": {"api": {"memory_size": 2048}},
                "distribution": {"additional_rules": {"rss.xml": {"origin": "default"}}},
            }
        )
        assert o.split_functions["api"].memory_size == 2048
        assert o.distribution.additional_rules["rss.xml"].allowed_methods == "ALL"


class TestValidation:
    def test_prefix_must_be_dns_safe(self):
        with pytest.raises(ValidationError, match="lowercase alphanumerics"):
            TopologyOverrides(prefix="My_App")
        with pytest.raises(ValidationError):
            TopologyOverrides(prefix="shop-")

    def test_valid_prefix(self):
        assert TopologyOverrides(prefix="shop-2").prefix == "shop-2"
        assert TopologyOverrides(prefix=None).prefix is None

    def test_unknown_billing_mode(self):
        with pytest.raises(ValidationError):
            TagCacheOverrides(billing_mode="ON_DEMAND")

    def test_domain_names_need_certificate(self):
        with pytest.raises(ValidationError, match="certificate_arn"):
            DistributionOverrides(domain_names=["example.com"])

    def test_domain_names_with_certificate(self):
        d = DistributionOverrides(domain_names=["example.com"], certificate_arn="arn:cert")
        assert d.domain_names == ["example.com"]

    def test_positive_memory(self):
        with pytest.raises(ValidationError):
            FunctionOverrides(memory_size=0)

    def test_unknown_architecture(self):
        with pytest.raises(ValidationError):
            FunctionOverrides(architecture="mips")

    def test_rule_methods(self):
        with pytest.raises(ValidationError):
            RuleOverride(origin="default", allowed_methods="POST")

    def test_dns_requires_zone(self):
        with pytest.raises(ValidationError):
            DnsOverrides()
