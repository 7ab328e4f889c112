# tests/unit/topology/test_unit_classifier.py — v1
"""Tests for topology/classifier.py — origin roles."""

from __future__ import annotations

from opennext_topology.core.models import Origin, RoleKind
from opennext_topology.topology.classifier import classify, classify_all, split_compute_keys


def _origins(**types: str) -> dict[str, Origin]:
    return {key: Origin(type=t) for key, t in types.items()}


class TestClassify:
    def test_reserved_keys(self):
        origins = _origins(default="function", s3="s3", imageOptimizer="function")
        assert classify("default", origins).kind is RoleKind.DEFAULT_COMPUTE
        assert classify("s3", origins).kind is RoleKind.STATIC_ASSETS
        assert classify("imageOptimizer", origins).kind is RoleKind.IMAGE_OPTIMIZER

    def test_non_reserved_compute_is_split(self):
        role = classify("api", _origins(api="function"))
        assert role.kind is RoleKind.SPLIT_COMPUTE
        assert role.key == "api"

    def test_compute_type_alias(self):
        assert classify("api", _origins(api="compute")).kind is RoleKind.SPLIT_COMPUTE

    def test_non_reserved_static_has_no_role(self):
        assert classify("media", _origins(media="s3")) is None

    def test_unknown_key(self):
        assert classify("ghost", _origins(default="function")) is None


class TestClassifyAll:
    def test_keeps_manifest_order_and_drops_roleless(self):
        origins = _origins(default="function", zeta="function", media="s3", alpha="function")
        roles = classify_all(origins)
        assert list(roles) == ["default", "zeta", "alpha"]
        assert split_compute_keys(roles) == ["zeta", "alpha"]

    def test_no_splits(self):
        roles = classify_all(_origins(default="function", s3="s3"))
        assert split_compute_keys(roles) == []
