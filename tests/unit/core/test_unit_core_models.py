# tests/unit/core/test_unit_core_models.py — v1
"""Tests for core/models.py — manifest shapes and origin roles."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from opennext_topology.core.models import (
    Behavior,
    CopyEntry,
    Manifest,
    Origin,
    OriginRole,
    RoleKind,
)


class TestManifestAliases:
    def test_copy_entry_from_alias(self):
        entry = CopyEntry.model_validate({"from": "assets", "to": "_assets", "cached": True})
        assert entry.from_ == "assets"
        assert entry.versioned_sub_dir is None

    def test_origin_copy_and_origin_path(self):
        origin = Origin.model_validate(
            {"type": "s3", "originPath": "_assets", "copy": [{"from": "a", "to": "b"}]}
        )
        assert origin.origin_path == "_assets"
        assert origin.copy_entries[0].to == "b"
        assert origin.is_static and not origin.is_compute

    def test_behavior_edge_function(self):
        behavior = Behavior.model_validate({"pattern": "/mw", "edgeFunction": "middleware"})
        assert behavior.origin is None
        assert behavior.edge_function == "middleware"

    def test_manifest_defaults(self):
        manifest = Manifest.model_validate(
            {"origins": {"default": {"type": "function"}}, "behaviors": []}
        )
        assert manifest.additional_props.disable_tag_cache is False
        assert manifest.edge_functions == {}
        assert manifest.routes == []


class TestOriginRole:
    def test_frozen(self):
        role = OriginRole(kind=RoleKind.SPLIT_COMPUTE, key="api")
        with pytest.raises(ValidationError):
            role.key = "other"

    @pytest.mark.parametrize(
        "kind,expected",
        [
            (RoleKind.DEFAULT_COMPUTE, True),
            (RoleKind.SPLIT_COMPUTE, True),
            (RoleKind.STATIC_ASSETS, False),
            (RoleKind.IMAGE_OPTIMIZER, False),
        ],
    )
    def test_is_compute(self, kind, expected):
        assert OriginRole(kind=kind, key="k").is_compute is expected
