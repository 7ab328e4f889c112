# tests/unit/manifest/test_unit_layout.py — v1
"""Tests for manifest/layout.py — bundle path conventions."""

from __future__ import annotations

from pathlib import Path

import pytest

from opennext_topology.manifest import layout
from opennext_topology.manifest.reader import BundleNotFoundError


class TestBundlePaths:
    def test_function_bundle(self):
        assert layout.function_bundle_path(Path("/b"), "api") == Path("/b/server-functions/api")

    def test_auxiliary_bundles(self):
        root = Path("/b")
        assert layout.image_optimization_bundle_path(root).name == "image-optimization-function"
        assert layout.revalidation_bundle_path(root).name == "revalidation-function"
        assert layout.warmer_bundle_path(root).name == "warmer-function"
        assert layout.seeder_bundle_path(root).name == "dynamodb-provider"

    def test_asset_source(self):
        assert layout.asset_source_path(Path("/b"), "assets") == Path("/b/assets")


class TestEnsureBundle:
    def test_unverified_passes_through(self, tmp_path):
        missing = tmp_path / "nope"
        assert layout.ensure_bundle(missing, verify=False) == missing

    def test_verified_present(self, tmp_path):
        assert layout.ensure_bundle(tmp_path, verify=True) == tmp_path

    def test_verified_missing(self, tmp_path):
        with pytest.raises(BundleNotFoundError, match="Re-run the OpenNext build"):
            layout.ensure_bundle(tmp_path / "nope", verify=True)
