# tests/unit/config/test_unit_settings.py — v1
"""Tests for config/settings.py — typed Settings and validation rules."""

from __future__ import annotations

import pytest

from opennext_topology.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_manifest_location(self):
        s = Settings(_env_file=None)
        assert s.manifest_filename == "open-next.output.json"
        assert s.build_root_prefix == ".open-next/"

    def test_default_prefix(self):
        s = Settings(_env_file=None)
        assert s.default_prefix == "opennext"

    def test_bundle_verification_off(self):
        s = Settings(_env_file=None)
        assert s.verify_bundles is False

    def test_default_logging(self):
        s = Settings(_env_file=None)
        assert s.log_level == "INFO"
        assert s.log_format == "json"
        assert s.log_file is None


class TestSettingsEnvironment:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("OPENNEXT_DEFAULT_PREFIX", "shop")
        monkeypatch.setenv("OPENNEXT_VERIFY_BUNDLES", "true")
        s = Settings(_env_file=None)
        assert s.default_prefix == "shop"
        assert s.verify_bundles is True


class TestSettingsValidation:
    def test_prefix_must_be_dns_safe(self):
        with pytest.raises(ValueError, match="default_prefix"):
            Settings(_env_file=None, default_prefix="My_App")

    def test_build_root_prefix_trailing_slash(self):
        with pytest.raises(ConfigurationError, match="BUILD_ROOT_PREFIX"):
            Settings(_env_file=None, build_root_prefix=".open-next")

    def test_manifest_must_be_json(self):
        with pytest.raises(ConfigurationError, match="MANIFEST_FILENAME"):
            Settings(_env_file=None, manifest_filename="output.yaml")

    def test_rotation_checked_only_with_log_file(self, tmp_path):
        Settings(_env_file=None, log_rotation="huge")
        with pytest.raises(ConfigurationError, match="LOG_ROTATION"):
            Settings(_env_file=None, log_file=tmp_path / "x.log", log_rotation="huge")

    def test_negative_retention(self):
        with pytest.raises(ValueError, match="log_retention"):
            Settings(_env_file=None, log_retention=-1)


class TestLoadSettings:
    def test_overrides_applied(self):
        s = load_settings(_env_file=None, default_prefix="blog")
        assert s.default_prefix == "blog"
