# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides manifest payloads in both historical shapes, parsed manifests and
on-disk build directories. No network or provisioning calls.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from opennext_topology.config.settings import Settings
from opennext_topology.core.models import Manifest
from opennext_topology.logging.context import clear_context
from opennext_topology.manifest.reader import normalize_manifest, parse_manifest


def make_manifest_data(
    *,
    split: tuple[str, ...] = (),
    with_static: bool = True,
    with_image: bool = True,
    prefixed: bool = False,
    additional_props: dict[str, Any] | None = None,
    extra_behaviors: list[dict[str, Any]] | None = None,
    edge_functions: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a manifest payload.

    `prefixed=True` produces the v3.9+ shape: build-root prefixed paths, no
    `version` and no `routes`.
    """
    root = ".open-next/" if prefixed else ""

    origins: dict[str, Any] = {
        "default": {
            "type": "function",
            "handler": "index.handler",
            "bundle": f"{root}server-functions/default",
            "streaming": False,
        },
    }
    behaviors: list[dict[str, Any]] = []

    if with_image:
        origins["imageOptimizer"] = {
            "type": "function",
            "handler": "index.handler",
            "bundle": f"{root}image-optimization-function",
        }
        behaviors.append({"pattern": "_next/image*", "origin": "imageOptimizer"})

    if with_static:
        origins["s3"] = {
            "type": "s3",
            "originPath": "_assets",
            "copy": [
                {"from": f"{root}assets", "to": "_assets", "cached": True,
                 "versionedSubDir": "_next"},
                {"from": f"{root}cache", "to": "_cache", "cached": False},
            ],
        }
        behaviors.append({"pattern": "_next/*", "origin": "s3"})

    for key in split:
        origins[key] = {
            "type": "function",
            "handler": "index.handler",
            "bundle": f"{root}server-functions/{key}",
            "streaming": True,
        }
        behaviors.append({"pattern": f"{key}/*", "origin": key})

    behaviors.extend(extra_behaviors or [])
    behaviors.append({"pattern": "*", "origin": "default"})

    data: dict[str, Any] = {
        "origins": origins,
        "behaviors": behaviors,
        "additionalProps": {
            "revalidationFunction": {
                "handler": "index.handler",
                "bundle": f"{root}revalidation-function",
            },
            **(additional_props or {}),
        },
        "edgeFunctions": edge_functions or {},
    }
    if not prefixed:
        data["version"] = "3.1.3"
        data["routes"] = [{"regex": "^/.*$", "origin": "default"}]
    return data


def build_manifest(**kwargs: Any) -> Manifest:
    """Parsed and normalized manifest from make_manifest_data() arguments."""
    return normalize_manifest(parse_manifest(make_manifest_data(**kwargs)))


# === FIXTURES: Settings and context ===


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any .env file."""
    return Settings(_env_file=None)


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()


# === FIXTURES: Manifests ===


@pytest.fixture
def manifest_data() -> dict[str, Any]:
    """Pre-v3.9 manifest payload with static assets and image optimizer."""
    return make_manifest_data()


@pytest.fixture
def manifest_data_v39() -> dict[str, Any]:
    """v3.9+ payload with build-root prefixed paths."""
    return make_manifest_data(prefixed=True)


@pytest.fixture
def manifest() -> Manifest:
    return build_manifest()


@pytest.fixture
def split_manifest() -> Manifest:
    """Manifest with two split compute origins."""
    return build_manifest(split=("api", "fetch"))


# === FIXTURES: Build directories ===


@pytest.fixture
def write_build_dir(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a manifest payload into a fresh build directory."""

    def _write(data: dict[str, Any] | str, name: str = "open-next.output.json") -> Path:
        build_dir = tmp_path / ".open-next"
        build_dir.mkdir(exist_ok=True)
        content = data if isinstance(data, str) else json.dumps(data)
        (build_dir / name).write_text(content, encoding="utf-8")
        return build_dir

    return _write


@pytest.fixture
def build_dir(write_build_dir: Callable[..., Path], manifest_data: dict[str, Any]) -> Path:
    return write_build_dir(manifest_data)


@pytest.fixture
def manifest_payload() -> Callable[..., dict[str, Any]]:
    """Factory: make_manifest_data() for tests that tweak the payload."""
    return make_manifest_data


@pytest.fixture
def make_manifest() -> Callable[..., Manifest]:
    """Factory: parsed and normalized manifest from payload options."""
    return build_manifest
