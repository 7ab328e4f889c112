# src/manifest/layout.py — v1
"""Build output directory layout.

Path conventions for the deployable bundles under the build directory.
Only paths are computed here; bundle contents belong to the provisioning
layer.
"""

from __future__ import annotations

from pathlib import Path

from opennext_topology.config.defaults import (
    IMAGE_OPTIMIZATION_DIR,
    REVALIDATION_DIR,
    SEEDER_DIR,
    SERVER_FUNCTIONS_DIR,
    WARMER_DIR,
)
from opennext_topology.manifest.reader import BundleNotFoundError


def function_bundle_path(build_dir: Path, origin_key: str) -> Path:
    """Return server-functions/<origin_key> for a compute origin."""
    return build_dir / SERVER_FUNCTIONS_DIR / origin_key


def image_optimization_bundle_path(build_dir: Path) -> Path:
    return build_dir / IMAGE_OPTIMIZATION_DIR


def revalidation_bundle_path(build_dir: Path) -> Path:
    return build_dir / REVALIDATION_DIR


def warmer_bundle_path(build_dir: Path) -> Path:
    return build_dir / WARMER_DIR


def seeder_bundle_path(build_dir: Path) -> Path:
    return build_dir / SEEDER_DIR


def asset_source_path(build_dir: Path, copy_from: str) -> Path:
    """Return the source directory of a (normalized) copy entry."""
    return build_dir / copy_from


def ensure_bundle(path: Path, verify: bool) -> Path:
    """Return path, raising BundleNotFoundError if verify is set and it is missing."""
    if verify and not path.is_dir():
        raise BundleNotFoundError(
            f"Bundle directory not found at {path}. Re-run the OpenNext build."
        )
    return path
