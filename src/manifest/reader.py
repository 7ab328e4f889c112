# src/manifest/reader.py — v1
"""Manifest reader: load, validate and normalize open-next.output.json.

Reads synchronously; the whole compilation finishes before any resource
definition is handed out, so there is nothing to overlap with.

Two historical manifest shapes exist. Builds up to v3.8 write bundle and
copy paths relative to the build directory (`assets`); v3.9+ write them
relative to the project root (`.open-next/assets`) and drop `version` and
`routes`. Everything is normalized to build-directory-relative paths here.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from opennext_topology.config.defaults import (
    DEFAULT_ORIGIN_KEY,
    RESERVED_ORIGIN_KEYS,
    STATIC_ORIGIN_KEY,
)
from opennext_topology.config.settings import Settings
from opennext_topology.core.models import CopyEntry, Manifest

logger = logging.getLogger(__name__)

DEFAULT_BUILD_ROOT_PREFIX = ".open-next/"


class ManifestError(Exception):
    """Base class for fatal manifest problems."""


class ManifestNotFound(ManifestError):
    """Raised when the manifest file does not exist."""


class ManifestParseError(ManifestError):
    """Raised when the manifest is not valid JSON."""


class ManifestValidationError(ManifestError):
    """Raised when the manifest structure is unusable."""


class BundleNotFoundError(ManifestError):
    """Raised when bundle verification is on and a bundle directory is missing."""


def normalize_bundle_path(path: str, prefix: str = DEFAULT_BUILD_ROOT_PREFIX) -> str:
    """Strip the build-root prefix from a bundle/copy path if present.

    Paths without the prefix pass through unchanged, so normalizing twice
    gives the same result as normalizing once.
    """
    if path.startswith(prefix):
        return path[len(prefix):]
    return path


def read_manifest(build_dir: str | Path, settings: Settings | None = None) -> Manifest:
    """Read and validate the manifest inside a build output directory.

    Args:
        build_dir: The `.open-next` build output directory.
        settings: Supplies the manifest filename and build-root prefix.

    Returns:
        Validated Manifest with every path normalized.

    Raises:
        ManifestNotFound: The manifest file is absent.
        ManifestParseError: The file is not valid JSON.
        ManifestValidationError: origins/behaviors/default origin missing or invalid.
    """
    settings = settings or Settings()
    manifest_path = Path(build_dir) / settings.manifest_filename

    if not manifest_path.is_file():
        raise ManifestNotFound(
            f"OpenNext manifest not found at {manifest_path}. "
            f"Run `{settings.build_command}` before compiling the topology."
        )

    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ManifestParseError(
            f"Failed to parse OpenNext manifest at {manifest_path}: {exc}"
        ) from exc

    manifest = parse_manifest(data, source=str(manifest_path))
    manifest = normalize_manifest(manifest, prefix=settings.build_root_prefix)

    logger.info(
        "Read manifest %s: version=%s, %d origins, %d behaviors",
        manifest_path,
        manifest.version or "unversioned",
        len(manifest.origins),
        len(manifest.behaviors),
    )
    return manifest


def parse_manifest(data: Any, source: str = "<memory>") -> Manifest:
    """Validate decoded manifest JSON into a Manifest model."""
    if not isinstance(data, dict):
        raise ManifestValidationError(
            f"Invalid OpenNext manifest at {source}: top level must be an object."
        )

    origins = data.get("origins")
    if not origins or not isinstance(origins, dict):
        raise ManifestValidationError(
            f'Invalid OpenNext manifest at {source}: missing or invalid "origins" field.'
        )

    behaviors = data.get("behaviors")
    if behaviors is None or not isinstance(behaviors, list):
        raise ManifestValidationError(
            f'Invalid OpenNext manifest at {source}: missing or invalid "behaviors" field.'
        )

    if not origins.get(DEFAULT_ORIGIN_KEY):
        raise ManifestValidationError(
            f'Invalid OpenNext manifest at {source}: missing "default" origin.'
        )

    try:
        manifest = Manifest.model_validate(data)
    except ValidationError as exc:
        raise ManifestValidationError(
            f"Invalid OpenNext manifest at {source}: {exc}"
        ) from exc

    if not manifest.origins[DEFAULT_ORIGIN_KEY].is_compute:
        raise ManifestValidationError(
            f'Invalid OpenNext manifest at {source}: "default" origin must be '
            f"a compute origin, got type {manifest.origins[DEFAULT_ORIGIN_KEY].type!r}."
        )

    return manifest


def normalize_manifest(
    manifest: Manifest, prefix: str = DEFAULT_BUILD_ROOT_PREFIX
) -> Manifest:
    """Return a copy with every copy/bundle path made build-directory-relative."""
    origins = {}
    for key, origin in manifest.origins.items():
        update: dict[str, Any] = {}
        if origin.bundle is not None:
            update["bundle"] = normalize_bundle_path(origin.bundle, prefix)
        if origin.copy_entries is not None:
            update["copy_entries"] = [
                entry.model_copy(
                    update={"from_": normalize_bundle_path(entry.from_, prefix)}
                )
                for entry in origin.copy_entries
            ]
        origins[key] = origin.model_copy(update=update)

    props = manifest.additional_props
    props_update: dict[str, Any] = {}
    for field_name in ("initialization_function", "warmer", "revalidation_function"):
        ref = getattr(props, field_name)
        if ref is not None:
            props_update[field_name] = ref.model_copy(
                update={"bundle": normalize_bundle_path(ref.bundle, prefix)}
            )

    edge_functions = {
        key: fn.model_copy(update={"bundle": normalize_bundle_path(fn.bundle, prefix)})
        for key, fn in manifest.edge_functions.items()
    }

    return manifest.model_copy(
        update={
            "origins": origins,
            "additional_props": props.model_copy(update=props_update),
            "edge_functions": edge_functions,
        }
    )


def get_split_function_origins(manifest: Manifest) -> list[str]:
    """Non-reserved compute origin keys, in manifest order."""
    return [
        key
        for key, origin in manifest.origins.items()
        if key not in RESERVED_ORIGIN_KEYS and origin.is_compute
    ]


def get_asset_copy_entries(manifest: Manifest) -> list[CopyEntry]:
    """Copy entries of the static-assets origin (empty when there is none)."""
    static_origin = manifest.origins.get(STATIC_ORIGIN_KEY)
    if static_origin is None or not static_origin.copy_entries:
        return []
    return list(static_origin.copy_entries)


def get_static_origin_path(manifest: Manifest) -> str | None:
    """Origin path of the static-assets origin, None for older manifests."""
    static_origin = manifest.origins.get(STATIC_ORIGIN_KEY)
    return static_origin.origin_path if static_origin else None


def has_initialization_function(manifest: Manifest) -> bool:
    return manifest.additional_props.initialization_function is not None
