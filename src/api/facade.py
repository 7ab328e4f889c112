# src/api/facade.py — v1
"""Public API facade — single entry point for topology compilation.

Usage:
    from opennext_topology.api.facade import compile_topology
    topology = compile_topology(".open-next", TopologyOverrides(prefix="shop"))
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from opennext_topology.api.models import TopologyOverrides
from opennext_topology.config.settings import Settings
from opennext_topology.logging.context import set_build_context
from opennext_topology.logging.logger import setup_logging_from_settings
from opennext_topology.manifest.reader import read_manifest
from opennext_topology.topology.builder import (
    ResourceTopology,
    TopologyBuilder,
    generate_build_id,
)
from opennext_topology.topology.exporter import TopologyExporter

logger = logging.getLogger(__name__)


def compile_topology(
    build_dir: str | Path,
    overrides: TopologyOverrides | None = None,
    settings: Settings | None = None,
    configure_logging: bool = False,
) -> ResourceTopology:
    """Read the OpenNext build output and compile its resource topology.

    Args:
        build_dir: The `.open-next` build output directory.
        overrides: Caller choices for sizing, toggles and extra rules.
        settings: Global settings. Loaded from .env if None.
        configure_logging: Apply the logging section of settings to the
            package root logger before compiling.

    Returns:
        ResourceTopology holding every resource node and the routing rules.

    Raises:
        ManifestError: The manifest is missing, unparsable or invalid.
        TopologyError: The build graph would be inconsistent.
        RoutingError: A caller-supplied rule targets an unknown origin.
    """
    settings = settings or Settings()
    if configure_logging:
        setup_logging_from_settings(settings)
    overrides = overrides or TopologyOverrides()
    build_id = generate_build_id()
    prefix = overrides.prefix or settings.default_prefix
    set_build_context(build_id, prefix)

    logger.info("Compiling topology: build_dir=%s, build_id=%s", build_dir, build_id)

    manifest = read_manifest(build_dir, settings)
    builder = TopologyBuilder(
        manifest, build_dir, overrides=overrides, settings=settings, build_id=build_id,
    )
    topology = builder.build()

    logger.info(
        "Compilation complete: %d resources, %d diagnostics",
        len(topology.arena), len(topology.diagnostics),
    )
    return topology


def compile_to_dict(
    build_dir: str | Path,
    overrides: TopologyOverrides | None = None,
    settings: Settings | None = None,
    configure_logging: bool = False,
) -> dict[str, Any]:
    """compile_topology() followed by serialization to plain JSON data."""
    topology = compile_topology(
        build_dir, overrides, settings, configure_logging=configure_logging,
    )
    return TopologyExporter().to_dict(topology)
