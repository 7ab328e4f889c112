# src/topology/flags.py — v1
"""Feature flag resolution from the manifest and caller overrides.

Precedence is deliberately asymmetric:
  - tag cache: either source can disable it (logical OR);
  - incremental cache: manifest only, there is no caller override;
  - seeder: eligible only with an enabled tag cache and an
    initializationFunction in the manifest.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from opennext_topology.api.models import TopologyOverrides
from opennext_topology.core.models import Manifest
from opennext_topology.manifest.reader import has_initialization_function

logger = logging.getLogger(__name__)


class ResolvedFlags(BaseModel):
    """Resolved once per build; frozen for the rest of it."""

    model_config = ConfigDict(frozen=True)

    tag_cache_disabled: bool
    incremental_cache_disabled: bool
    seeder_eligible: bool

    @property
    def tag_cache_enabled(self) -> bool:
        return not self.tag_cache_disabled

    @property
    def incremental_cache_enabled(self) -> bool:
        return not self.incremental_cache_disabled


def resolve_flags(
    manifest: Manifest, overrides: TopologyOverrides | None = None
) -> ResolvedFlags:
    """Merge manifest-declared and caller-declared toggles."""
    overrides = overrides or TopologyOverrides()
    props = manifest.additional_props

    tag_cache_disabled = overrides.tag_cache.disabled is True or props.disable_tag_cache is True
    incremental_cache_disabled = props.disable_incremental_cache is True
    seeder_eligible = (
        not tag_cache_disabled and has_initialization_function(manifest)
    )

    flags = ResolvedFlags(
        tag_cache_disabled=tag_cache_disabled,
        incremental_cache_disabled=incremental_cache_disabled,
        seeder_eligible=seeder_eligible,
    )
    logger.info(
        "Resolved flags: tag_cache_disabled=%s (caller=%s, manifest=%s), "
        "incremental_cache_disabled=%s, seeder_eligible=%s",
        flags.tag_cache_disabled,
        overrides.tag_cache.disabled,
        props.disable_tag_cache,
        flags.incremental_cache_disabled,
        flags.seeder_eligible,
    )
    return flags
