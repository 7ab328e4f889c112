# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

Manifest shapes (as produced by `open-next build`), origin roles and
diagnostics. No module redefines these types; all imports come from
core.models.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from opennext_topology.config.defaults import (
    COMPUTE_ORIGIN_TYPES,
    STATIC_ORIGIN_TYPES,
)

_MANIFEST_CONFIG = ConfigDict(populate_by_name=True, extra="ignore")


# === MANIFEST ===


class CopyEntry(BaseModel):
    """A directory the static-assets origin uploads into the bucket."""

    model_config = _MANIFEST_CONFIG

    from_: str = Field(alias="from")
    to: str
    cached: bool = False
    versioned_sub_dir: str | None = Field(default=None, alias="versionedSubDir")


class BundleRef(BaseModel):
    """Handler + bundle directory of an auxiliary function."""

    model_config = _MANIFEST_CONFIG

    handler: str
    bundle: str


class EdgeFunction(BaseModel):
    model_config = _MANIFEST_CONFIG

    handler: str
    bundle: str
    path_resolver: str | None = Field(default=None, alias="pathResolver")


class Route(BaseModel):
    model_config = _MANIFEST_CONFIG

    regex: str
    origin: str


class Origin(BaseModel):
    """A backend target declared in the manifest."""

    model_config = _MANIFEST_CONFIG

    type: str
    copy_entries: list[CopyEntry] | None = Field(default=None, alias="copy")
    handler: str | None = None
    bundle: str | None = None
    streaming: bool = False
    wrapper: str | None = None
    converter: str | None = None
    origin_path: str | None = Field(default=None, alias="originPath")

    @property
    def is_compute(self) -> bool:
        return self.type in COMPUTE_ORIGIN_TYPES

    @property
    def is_static(self) -> bool:
        return self.type in STATIC_ORIGIN_TYPES


class Behavior(BaseModel):
    """A routing pattern bound to an origin key (or an edge function)."""

    model_config = _MANIFEST_CONFIG

    pattern: str
    origin: str | None = None
    edge_function: str | None = Field(default=None, alias="edgeFunction")


class AdditionalProps(BaseModel):
    model_config = _MANIFEST_CONFIG

    disable_tag_cache: bool = Field(default=False, alias="disableTagCache")
    disable_incremental_cache: bool = Field(
        default=False, alias="disableIncrementalCache"
    )
    initialization_function: BundleRef | None = Field(
        default=None, alias="initializationFunction"
    )
    warmer: BundleRef | None = None
    revalidation_function: BundleRef | None = Field(
        default=None, alias="revalidationFunction"
    )


class Manifest(BaseModel):
    """Normalized open-next.output.json.

    Older builds carry `version` and `routes`; newer ones omit them and
    prefix every path with the build root. Both read into this shape.
    """

    model_config = _MANIFEST_CONFIG

    version: str | None = None
    routes: list[Route] = Field(default_factory=list)
    origins: dict[str, Origin]
    behaviors: list[Behavior]
    additional_props: AdditionalProps = Field(
        default_factory=AdditionalProps, alias="additionalProps"
    )
    edge_functions: dict[str, EdgeFunction] = Field(
        default_factory=dict, alias="edgeFunctions"
    )


# === ORIGIN ROLES ===


class RoleKind(str, Enum):
    STATIC_ASSETS = "static_assets"
    IMAGE_OPTIMIZER = "image_optimizer"
    DEFAULT_COMPUTE = "default_compute"
    SPLIT_COMPUTE = "split_compute"


class OriginRole(BaseModel):
    """Role of one manifest origin. `key` is the manifest origin key."""

    model_config = ConfigDict(frozen=True)

    kind: RoleKind
    key: str

    @property
    def is_compute(self) -> bool:
        return self.kind in (RoleKind.DEFAULT_COMPUTE, RoleKind.SPLIT_COMPUTE)


# === DIAGNOSTICS ===


class Diagnostic(BaseModel):
    """Non-fatal finding surfaced on the compiled topology."""

    code: str
    message: str
    level: Literal["info", "warning"] = "warning"
