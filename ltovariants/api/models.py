# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""API request and response models."""

from typing import List, Optional

from pydantic import BaseModel, Field

from ltovariants.models import BuildContext, DependencyKind, LTOMode, LTOProperties


class ModuleSpec(BaseModel):
    """A module in a resolve request."""

    name: str
    lto: LTOProperties = Field(default_factory=LTOProperties)
    context: BuildContext = Field(default_factory=BuildContext)


class DependencySpec(BaseModel):
    """A dependency edge in a resolve request."""

    source: str = Field(..., description="Depending module")
    target: str = Field(..., description="Module depended on")
    kind: DependencyKind = DependencyKind.STATIC_LINK


class PolicyOverrides(BaseModel):
    """Per-request overrides of the server's LTO policy."""

    disable_lto: Optional[bool] = None
    global_thinlto: Optional[bool] = None
    use_thinlto_cache: Optional[bool] = None


class ResolveRequest(BaseModel):
    """Request to resolve LTO modes for a build graph."""

    modules: List[ModuleSpec]
    dependencies: List[DependencySpec] = Field(default_factory=list)
    policy: PolicyOverrides = Field(default_factory=PolicyOverrides)
    include_flags: bool = Field(default=False, description="Also return LTO flags")


class FlagsResponse(BaseModel):
    cflags: List[str]
    asflags: List[str]
    ldflags: List[str]


class NodeResponse(BaseModel):
    """A node of the resolved graph."""

    key: str
    name: str
    mode: Optional[LTOMode] = None
    explicit: bool = False
    clone: bool = False
    prevent_install: bool = False
    dependencies: List[str] = Field(default_factory=list)
    flags: Optional[FlagsResponse] = None
    error: Optional[str] = None


class ConfigurationErrorResponse(BaseModel):
    module: str
    message: str


class ResolveResponse(BaseModel):
    """Response from the resolve endpoint."""

    nodes: List[NodeResponse]
    clones_created: List[str]
    requests_recorded: int
    edges_retargeted: int
    errors: List[ConfigurationErrorResponse] = Field(default_factory=list)
