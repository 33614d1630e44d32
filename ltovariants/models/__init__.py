# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""Data models for the LTO build graph."""

from .module import (
    TRANSPARENT_KINDS,
    BuildContext,
    DependencyEdge,
    DependencyKind,
    LTOMode,
    LTOProperties,
    Module,
    PropagationRequests,
)
from .policy import LTOPolicy

__all__ = [
    "BuildContext",
    "DependencyEdge",
    "DependencyKind",
    "LTOMode",
    "LTOPolicy",
    "LTOProperties",
    "Module",
    "PropagationRequests",
    "TRANSPARENT_KINDS",
]
