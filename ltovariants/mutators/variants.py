# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""Bottom-up synthesis of LTO variants.

Each module that was asked for a mode it does not build in gets one clone per
such mode. The original module stays as the default variant, so consumers
that never asked for LTO keep linking it. Dependents are then rewired to the
clone matching the mode they link in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ltovariants.errors import LTOConfigurationError
from ltovariants.graph.module_graph import ModuleGraph
from ltovariants.models import LTOMode, LTOPolicy, Module

from .resolver import dependency_variation, is_full, is_never, is_thin, resolve

logger = logging.getLogger(__name__)


@dataclass
class SynthesisResult:
    """Outcome of a synthesis pass."""

    clones_created: list[str] = field(default_factory=list)
    clones_reused: list[str] = field(default_factory=list)
    edges_retargeted: int = 0
    errors: list[LTOConfigurationError] = field(default_factory=list)


def needed_modes(module: Module, policy: LTOPolicy) -> list[LTOMode]:
    """Requested modes the module's default variant does not build in."""
    modes = []
    if module.requests.full and not is_full(module):
        modes.append(LTOMode.FULL)
    if module.requests.thin and not is_thin(module):
        modes.append(LTOMode.THIN)
    if module.requests.no_lto and not is_never(module, policy):
        modes.append(LTOMode.NONE)
    return modes


def select_target(graph: ModuleGraph, target: int, mode: LTOMode | None) -> int:
    """Variant of ``target`` that a consumer linking in ``mode`` should use.

    Falls back to the default variant when no clone exists for that mode, e.g.
    because the dependency already builds in it.
    """
    base = graph.base_of(target)
    if mode is None:
        return base
    clone = graph.find_variant(base, mode)
    return base if clone is None else clone


def rewire(graph: ModuleGraph, index: int, policy: LTOPolicy) -> int:
    """Point the transparent edges of ``index`` at the variants it links.

    Returns:
        Number of edges whose target changed.
    """
    mode = dependency_variation(graph.module(index), policy)
    moved = 0
    for edge_index in graph.outgoing(index):
        edge = graph.edge(edge_index)
        if not edge.transparent:
            continue
        if graph.retarget_edge(edge_index, select_target(graph, edge.target, mode)):
            moved += 1
    return moved


def synthesize(graph: ModuleGraph, policy: LTOPolicy) -> SynthesisResult:
    """Create the LTO variants recorded by propagation and rewire dependents.

    Must run after propagation has finished for the whole graph. Running it
    again on an already synthesized graph reuses the existing clones.

    Raises:
        DependencyCycleError: If the graph is not acyclic.
    """
    result = SynthesisResult()

    for index in graph.bottom_up():
        module = graph.module(index)
        if module.is_clone:
            # Clones are terminal: never cloned again, requests dropped.
            module.requests.clear()
            continue

        try:
            resolve(module, policy)
        except LTOConfigurationError as e:
            result.errors.append(e)
            continue

        for mode in needed_modes(module, policy):
            existing = graph.find_variant(index, mode)
            if existing is not None:
                result.clones_reused.append(graph.module(existing).key)
                continue
            clone = graph.module(graph.clone_module(index, mode))
            logger.debug(f"Created {clone.key}")
            result.clones_created.append(clone.key)
        module.requests.clear()

        # Dependencies were handled earlier in this pass, so their clones
        # already exist.
        result.edges_retargeted += rewire(graph, index, policy)
        for variant in graph.variants_of(index):
            result.edges_retargeted += rewire(graph, variant, policy)

    logger.info(
        f"Synthesized {len(result.clones_created)} LTO variants "
        f"({len(result.clones_reused)} reused, {result.edges_retargeted} edges retargeted)"
    )
    return result
