# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""Top-down propagation of LTO requirements to static dependencies.

A module built with LTO needs every static dependency compiled to bitcode in
the same mode, or those dependencies cannot take part in link-time
optimization. For each module with a Full, Thin, or Never requirement:

- Walk its transitive static-link, object-input and reuse-object-input
  dependencies (never crossing any other kind of edge).
- Record a request for that mode on every reached dependency that does not
  already build in it.

Requests are only ever set to True, so the order modules are visited in does
not change the outcome. All requests must be in place before any variant is
synthesized.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from ltovariants.errors import LTOConfigurationError
from ltovariants.graph.module_graph import ModuleGraph
from ltovariants.models import LTOMode, LTOPolicy, Module

from .resolver import Resolution, is_full, is_never, is_thin, resolve

logger = logging.getLogger(__name__)


@dataclass
class PropagationResult:
    """Outcome of a propagation pass."""

    visited: int = 0
    requests_recorded: int = 0
    errors: list[LTOConfigurationError] = field(default_factory=list)


def required_modes(resolution: Resolution, policy: LTOPolicy) -> list[LTOMode]:
    """Modes a module forces onto its static dependencies.

    Thin is only pushed down when ThinLTO is not already the default, and
    Never only when it is (otherwise there is nothing to opt out of).
    """
    modes = []
    if resolution.mode is LTOMode.FULL:
        modes.append(LTOMode.FULL)
    if resolution.mode is LTOMode.THIN and not policy.global_thinlto:
        modes.append(LTOMode.THIN)
    if resolution.never and policy.global_thinlto:
        modes.append(LTOMode.NONE)
    return modes


def _satisfies(mode: LTOMode, policy: LTOPolicy) -> Callable[[Module], bool]:
    if mode is LTOMode.FULL:
        return is_full
    if mode is LTOMode.THIN:
        return is_thin
    return lambda module: is_never(module, policy)


def _record(module: Module, mode: LTOMode) -> bool:
    """Set the request flag for ``mode``. Returns True if it was newly set."""
    requests = module.requests
    attr = {LTOMode.FULL: "full", LTOMode.THIN: "thin", LTOMode.NONE: "no_lto"}[mode]
    if getattr(requests, attr):
        return False
    setattr(requests, attr, True)
    return True


def propagate_from(
    graph: ModuleGraph,
    index: int,
    mode: LTOMode,
    policy: LTOPolicy,
) -> int:
    """Request ``mode`` on every static dependency below ``index``.

    The walk does not descend past a dependency that already builds in
    ``mode`` on its own: that module pushes the mode to its own subtree.
    A dependency with contradictory settings pushes nothing, so the walk
    passes through it without recording a request.

    Returns:
        Number of request flags newly set.
    """
    satisfied = _satisfies(mode, policy)
    recorded = 0

    def should_visit(dep: int, parent: int) -> bool:
        module = graph.module(dep)
        return not satisfied(module) or not _resolves(module, policy)

    for dep in graph.walk_deps(index, should_visit):
        module = graph.module(dep)
        if not satisfied(module) and _record(module, mode):
            recorded += 1
    return recorded


def _resolves(module: Module, policy: LTOPolicy) -> bool:
    try:
        resolve(module, policy)
    except LTOConfigurationError:
        return False
    return True


def propagate(graph: ModuleGraph, policy: LTOPolicy) -> PropagationResult:
    """Record LTO requests on the static dependencies of every module.

    A module whose own properties are contradictory is reported in
    ``errors`` and propagates nothing; the rest of the graph is unaffected.

    Raises:
        DependencyCycleError: If the graph is not acyclic.
    """
    result = PropagationResult()

    for index in graph.top_down():
        module = graph.module(index)
        result.visited += 1
        try:
            resolution = resolve(module, policy)
        except LTOConfigurationError as e:
            logger.error(f"LTO configuration error in {e.module}: {e.message}")
            result.errors.append(e)
            continue

        for mode in required_modes(resolution, policy):
            recorded = propagate_from(graph, index, mode, policy)
            if recorded:
                logger.debug(f"{module.key}: requested {mode.value} on {recorded} dependencies")
            result.requests_recorded += recorded

    logger.info(
        f"Propagated LTO requirements across {result.visited} modules "
        f"({result.requests_recorded} requests, {len(result.errors)} errors)"
    )
    return result
