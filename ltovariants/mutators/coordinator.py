# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""Runs the LTO passes in order over a whole graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ltovariants.errors import LTOConfigurationError
from ltovariants.graph.module_graph import ModuleGraph
from ltovariants.models import LTOPolicy

from .propagation import PropagationResult, propagate
from .variants import SynthesisResult, synthesize

logger = logging.getLogger(__name__)


@dataclass
class MutationResult:
    """Combined result of propagation and synthesis."""

    policy: LTOPolicy
    propagation: PropagationResult
    synthesis: SynthesisResult
    errors: list[LTOConfigurationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        """Raise the first configuration error, if any."""
        if self.errors:
            raise self.errors[0]


def run_lto_mutators(
    graph: ModuleGraph,
    policy: Optional[LTOPolicy] = None,
) -> MutationResult:
    """Propagate LTO requirements, then synthesize variants.

    Propagation covers the entire graph before the first clone is created,
    since a module's requests are only complete once all of its consumers
    have been visited.

    Args:
        graph: The build graph, mutated in place.
        policy: Global switches. Read from the environment if None.

    Returns:
        MutationResult with per-pass statistics and configuration errors,
        one per offending module.
    """
    if policy is None:
        policy = LTOPolicy()
    logger.debug(f"LTO policy: {policy!r}")

    propagation = propagate(graph, policy)
    synthesis = synthesize(graph, policy)

    errors: list[LTOConfigurationError] = []
    seen: set[str] = set()
    for error in propagation.errors + synthesis.errors:
        if error.module not in seen:
            seen.add(error.module)
            errors.append(error)

    return MutationResult(
        policy=policy,
        propagation=propagation,
        synthesis=synthesis,
        errors=errors,
    )
