# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""Graph mutators deciding and materializing LTO modes."""

from .coordinator import MutationResult, run_lto_mutators
from .propagation import PropagationResult, propagate
from .resolver import (
    Resolution,
    default_thin_lto,
    dependency_variation,
    is_full,
    is_never,
    is_thin,
    resolve,
)
from .variants import SynthesisResult, synthesize

__all__ = [
    "default_thin_lto",
    "dependency_variation",
    "is_full",
    "is_never",
    "is_thin",
    "MutationResult",
    "propagate",
    "PropagationResult",
    "Resolution",
    "resolve",
    "run_lto_mutators",
    "synthesize",
    "SynthesisResult",
]
