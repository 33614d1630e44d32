# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""LTO compiler and linker flags for a resolved module variant.

Flags are returned as lists per tool; joining them into a command line is
left to the build system.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field

from ltovariants.errors import LTOConfigurationError
from ltovariants.graph.module_graph import ModuleGraph
from ltovariants.models import LTOMode, LTOPolicy, Module
from ltovariants.mutators.resolver import resolve

THIN_LTO_CFLAG = "-flto=thin -fsplit-lto-unit"
FULL_LTO_CFLAG = "-flto"
# Default ThinLTO is run at -O0 during the link to keep link times down.
DEFAULT_THIN_LDFLAG = "-Wl,--lto-O0"
WHOLE_PROGRAM_VTABLES_CFLAG = "-fwhole-program-vtables"

THINLTO_CACHE_DIR = "thinlto-cache"
THINLTO_CACHE_DIR_FLAG = "-Wl,--thinlto-cache-dir="
THINLTO_CACHE_POLICY_FLAG = "-Wl,--thinlto-cache-policy="
# Lesser of 10% of free disk space and 10GB.
THINLTO_CACHE_POLICY = "cache_size=10%:cache_size_bytes=10g"

# Without a profile, cap cross-TU inlining to balance size and speed.
CONSERVATIVE_INLINE_LDFLAGS = [
    "-Wl,-plugin-opt,-import-instr-limit=40",
    "-Wl,-mllvm,-inline-threshold=600",
    "-Wl,-mllvm,-inlinehint-threshold=750",
    "-Wl,-mllvm,-unroll-threshold=600",
]

FUZZER_CFLAG = "-fsanitize=fuzzer-no-link"
# TODO: drop once LTO links correctly on riscv64.
UNSUPPORTED_ARCHES = {"riscv64"}


@dataclass
class LTOFlags:
    """Flags to add per tool."""

    cflags: list[str] = field(default_factory=list)
    asflags: list[str] = field(default_factory=list)
    ldflags: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.cflags or self.asflags or self.ldflags)


def use_clang_lld(module: Module) -> bool:
    if module.lto.use_clang_lld is not None:
        return module.lto.use_clang_lld
    return True


def lto_flags(module: Module, policy: LTOPolicy) -> LTOFlags:
    """Compute the LTO flags of one module variant.

    Raises:
        LTOConfigurationError: If the module sets both full and thin.
    """
    flags = LTOFlags()
    ctx = module.context

    # LTO breaks fuzzer builds.
    if FUZZER_CFLAG in ctx.cflags:
        return flags
    if ctx.arch in UNSUPPORTED_ARCHES:
        return flags

    resolution = resolve(module, policy)
    if not resolution.enabled:
        return flags

    if resolution.mode is LTOMode.FULL:
        cflag = FULL_LTO_CFLAG
    else:
        cflag = THIN_LTO_CFLAG

    flags.cflags.append(cflag)
    flags.asflags.append(cflag)
    flags.ldflags.append(cflag)
    if resolution.default_thin:
        flags.ldflags.append(DEFAULT_THIN_LDFLAG)

    if module.lto.whole_program_vtables:
        flags.cflags.append(WHOLE_PROGRAM_VTABLES_CFLAG)

    if resolution.mode is LTOMode.THIN and policy.use_thinlto_cache and use_clang_lld(module):
        cache_dir = posixpath.join(policy.out_dir, THINLTO_CACHE_DIR)
        flags.ldflags.append(THINLTO_CACHE_DIR_FLAG + cache_dir)
        flags.ldflags.append(THINLTO_CACHE_POLICY_FLAG + THINLTO_CACHE_POLICY)

    if not ctx.has_profile:
        flags.ldflags.extend(CONSERVATIVE_INLINE_LDFLAGS)

    return flags


def graph_flags(graph: ModuleGraph, policy: LTOPolicy) -> dict[str, LTOFlags]:
    """LTO flags for every variant in the graph, keyed by module key.

    Modules with contradictory settings are left out; they are reported by
    the mutators.
    """
    result = {}
    for module in graph.modules:
        try:
            result[module.key] = lto_flags(module, policy)
        except LTOConfigurationError:
            continue
    return result
