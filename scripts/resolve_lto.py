#!/usr/bin/env python3
# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""Resolve LTO modes and variants for a module graph file.

Reads a TOML graph, propagates LTO requirements to static dependencies,
creates the required LTO variants and prints (or saves) the resulting graph.

Usage:
    # Print a summary of the resolved graph
    python scripts/resolve_lto.py graph.toml

    # Save the resolved graph, including clones
    python scripts/resolve_lto.py graph.toml --output resolved.toml

    # Show the LTO flags of every variant
    python scripts/resolve_lto.py graph.toml --flags

    # Force the global switches instead of reading the environment
    python scripts/resolve_lto.py graph.toml --no-global-thinlto
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ltovariants.errors import GraphError, LTOConfigurationError
from ltovariants.flags import graph_flags
from ltovariants.graph import ModuleGraph, load_graph, save_graph
from ltovariants.models import LTOPolicy
from ltovariants.mutators import resolve, run_lto_mutators

logger = logging.getLogger(__name__)


def build_policy(args: argparse.Namespace, file_policy: dict | None) -> LTOPolicy:
    """Environment first, then the graph file's [policy] table, then flags."""
    overrides = dict(file_policy or {})
    if args.disable_lto:
        overrides["disable_lto"] = True
    if args.no_global_thinlto:
        overrides["global_thinlto"] = False
    if args.thinlto_cache:
        overrides["use_thinlto_cache"] = True
    return LTOPolicy(**overrides)


def format_summary(graph: ModuleGraph, policy: LTOPolicy) -> list[str]:
    lines = []
    for index, module in enumerate(graph.modules):
        try:
            mode = resolve(module, policy).mode.value
        except LTOConfigurationError as e:
            mode = f"error: {e.message}"
        deps = ", ".join(dep.key for dep in graph.dependencies(index))
        marker = " (not installed)" if module.prevent_install else ""
        lines.append(f"{module.key}: {mode}{marker}" + (f" -> {deps}" if deps else ""))
    return lines


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Resolve LTO modes and variants for a module graph",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "input",
        type=Path,
        help="Graph TOML file",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Write the resolved graph to this TOML file",
    )
    parser.add_argument(
        "--flags",
        action="store_true",
        help="Print the LTO flags of every variant",
    )
    parser.add_argument(
        "--disable-lto",
        action="store_true",
        help="Turn LTO off everywhere (like DISABLE_LTO=true)",
    )
    parser.add_argument(
        "--no-global-thinlto",
        action="store_true",
        help="Do not enable ThinLTO by default (like GLOBAL_THINLTO=false)",
    )
    parser.add_argument(
        "--thinlto-cache",
        action="store_true",
        help="Enable the ThinLTO link cache (like USE_THINLTO_CACHE=true)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    # Set up logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    if not args.input.exists():
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        graph, file_policy = load_graph(args.input)
        policy = build_policy(args, file_policy)
        logger.info(f"Loaded {len(graph)} modules from {args.input}")

        result = run_lto_mutators(graph, policy)

        for line in format_summary(graph, policy):
            print(line)

        if args.flags:
            for key, flags in graph_flags(graph, policy).items():
                if flags:
                    print(f"{key}:")
                    print(f"  cflags: {' '.join(flags.cflags)}")
                    print(f"  ldflags: {' '.join(flags.ldflags)}")

        if args.output:
            save_graph(graph, args.output, policy)
            logger.info(f"Saved {len(graph)} modules to {args.output}")

        for error in result.errors:
            logger.error(f"{error.module}: {error.message}")
        return 0 if result.ok else 1

    except GraphError as e:
        logger.error(f"Invalid graph: {e}")
        return 1
    except ValidationError as e:
        logger.error(f"Invalid policy: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
