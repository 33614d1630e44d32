# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""Build graph storage and graph file I/O."""

from .module_graph import ModuleGraph
from .loader import dump_graph, load_graph, load_graph_string, save_graph

__all__ = [
    "dump_graph",
    "load_graph",
    "load_graph_string",
    "ModuleGraph",
    "save_graph",
]
