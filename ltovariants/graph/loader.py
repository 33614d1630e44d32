# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""Load and save module graphs as TOML.

Input format::

    [policy]                    # optional overrides for LTOPolicy
    global_thinlto = false

    [[modules]]
    name = "app"
    lto = { full = true }
    context = { host = false }

    [[dependencies]]
    from = "app"
    to = "libfoo"
    kind = "static_link"        # default

Saved graphs additionally list clones (``variant``/``base``) and the mode
each node resolves to, and can be loaded again for another evaluation.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Optional

import toml
from pydantic import ValidationError

from ltovariants.errors import GraphError, LTOConfigurationError
from ltovariants.models import (
    BuildContext,
    DependencyKind,
    LTOMode,
    LTOPolicy,
    LTOProperties,
)
from ltovariants.mutators.resolver import resolve

from .module_graph import ModuleGraph


def load_graph(path: Path) -> tuple[ModuleGraph, Optional[dict[str, Any]]]:
    """Load a graph file.

    Returns:
        The graph and the ``[policy]`` table, or None if the file has none.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise GraphError(f"Invalid graph file {path}: {e}") from e
    return load_graph_string(text)


def load_graph_string(text: str) -> tuple[ModuleGraph, Optional[dict[str, Any]]]:
    """Load a graph from a TOML string.

    Raises:
        GraphError: If the document is not valid TOML or an entry is malformed.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise GraphError(f"Invalid graph file: {e}") from e

    graph = ModuleGraph()
    clones = []
    for entry in data.get("modules", []):
        if "variant" in entry:
            clones.append(entry)
            continue
        _add_module(graph, entry)

    for entry in clones:
        _add_clone(graph, entry)

    for entry in data.get("dependencies", []):
        try:
            source = entry["from"]
            target = entry["to"]
            kind = DependencyKind(entry.get("kind", DependencyKind.STATIC_LINK.value))
        except (KeyError, ValueError) as e:
            raise GraphError(f"Malformed dependency {entry!r}: {e}") from e
        graph.add_dependency(source, target, kind)

    policy = data.get("policy")
    if policy is not None and not isinstance(policy, dict):
        raise GraphError(f"Malformed policy table: {policy!r}")
    return graph, policy


def _add_module(graph: ModuleGraph, entry: dict[str, Any]) -> int:
    if "name" not in entry:
        raise GraphError(f"Module without a name: {entry!r}")
    try:
        lto = LTOProperties(**entry.get("lto", {}))
        context = BuildContext(**entry.get("context", {}))
    except (TypeError, ValidationError) as e:
        raise GraphError(f"Malformed module {entry['name']!r}: {e}") from e
    return graph.add_module(entry["name"], lto=lto, context=context)


def _add_clone(graph: ModuleGraph, entry: dict[str, Any]) -> int:
    try:
        mode = LTOMode.from_variation(entry["variant"])
        base = entry["base"]
    except (KeyError, ValueError) as e:
        raise GraphError(f"Malformed variant {entry!r}: {e}") from e
    if mode is None:
        raise GraphError(f"Variant without a mode: {entry!r}")
    # Edges are listed separately, so the clone starts without any.
    return graph.clone_module(graph.index_of(base), mode)


def dump_graph(graph: ModuleGraph, policy: Optional[LTOPolicy] = None) -> str:
    """Serialize a graph, including clones, to TOML.

    When a policy is given, each module records the mode it resolves to.
    """
    modules = []
    for module in graph.modules:
        entry: dict[str, Any] = {"name": module.name}
        if module.is_clone:
            entry["variant"] = module.variation
            entry["base"] = graph.modules[module.base].key
            entry["prevent_install"] = module.prevent_install
            entry["hide_from_packaging"] = module.hide_from_packaging
        lto = module.lto.model_dump(exclude_none=True)
        if lto:
            entry["lto"] = lto
        context = module.context.model_dump(exclude_defaults=True)
        if context:
            entry["context"] = context
        if policy is not None:
            try:
                entry["resolved_mode"] = resolve(module, policy).mode.value
            except LTOConfigurationError as e:
                entry["error"] = e.message
        modules.append(entry)

    dependencies = []
    for edge in graph.edges:
        dependencies.append(
            {
                "from": graph.modules[edge.source].key,
                "to": graph.modules[edge.target].key,
                "kind": edge.kind.value,
            }
        )

    return toml.dumps({"modules": modules, "dependencies": dependencies})


def save_graph(graph: ModuleGraph, path: Path, policy: Optional[LTOPolicy] = None) -> None:
    """Save a graph to a TOML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_graph(graph, policy))
