# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""Arena-backed build graph with the mutation primitives the LTO passes use.

Modules live in a single list and are referred to by their index. A clone is
appended as a new slot, and edges are rewired by changing their target index,
so no module ever holds a reference to another.
"""

from __future__ import annotations

from typing import Callable, Iterator, Union

import networkx as nx

from ltovariants.errors import DependencyCycleError, GraphError, UnknownModuleError
from ltovariants.models import (
    BuildContext,
    DependencyEdge,
    DependencyKind,
    LTOMode,
    LTOProperties,
    Module,
    PropagationRequests,
)

ModuleRef = Union[int, str]


class ModuleGraph:
    """Modules and dependency edges of one build."""

    def __init__(self) -> None:
        self._modules: list[Module] = []
        self._edges: list[DependencyEdge] = []
        self._by_key: dict[str, int] = {}
        # (base index, mode) -> clone index
        self._variants: dict[tuple[int, LTOMode], int] = {}
        self._out: dict[int, list[int]] = {}
        self._in: dict[int, list[int]] = {}

    def __len__(self) -> int:
        return len(self._modules)

    def __contains__(self, name: object) -> bool:
        return name in self._by_key

    @property
    def modules(self) -> list[Module]:
        return list(self._modules)

    @property
    def edges(self) -> list[DependencyEdge]:
        return list(self._edges)

    def add_module(
        self,
        name: str,
        lto: LTOProperties | None = None,
        context: BuildContext | None = None,
    ) -> int:
        """Add a default-variant module and return its index."""
        if name in self._by_key:
            raise GraphError(f"Duplicate module: {name!r}")
        module = Module(
            name=name,
            lto=lto or LTOProperties(),
            context=context or BuildContext(),
        )
        index = self._append(module)
        self._by_key[name] = index
        return index

    def add_dependency(
        self,
        source: ModuleRef,
        target: ModuleRef,
        kind: DependencyKind = DependencyKind.STATIC_LINK,
    ) -> int:
        """Add an edge from ``source`` to ``target`` and return its index."""
        src = self.index_of(source)
        dst = self.index_of(target)
        return self._append_edge(DependencyEdge(source=src, target=dst, kind=kind))

    def index_of(self, ref: ModuleRef) -> int:
        """Resolve a module key (name for default variants) or index."""
        if isinstance(ref, int):
            if 0 <= ref < len(self._modules):
                return ref
            raise UnknownModuleError(str(ref))
        try:
            return self._by_key[ref]
        except KeyError:
            raise UnknownModuleError(ref) from None

    def module(self, ref: ModuleRef) -> Module:
        return self._modules[self.index_of(ref)]

    def edge(self, index: int) -> DependencyEdge:
        return self._edges[index]

    def outgoing(self, index: int) -> list[int]:
        """Edge indices leaving ``index``, in insertion order."""
        return list(self._out[index])

    def incoming(self, index: int) -> list[int]:
        return list(self._in[index])

    def dependencies(self, ref: ModuleRef) -> list[Module]:
        """Modules ``ref`` currently points at, one per edge."""
        index = self.index_of(ref)
        return [self._modules[self._edges[e].target] for e in self._out[index]]

    def walk_deps(
        self,
        index: int,
        should_visit: Callable[[int, int], bool],
    ) -> Iterator[int]:
        """Depth-first walk over the LTO-transparent edges below ``index``.

        ``should_visit(dep, parent)`` is called once for every module reached
        by the walk; returning False skips the module and its subtree.
        Visited modules are yielded in preorder, each at most once.
        """
        seen = {index}
        stack = self._pending_deps(index, seen)
        while stack:
            dep, parent = stack.pop()
            if dep in seen:
                continue
            seen.add(dep)
            if not should_visit(dep, parent):
                continue
            yield dep
            stack.extend(self._pending_deps(dep, seen))

    def _pending_deps(self, index: int, seen: set[int]) -> list[tuple[int, int]]:
        # Reversed so the first declared dependency is popped first.
        pending = []
        for edge_index in reversed(self._out[index]):
            edge = self._edges[edge_index]
            if edge.transparent and edge.target not in seen:
                pending.append((edge.target, index))
        return pending

    def to_networkx(self) -> nx.MultiDiGraph:
        graph = nx.MultiDiGraph()
        for index, module in enumerate(self._modules):
            graph.add_node(index, key=module.key)
        for index, edge in enumerate(self._edges):
            graph.add_edge(edge.source, edge.target, key=index, kind=edge.kind.value)
        return graph

    def top_down(self) -> list[int]:
        """Module indices with every dependent before its dependencies.

        Raises:
            DependencyCycleError: If the graph is not acyclic.
        """
        graph = self.to_networkx()
        try:
            return list(nx.lexicographical_topological_sort(graph))
        except nx.NetworkXUnfeasible:
            try:
                cycle = nx.find_cycle(graph)
            except nx.NetworkXNoCycle:
                raise DependencyCycleError() from None
            keys = [self._modules[edge[0]].key for edge in cycle]
            keys.append(keys[0])
            raise DependencyCycleError(keys) from None

    def bottom_up(self) -> list[int]:
        """Module indices with every dependency before its dependents."""
        return list(reversed(self.top_down()))

    def base_of(self, index: int) -> int:
        """Index of the default variant a module was cloned from."""
        base = self._modules[index].base
        return index if base is None else base

    def find_variant(self, index: int, mode: LTOMode) -> int | None:
        return self._variants.get((self.base_of(index), mode))

    def variants_of(self, index: int) -> list[int]:
        """Clone indices of a module, in creation order."""
        base = self.base_of(index)
        return sorted(i for (b, _), i in self._variants.items() if b == base)

    def clone_module(self, index: int, mode: LTOMode) -> int:
        """Create the ``mode`` clone of a default module.

        The clone's full and thin settings are fixed to ``mode`` while an
        explicit never carries over. It is kept out of installation and
        packaging, its request set is empty, and it gets a copy of every
        outgoing edge of the original.
        """
        original = self._modules[index]
        if original.is_clone:
            raise GraphError(f"Cannot clone a clone: {original.key}")
        if (index, mode) in self._variants:
            raise GraphError(f"{original.name} already has a {mode.variation} variant")

        lto = original.lto.model_copy(
            update={
                "full": mode is LTOMode.FULL,
                "thin": mode is LTOMode.THIN,
                "never": mode is LTOMode.NONE or bool(original.lto.never),
            }
        )
        clone = original.model_copy(
            update={
                "lto": lto,
                "context": original.context.model_copy(deep=True),
                "requests": PropagationRequests(),
                "variant": mode,
                "base": index,
                "prevent_install": True,
                "hide_from_packaging": True,
            }
        )
        clone_index = self._append(clone)
        self._by_key[clone.key] = clone_index
        self._variants[(index, mode)] = clone_index
        for edge_index in list(self._out[index]):
            edge = self._edges[edge_index]
            self._append_edge(edge.model_copy(update={"source": clone_index}))
        return clone_index

    def retarget_edge(self, edge_index: int, new_target: int) -> bool:
        """Point an edge at ``new_target``. Returns True if it moved."""
        edge = self._edges[edge_index]
        if edge.target == new_target:
            return False
        self.index_of(new_target)
        self._in[edge.target].remove(edge_index)
        edge.target = new_target
        self._in[new_target].append(edge_index)
        return True

    def _append(self, module: Module) -> int:
        index = len(self._modules)
        self._modules.append(module)
        self._out[index] = []
        self._in[index] = []
        return index

    def _append_edge(self, edge: DependencyEdge) -> int:
        index = len(self._edges)
        self._edges.append(edge)
        self._out[edge.source].append(index)
        self._in[edge.target].append(index)
        return index
