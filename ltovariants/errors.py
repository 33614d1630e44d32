# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""Exceptions raised by the LTO mutators and the module graph."""

from typing import List, Optional


class LTOError(Exception):
    """Base class for all ltovariants errors."""


class LTOConfigurationError(LTOError):
    """A module's LTO properties cannot be satisfied.

    Fatal to the module's own build only; other modules keep resolving.
    """

    def __init__(self, module: str, message: str):
        self.module = module
        self.message = message
        super().__init__(f"{module}: {message}")


class GraphError(LTOError):
    """The module graph is malformed."""


class UnknownModuleError(GraphError, KeyError):
    """A dependency or lookup names a module that is not in the graph."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown module: {name!r}")

    def __str__(self) -> str:
        return self.args[0]


class DependencyCycleError(GraphError):
    """The dependency graph is not a DAG."""

    def __init__(self, cycle: Optional[List[str]] = None):
        self.cycle = cycle or []
        if self.cycle:
            super().__init__(f"Dependency cycle: {' -> '.join(self.cycle)}")
        else:
            super().__init__("Dependency graph contains a cycle")
