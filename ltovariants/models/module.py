# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""Pydantic models for modules, dependency edges and LTO properties."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class LTOMode(str, Enum):
    """Link-time optimization mode a module variant is built in."""

    NONE = "none"  # No LTO flags
    THIN = "thin"  # Summary-based, parallel cross-module optimization
    FULL = "full"  # All IR merged into a single unit

    @property
    def variation(self) -> str:
        """Variation name of the clone built in this mode."""
        return f"lto-{self.value}"

    @classmethod
    def from_variation(cls, name: str) -> Optional["LTOMode"]:
        """Inverse of ``variation``; the empty name is the default variant."""
        if not name:
            return None
        if not name.startswith("lto-"):
            raise ValueError(f"Not an LTO variation: {name!r}")
        return cls(name[len("lto-"):])


class DependencyKind(str, Enum):
    """Classification of a dependency edge."""

    STATIC_LINK = "static_link"  # Static library linked into the output
    OBJECT_INPUT = "object_input"  # Object files fed straight to the link
    REUSE_OBJECT_INPUT = "reuse_object_input"  # Objects shared with a sibling
    OTHER = "other"  # Shared libs, headers, tools, data...


# Edge kinds that LTO requirements flow through and that clones are rewired on.
TRANSPARENT_KINDS = frozenset(
    {
        DependencyKind.STATIC_LINK,
        DependencyKind.OBJECT_INPUT,
        DependencyKind.REUSE_OBJECT_INPUT,
    }
)


class LTOProperties(BaseModel):
    """LTO settings declared by the module author.

    ``None`` means the property was not set, which is distinct from ``False``
    only for ``use_clang_lld`` (unset defaults to lld).
    """

    full: Optional[bool] = None
    thin: Optional[bool] = None
    never: Optional[bool] = None

    # Pass-through properties consumed by flag emission.
    use_clang_lld: Optional[bool] = None
    whole_program_vtables: Optional[bool] = None


class PropagationRequests(BaseModel):
    """Modes requested of a module by its static consumers.

    Only ever set to True while dependencies are propagated, and cleared once
    variants have been synthesized.
    """

    full: bool = False
    thin: bool = False
    no_lto: bool = False

    def any(self) -> bool:
        return self.full or self.thin or self.no_lto

    def clear(self) -> None:
        self.full = False
        self.thin = False
        self.no_lto = False


class BuildContext(BaseModel):
    """Target and context predicates supplied by the build system."""

    arch: str = "arm64"
    multilib: str = "lib64"
    host: bool = False
    cfi: bool = False  # Control-flow-integrity verification
    test: bool = False  # Test binary or test library
    vndk: bool = False  # Library behind a stable vendor ABI boundary
    pgo: bool = False
    afdo: bool = False
    cflags: List[str] = Field(default_factory=list)

    @property
    def has_profile(self) -> bool:
        return self.pgo or self.afdo


class Module(BaseModel):
    """A node of the build graph.

    Clones share ``name`` with the module they were made from; ``base`` holds
    the arena index of that module and ``variant`` the mode the clone is
    fixed to.
    """

    name: str
    lto: LTOProperties = Field(default_factory=LTOProperties)
    context: BuildContext = Field(default_factory=BuildContext)
    requests: PropagationRequests = Field(default_factory=PropagationRequests)

    variant: Optional[LTOMode] = None
    base: Optional[int] = None
    prevent_install: bool = False
    hide_from_packaging: bool = False

    @property
    def is_clone(self) -> bool:
        return self.variant is not None

    @property
    def variation(self) -> str:
        return self.variant.variation if self.variant else ""

    @property
    def key(self) -> str:
        """Unique display identity, e.g. ``libfoo`` or ``libfoo{lto-full}``."""
        if self.variant is None:
            return self.name
        return f"{self.name}{{{self.variation}}}"


class DependencyEdge(BaseModel):
    """A directed dependency between two arena slots."""

    source: int
    target: int
    kind: DependencyKind = DependencyKind.STATIC_LINK

    @property
    def transparent(self) -> bool:
        return self.kind in TRANSPARENT_KINDS
