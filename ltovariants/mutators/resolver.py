# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""Effective LTO mode of a single module.

The resolver is a pure function of a module's own properties and the global
policy. Requests recorded by propagation never change a module's own mode;
they only cause clones to be created, and a clone carries its mode in
``Module.variant``.
"""

from __future__ import annotations

from dataclasses import dataclass

from ltovariants.errors import LTOConfigurationError
from ltovariants.models import LTOMode, LTOPolicy, Module


@dataclass(frozen=True)
class Resolution:
    """Resolved LTO state of a module.

    Attributes:
        mode: Mode the module itself is built in.
        explicit: True if the mode comes from the module's properties or its
            clone variant rather than from the ThinLTO default.
        never: True if no-LTO is in effect (explicit, clone, or kill switch).
        default_thin: True if the mode is THIN only because of the default.
    """

    mode: LTOMode
    explicit: bool = False
    never: bool = False
    default_thin: bool = False

    @property
    def enabled(self) -> bool:
        return self.mode is not LTOMode.NONE


def is_full(module: Module) -> bool:
    """Module builds with full LTO by its own choice or as a full clone."""
    if module.variant is not None:
        return module.variant is LTOMode.FULL
    return bool(module.lto.full)


def is_thin(module: Module) -> bool:
    if module.variant is not None:
        return module.variant is LTOMode.THIN
    return bool(module.lto.thin)


def is_never(module: Module, policy: LTOPolicy) -> bool:
    if policy.disable_lto:
        return True
    # Full and thin clones of a never module keep its never setting.
    if module.variant is LTOMode.NONE:
        return True
    return bool(module.lto.never)


def default_thin_lto(module: Module, policy: LTOPolicy) -> bool:
    """Whether ThinLTO is switched on automatically for this module.

    Auto-LTO stays off where it is not yet trusted: 32-bit multilib targets,
    CFI targets (those need full LTO), host builds, tests, and VNDK libraries
    whose output must stay stable.
    """
    ctx = module.context
    return (
        policy.global_thinlto
        and not is_never(module, policy)
        and ctx.multilib != "lib32"
        and not ctx.cfi
        and not ctx.host
        and not ctx.test
        and not ctx.vndk
    )


def resolve(module: Module, policy: LTOPolicy) -> Resolution:
    """Resolve the LTO mode a module is built in.

    Raises:
        LTOConfigurationError: If the module sets both ``full`` and ``thin``.
    """
    if policy.disable_lto:
        return Resolution(LTOMode.NONE, never=True)

    never = is_never(module, policy)
    if module.variant is not None:
        return Resolution(module.variant, explicit=True, never=never)

    full = is_full(module)
    thin = is_thin(module)
    if full and thin:
        raise LTOConfigurationError(
            module.key, "FullLTO and ThinLTO are mutually exclusive"
        )
    if full:
        return Resolution(LTOMode.FULL, explicit=True, never=never)
    if thin:
        return Resolution(LTOMode.THIN, explicit=True, never=never)
    if default_thin_lto(module, policy):
        return Resolution(LTOMode.THIN, default_thin=True)
    return Resolution(LTOMode.NONE, explicit=never, never=never)


def dependency_variation(module: Module, policy: LTOPolicy) -> LTOMode | None:
    """Which clone of its dependencies a module links against.

    Returns None when the module links the default variants. Never is checked
    last because it overrides Full and Thin under the ThinLTO default.
    """
    if policy.disable_lto:
        return None
    selected = None
    if is_full(module):
        selected = LTOMode.FULL
    if not policy.global_thinlto and is_thin(module):
        selected = LTOMode.THIN
    if policy.global_thinlto and is_never(module, policy):
        selected = LTOMode.NONE
    return selected
