# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""Process-wide LTO policy, read from the build environment.

The policy is built once and passed to every mutator, so the passes never
consult the environment themselves.

Environment variables:
    DISABLE_LTO: "1" or "true" turns LTO off for every module.
    GLOBAL_THINLTO: "0" or "false" turns off ThinLTO-by-default.
    USE_THINLTO_CACHE: "1" or "true" enables the ThinLTO link cache.
    OUT_DIR: Build output directory holding the cache (default: out).
"""

from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_TRUE_VALUES = {"1", "true"}
_FALSE_VALUES = {"0", "false"}


def _env_true(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return value


def _env_not_false(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_VALUES
    return value


class LTOPolicy(BaseSettings):
    """Global LTO switches."""

    model_config = SettingsConfigDict(frozen=True, extra="ignore")

    disable_lto: bool = False
    global_thinlto: bool = True
    use_thinlto_cache: bool = False
    out_dir: str = "out"

    # Unrecognized strings are treated as "not set", matching the build
    # system's IsEnvTrue / IsEnvFalse semantics.
    @field_validator("disable_lto", "use_thinlto_cache", mode="before")
    @classmethod
    def _parse_enable_switch(cls, value: Any) -> Any:
        return _env_true(value)

    @field_validator("global_thinlto", mode="before")
    @classmethod
    def _parse_default_switch(cls, value: Any) -> Any:
        return _env_not_false(value)
