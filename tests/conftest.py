"""Pytest fixtures for ltovariants tests."""

import pytest

from ltovariants.graph import ModuleGraph
from ltovariants.models import DependencyKind, LTOPolicy, LTOProperties

LTO_ENV_VARS = ("DISABLE_LTO", "GLOBAL_THINLTO", "USE_THINLTO_CACHE", "OUT_DIR")


@pytest.fixture(autouse=True)
def clean_lto_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's build environment out of the tests."""
    for name in LTO_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def thin_default_policy() -> LTOPolicy:
    """ThinLTO on by default (the build system's default)."""
    return LTOPolicy(global_thinlto=True)


@pytest.fixture
def explicit_policy() -> LTOPolicy:
    """ThinLTO only where requested."""
    return LTOPolicy(global_thinlto=False)


@pytest.fixture
def chain_graph() -> ModuleGraph:
    """app --static--> liba --static--> libb, app explicitly full LTO."""
    graph = ModuleGraph()
    graph.add_module("app", lto=LTOProperties(full=True))
    graph.add_module("liba")
    graph.add_module("libb")
    graph.add_dependency("app", "liba", DependencyKind.STATIC_LINK)
    graph.add_dependency("liba", "libb", DependencyKind.STATIC_LINK)
    return graph
