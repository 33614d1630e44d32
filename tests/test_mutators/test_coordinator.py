# LTO Variants - Link-time optimization mode propagation for build graphs
# Copyright (c) 2025 Matt Varendorff
# SPDX-License-Identifier: BSL-1.0

"""End-to-end tests for running both LTO passes over a graph."""

import pytest

from ltovariants.errors import LTOConfigurationError
from ltovariants.graph import ModuleGraph
from ltovariants.models import DependencyKind, LTOMode, LTOPolicy, LTOProperties
from ltovariants.mutators import resolve, run_lto_mutators


def snapshot(graph: ModuleGraph) -> tuple[list[str], list[tuple[str, str, str]]]:
    """Helper: module keys and edges by key, for comparing graphs."""
    keys = [m.key for m in graph.modules]
    edges = [
        (graph.modules[e.source].key, graph.modules[e.target].key, e.kind.value)
        for e in graph.edges
    ]
    return keys, edges


def make_mixed_graph() -> ModuleGraph:
    """Full, thin and never consumers sharing static libraries."""
    graph = ModuleGraph()
    graph.add_module("fullapp", lto=LTOProperties(full=True))
    graph.add_module("thinapp", lto=LTOProperties(thin=True))
    graph.add_module("neverapp", lto=LTOProperties(never=True))
    graph.add_module("plainapp")
    graph.add_module("libmid")
    graph.add_module("libleaf")
    graph.add_module("libshared")
    for app in ("fullapp", "thinapp", "neverapp", "plainapp"):
        graph.add_dependency(app, "libmid")
    graph.add_dependency("libmid", "libleaf", DependencyKind.OBJECT_INPUT)
    graph.add_dependency("libmid", "libshared", DependencyKind.OTHER)
    return graph


class TestConcreteScenario:
    """App --static--> LibA --static--> LibB with App explicitly full."""

    def test_scenario(self, chain_graph, explicit_policy):
        result = run_lto_mutators(chain_graph, explicit_policy)

        assert result.ok
        assert result.propagation.requests_recorded == 2
        assert sorted(result.synthesis.clones_created) == ["liba{lto-full}", "libb{lto-full}"]

        assert [m.key for m in chain_graph.dependencies("app")] == ["liba{lto-full}"]
        assert [m.key for m in chain_graph.dependencies("liba{lto-full}")] == ["libb{lto-full}"]
        assert resolve(chain_graph.module("liba{lto-full}"), explicit_policy).mode is LTOMode.FULL
        assert resolve(chain_graph.module("libb{lto-full}"), explicit_policy).mode is LTOMode.FULL
        # Originals stay unmodified for other consumers
        assert resolve(chain_graph.module("liba"), explicit_policy).mode is LTOMode.NONE
        assert resolve(chain_graph.module("libb"), explicit_policy).mode is LTOMode.NONE
        assert [m.key for m in chain_graph.dependencies("liba")] == ["libb"]


class TestMutualExclusion:
    """P1: explicit Full and Thin together."""

    def test_error_isolated_to_module(self, explicit_policy):
        graph = ModuleGraph()
        graph.add_module("bad", lto=LTOProperties(full=True, thin=True))
        graph.add_module("app", lto=LTOProperties(full=True))
        graph.add_module("lib")
        graph.add_dependency("bad", "lib")
        graph.add_dependency("app", "lib")

        result = run_lto_mutators(graph, explicit_policy)

        assert not result.ok
        assert len(result.errors) == 1
        assert result.errors[0].module == "bad"
        # The other consumer is resolved as usual
        assert [m.key for m in graph.dependencies("app")] == ["lib{lto-full}"]
        assert [m.key for m in graph.dependencies("bad")] == ["lib"]

    def test_raise_for_errors(self, explicit_policy):
        graph = ModuleGraph()
        graph.add_module("bad", lto=LTOProperties(full=True, thin=True))
        result = run_lto_mutators(graph, explicit_policy)
        with pytest.raises(LTOConfigurationError, match="bad: FullLTO and ThinLTO"):
            result.raise_for_errors()

    def test_raise_for_errors_noop_when_ok(self, chain_graph, explicit_policy):
        run_lto_mutators(chain_graph, explicit_policy).raise_for_errors()


class TestPropagationReach:
    """P2: requests cross static edges only."""

    def test_reclassified_edge_blocks(self, explicit_policy):
        graph = ModuleGraph()
        graph.add_module("a", lto=LTOProperties(full=True))
        graph.add_module("b")
        graph.add_module("c")
        graph.add_dependency("a", "b", DependencyKind.OTHER)
        graph.add_dependency("b", "c")

        result = run_lto_mutators(graph, explicit_policy)

        assert result.propagation.requests_recorded == 0
        assert result.synthesis.clones_created == []


class TestIdempotence:
    """P4: a second run changes nothing."""

    @pytest.mark.parametrize("global_thinlto", [True, False])
    def test_second_run_identical(self, global_thinlto):
        policy = LTOPolicy(global_thinlto=global_thinlto)
        graph = make_mixed_graph()

        run_lto_mutators(graph, policy)
        first = snapshot(graph)
        second_result = run_lto_mutators(graph, policy)

        assert snapshot(graph) == first
        assert second_result.synthesis.clones_created == []
        assert second_result.synthesis.edges_retargeted == 0

    def test_at_most_one_clone_per_mode(self, explicit_policy):
        graph = make_mixed_graph()
        for _ in range(3):
            run_lto_mutators(graph, explicit_policy)
        keys = [m.key for m in graph.modules]
        assert len(keys) == len(set(keys))


class TestNeverPrecedence:
    """P5: Never under the ThinLTO default."""

    def test_never_consumer_links_no_lto_variant(self, thin_default_policy):
        graph = make_mixed_graph()

        run_lto_mutators(graph, thin_default_policy)

        never_dep = graph.dependencies("neverapp")[0]
        assert never_dep.key == "libmid{lto-none}"
        assert resolve(never_dep, thin_default_policy).mode is LTOMode.NONE
        # Its own static dependencies are no-LTO too
        assert [m.key for m in graph.dependencies(never_dep.key)] == ["libleaf{lto-none}", "libshared"]

        # Everyone else keeps the default ThinLTO variant
        assert [m.key for m in graph.dependencies("plainapp")] == ["libmid"]
        assert [m.key for m in graph.dependencies("thinapp")] == ["libmid"]
        assert resolve(graph.module("libmid"), thin_default_policy).mode is LTOMode.THIN

    def test_never_overrides_full_for_dependency_selection(self, thin_default_policy):
        graph = ModuleGraph()
        graph.add_module("app", lto=LTOProperties(full=True, never=True))
        graph.add_module("lib")
        graph.add_dependency("app", "lib")

        run_lto_mutators(graph, thin_default_policy)

        assert resolve(graph.module("app"), thin_default_policy).mode is LTOMode.FULL
        assert [m.key for m in graph.dependencies("app")] == ["lib{lto-none}"]

    def test_full_consumer_under_thin_default(self, thin_default_policy):
        graph = make_mixed_graph()
        run_lto_mutators(graph, thin_default_policy)
        assert [m.key for m in graph.dependencies("fullapp")] == ["libmid{lto-full}"]
        assert [m.key for m in graph.dependencies("libmid{lto-full}")] == ["libleaf{lto-full}", "libshared"]


class TestKillSwitch:
    """P6: DISABLE_LTO."""

    @pytest.mark.parametrize("global_thinlto", [True, False])
    def test_no_lto_and_no_clones(self, global_thinlto):
        policy = LTOPolicy(disable_lto=True, global_thinlto=global_thinlto)
        graph = make_mixed_graph()
        before = snapshot(graph)

        result = run_lto_mutators(graph, policy)

        assert result.synthesis.clones_created == []
        assert snapshot(graph) == before
        for module in graph.modules:
            assert resolve(module, policy).mode is LTOMode.NONE


class TestPolicyFromEnvironment:
    """The coordinator reads the environment when no policy is passed."""

    def test_env_policy(self, monkeypatch, chain_graph):
        monkeypatch.setenv("DISABLE_LTO", "true")
        result = run_lto_mutators(chain_graph)
        assert result.policy.disable_lto
        assert result.synthesis.clones_created == []

    def test_env_global_thinlto_off(self, monkeypatch, chain_graph):
        monkeypatch.setenv("GLOBAL_THINLTO", "false")
        result = run_lto_mutators(chain_graph)
        assert not result.policy.global_thinlto
        assert len(result.synthesis.clones_created) == 2
