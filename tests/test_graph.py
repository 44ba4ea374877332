"""Tests for the region dependency graph."""

import pytest

from crossbar.errors import GraphError
from crossbar.orchestration.graph import GATED_STEPS, DependencyGraph, build_region_graph
from crossbar.orchestration.settings import DEFAULT_STEP_TIMEOUTS, OrchestratorSettings
from crossbar.orchestration.steps import StepKind


class TestRegionGraph:
    """The fixed per-region graph."""

    def test_all_steps_present(self):
        graph = build_region_graph()
        assert len(graph) == len(StepKind)
        assert all(kind in graph for kind in StepKind)

    def test_edges(self):
        graph = build_region_graph()
        assert graph.get_dependencies(StepKind.CREATE_NETWORK) == set()
        assert graph.get_dependencies(StepKind.CREATE_STATIC_ADDRESS) == set()
        assert graph.get_dependencies(StepKind.CREATE_CLUSTER) == {StepKind.CREATE_NETWORK}
        assert graph.get_dependencies(StepKind.BUILD_CREDENTIALS) == {StepKind.CREATE_CLUSTER}
        assert graph.get_dependencies(StepKind.INSTALL_INGRESS_CONTROLLER) == {
            StepKind.BUILD_CREDENTIALS,
            StepKind.CREATE_STATIC_ADDRESS,
        }
        assert graph.get_dependencies(StepKind.DEPLOY_APPLICATION) == {
            StepKind.INSTALL_INGRESS_CONTROLLER,
            StepKind.INSTALL_CERTIFICATE_ISSUER,
        }

    def test_topological_order_respects_dependencies(self):
        graph = build_region_graph()
        order = [step.kind for step in graph.topological_order()]

        assert order[0] is StepKind.CREATE_NETWORK
        assert order[-1] is StepKind.DEPLOY_APPLICATION
        for dep, dependent in graph.edges():
            assert order.index(dep) < order.index(dependent)

    def test_gated_steps(self):
        graph = build_region_graph()
        gated = {step.kind for step in graph.steps if step.gated}
        assert gated == GATED_STEPS == {
            StepKind.INSTALL_INGRESS_CONTROLLER,
            StepKind.INSTALL_CERTIFICATE_ISSUER,
        }

    def test_timeouts_from_settings(self):
        settings = OrchestratorSettings().with_overrides(step_timeout=5)
        graph = build_region_graph(settings)
        assert {step.timeout for step in graph.steps} == {5}

        default_graph = build_region_graph()
        assert default_graph.step(StepKind.CREATE_CLUSTER).timeout == (
            DEFAULT_STEP_TIMEOUTS[StepKind.CREATE_CLUSTER]
        )

    def test_ancestors_and_descendants(self):
        graph = build_region_graph()
        assert graph.ancestors(StepKind.DEPLOY_APPLICATION) == set(StepKind) - {
            StepKind.DEPLOY_APPLICATION,
            StepKind.CREATE_EGRESS,
        }
        descendants = graph.descendants(StepKind.CREATE_CLUSTER)
        assert StepKind.DEPLOY_APPLICATION in descendants
        assert StepKind.CREATE_STATIC_ADDRESS not in descendants
        assert StepKind.CREATE_EGRESS not in descendants
        assert graph.descendants(StepKind.CREATE_EGRESS) == set()

    def test_get_dependents(self):
        graph = build_region_graph()
        assert graph.get_dependents(StepKind.BUILD_CREDENTIALS) == {
            StepKind.INSTALL_INGRESS_CONTROLLER,
            StepKind.INSTALL_CERTIFICATE_ISSUER,
        }


class TestDependencyGraph:
    """Arena construction rules."""

    def test_duplicate_step_rejected(self):
        graph = DependencyGraph()
        graph.add_step(StepKind.CREATE_NETWORK)
        with pytest.raises(GraphError, match="already defined"):
            graph.add_step(StepKind.CREATE_NETWORK)

    def test_undefined_dependency_rejected(self):
        graph = DependencyGraph()
        with pytest.raises(GraphError, match="not defined yet"):
            graph.add_step(StepKind.CREATE_CLUSTER, depends_on=[StepKind.CREATE_NETWORK])

    def test_unknown_step_lookup(self):
        with pytest.raises(GraphError):
            DependencyGraph().step(StepKind.CREATE_NETWORK)

    def test_indexes_follow_insertion(self):
        graph = DependencyGraph()
        network = graph.add_step(StepKind.CREATE_NETWORK)
        cluster = graph.add_step(StepKind.CREATE_CLUSTER, depends_on=[StepKind.CREATE_NETWORK])
        assert network.index == 0
        assert cluster.dependencies == frozenset({0})
        assert graph.edges() == [(StepKind.CREATE_NETWORK, StepKind.CREATE_CLUSTER)]
