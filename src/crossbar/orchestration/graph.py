"""Explicit per-region dependency graph."""

import logging
from collections.abc import Iterable

from ..errors import GraphError
from .settings import OrchestratorSettings
from .steps import ProvisioningStep, StepKind

logger = logging.getLogger(__name__)

# Must-complete-before edges: step -> steps it depends on.
# The static address only needs the region, so it is a root step.
REGION_EDGES: dict[StepKind, tuple[StepKind, ...]] = {
    StepKind.CREATE_NETWORK: (),
    StepKind.CREATE_EGRESS: (StepKind.CREATE_NETWORK,),
    StepKind.CREATE_CLUSTER: (StepKind.CREATE_NETWORK,),
    StepKind.BUILD_CREDENTIALS: (StepKind.CREATE_CLUSTER,),
    StepKind.CREATE_STATIC_ADDRESS: (),
    StepKind.INSTALL_INGRESS_CONTROLLER: (
        StepKind.BUILD_CREDENTIALS,
        StepKind.CREATE_STATIC_ADDRESS,
    ),
    StepKind.INSTALL_CERTIFICATE_ISSUER: (StepKind.BUILD_CREDENTIALS,),
    StepKind.DEPLOY_APPLICATION: (
        StepKind.INSTALL_INGRESS_CONTROLLER,
        StepKind.INSTALL_CERTIFICATE_ISSUER,
    ),
}

# Steps that also wait for the node pool to report ready capacity
GATED_STEPS = frozenset({
    StepKind.INSTALL_INGRESS_CONTROLLER,
    StepKind.INSTALL_CERTIFICATE_ISSUER,
})


class DependencyGraph:
    """Arena of provisioning steps with index-based dependency sets.

    A step can only depend on steps that are already in the arena, so the
    graph is acyclic by construction; ``topological_order`` verifies it.
    """

    def __init__(self):
        self._steps: list[ProvisioningStep] = []
        self._index: dict[StepKind, int] = {}

    def add_step(
        self,
        kind: StepKind,
        depends_on: Iterable[StepKind] = (),
        gated: bool = False,
        timeout: float | None = None,
    ) -> ProvisioningStep:
        """
        Append a step to the arena.

        Args:
            kind: Step capability, unique within the graph
            depends_on: Previously added steps this one waits for
            gated: Whether the step waits for node-pool readiness
            timeout: Maximum wait in seconds

        Returns:
            The new ProvisioningStep

        Raises:
            GraphError: If the step already exists or a dependency is undefined
        """
        if kind in self._index:
            raise GraphError(f"Step {kind.value} is already defined")

        dependencies = set()
        for dep in depends_on:
            if dep not in self._index:
                raise GraphError(
                    f"Step {kind.value} depends on {dep.value}, which is not defined yet"
                )
            dependencies.add(self._index[dep])

        step = ProvisioningStep(
            kind=kind,
            index=len(self._steps),
            dependencies=frozenset(dependencies),
            gated=gated,
            timeout=timeout,
        )
        self._steps.append(step)
        self._index[kind] = step.index
        return step

    @property
    def steps(self) -> list[ProvisioningStep]:
        return list(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def __contains__(self, kind: StepKind) -> bool:
        return kind in self._index

    def step(self, kind: StepKind) -> ProvisioningStep:
        try:
            return self._steps[self._index[kind]]
        except KeyError:
            raise GraphError(f"Unknown step: {kind}") from None

    def get_dependencies(self, kind: StepKind) -> set[StepKind]:
        """Get direct dependencies of a step."""
        return {self._steps[i].kind for i in self.step(kind).dependencies}

    def get_dependents(self, kind: StepKind) -> set[StepKind]:
        """Get steps that directly depend on this step."""
        index = self.step(kind).index
        return {s.kind for s in self._steps if index in s.dependencies}

    def ancestors(self, kind: StepKind) -> set[StepKind]:
        """Every step this one transitively depends on."""
        seen: set[int] = set()
        stack = list(self.step(kind).dependencies)
        while stack:
            i = stack.pop()
            if i not in seen:
                seen.add(i)
                stack.extend(self._steps[i].dependencies)
        return {self._steps[i].kind for i in seen}

    def descendants(self, kind: StepKind) -> set[StepKind]:
        """Every step reachable from this one."""
        result: set[StepKind] = set()
        stack = [kind]
        while stack:
            for dependent in self.get_dependents(stack.pop()):
                if dependent not in result:
                    result.add(dependent)
                    stack.append(dependent)
        return result

    def edges(self) -> list[tuple[StepKind, StepKind]]:
        """(dependency, dependent) pairs in arena order."""
        return [
            (self._steps[dep].kind, step.kind)
            for step in self._steps
            for dep in sorted(step.dependencies)
        ]

    def topological_order(self) -> list[ProvisioningStep]:
        """Get execution order using Kahn's algorithm.

        Returns:
            Steps with dependencies first, ties broken by arena index

        Raises:
            GraphError: If circular dependencies detected
        """
        depends_on = {s.index: set(s.dependencies) for s in self._steps}
        depended_by: dict[int, set[int]] = {s.index: set() for s in self._steps}
        for index, deps in depends_on.items():
            for dep in deps:
                if dep not in depended_by:
                    raise GraphError(f"Step index {index} depends on unknown index {dep}")
                depended_by[dep].add(index)

        result = []
        queue = [i for i, deps in depends_on.items() if not deps]
        while queue:
            queue.sort()
            current = queue.pop(0)
            result.append(self._steps[current])
            for dependent in depended_by[current]:
                depends_on[dependent].discard(current)
                if not depends_on[dependent]:
                    queue.append(dependent)

        if len(result) != len(self._steps):
            missing = {self._steps[i].kind.value for i in depends_on if depends_on[i]}
            raise GraphError(f"Circular dependencies detected among: {sorted(missing)}")

        return result


def build_region_graph(settings: OrchestratorSettings | None = None) -> DependencyGraph:
    """Build the fixed provisioning graph for one region plan."""
    settings = settings or OrchestratorSettings()
    graph = DependencyGraph()
    for kind, deps in REGION_EDGES.items():
        graph.add_step(
            kind,
            depends_on=deps,
            gated=kind in GATED_STEPS,
            timeout=settings.timeout_for(kind),
        )
    graph.topological_order()
    logger.debug(f"Built region graph with {len(graph)} steps")
    return graph
