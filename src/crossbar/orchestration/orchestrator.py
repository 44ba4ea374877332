"""Event-driven execution of region dependency graphs."""

import asyncio
import contextlib
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from ..errors import (
    DependencyFailure,
    StepCancelled,
    StepExecutionError,
    StepFailure,
    TimeoutFailure,
)
from ..planning.resolved import ResolvedClusterPlan
from .gate import ReadinessGate
from .graph import DependencyGraph, build_region_graph
from .runners import StepRunner
from .settings import FailurePolicy, OrchestratorSettings
from .steps import ProvisioningStep, StepKind, StepResult, StepStatus

logger = logging.getLogger(__name__)


@dataclass
class RegionResult:
    """Outcome of one region plan."""

    plan: ResolvedClusterPlan
    step_results: dict[StepKind, StepResult]

    @property
    def overall_status(self) -> StepStatus:
        """SUCCEEDED only if every step succeeded."""
        if all(r.succeeded for r in self.step_results.values()):
            return StepStatus.SUCCEEDED
        return StepStatus.FAILED

    @property
    def succeeded(self) -> bool:
        return self.overall_status is StepStatus.SUCCEEDED

    def output(self, kind: StepKind) -> Any:
        result = self.step_results.get(kind)
        return result.output if result is not None else None

    def failed_steps(self) -> list[StepKind]:
        return [k for k, r in self.step_results.items() if r.status is StepStatus.FAILED]


class DependencyOrchestrator:
    """Runs region plans over their dependency graphs.

    Within a region, every step whose dependencies succeeded is started as
    its own task and the scheduler wakes only when a task completes. Regions
    run concurrently, at most ``max_parallel_regions`` at a time. Steps are
    never retried and succeeded steps are never rolled back.
    """

    def __init__(self, runner: StepRunner, settings: OrchestratorSettings | None = None):
        self.runner = runner
        self.settings = settings or OrchestratorSettings()

    def execute(
        self,
        plans: Sequence[ResolvedClusterPlan],
        graphs: Mapping[str, DependencyGraph] | None = None,
    ) -> list[RegionResult]:
        """Synchronous entry point around ``run_all``."""
        return asyncio.run(self.run_all(plans, graphs))

    async def run_all(
        self,
        plans: Sequence[ResolvedClusterPlan],
        graphs: Mapping[str, DependencyGraph] | None = None,
    ) -> list[RegionResult]:
        """
        Run every plan, bounded by the region semaphore.

        Args:
            plans: Resolved plans with names already allocated
            graphs: Optional prebuilt graph per plan name

        Returns:
            One RegionResult per plan, in input order
        """
        graphs = graphs or {}
        semaphore = asyncio.Semaphore(self.settings.max_parallel_regions)

        async def bounded(plan: ResolvedClusterPlan) -> RegionResult:
            async with semaphore:
                try:
                    return await self.run_region(plan, graphs.get(plan.name))
                except Exception as e:
                    logger.error(f"{plan.name}: region aborted: {type(e).__name__}: {e}")
                    return self._aborted_region(plan, graphs.get(plan.name), e)

        logger.info(
            f"Provisioning {len(plans)} region plan(s), "
            f"max {self.settings.max_parallel_regions} in parallel"
        )
        return list(await asyncio.gather(*(bounded(plan) for plan in plans)))

    async def run_region(
        self, plan: ResolvedClusterPlan, graph: DependencyGraph | None = None
    ) -> RegionResult:
        """Execute one region's graph to completion."""
        graph = graph or build_region_graph(self.settings)
        order = graph.topological_order()

        results = {step.kind: StepResult(step.kind) for step in graph.steps}
        outputs: dict[StepKind, Any] = {}
        gate = ReadinessGate(self.settings.min_ready_nodes, name=plan.names.node_pool)
        running: dict[asyncio.Task, ProvisioningStep] = {}
        started: set[StepKind] = set()
        watcher: asyncio.Task | None = None
        halted = False

        logger.info(f"{plan.name}: starting {len(graph)} steps in {plan.region}")

        try:
            while True:
                self._propagate_failures(graph, order, results, started)

                if not halted:
                    for step in order:
                        if step.kind in started:
                            continue
                        deps = graph.get_dependencies(step.kind)
                        if all(results[d].succeeded for d in deps):
                            inputs = MappingProxyType(
                                {k: outputs[k] for k in graph.ancestors(step.kind)}
                            )
                            task = asyncio.create_task(
                                self._execute(plan, step, inputs, gate, results[step.kind]),
                                name=f"{plan.name}:{step.kind.value}",
                            )
                            running[task] = step
                            started.add(step.kind)

                if not running:
                    break

                done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    step = running.pop(task)
                    result = results[step.kind]
                    failure = self._failure_of(task)
                    if failure is None:
                        output = task.result()
                        outputs[step.kind] = output
                        result.succeed(output)
                        logger.info(f"{plan.name}: {step.kind.value} succeeded")
                        if step.kind is StepKind.CREATE_CLUSTER:
                            try:
                                feed = self.runner.readiness(plan, output)
                            except Exception as e:
                                logger.error(f"{plan.name}: cannot watch node pool: {e}")
                                gate.fail(e)
                            else:
                                watcher = asyncio.create_task(
                                    gate.watch(feed), name=f"{plan.name}:readiness"
                                )
                    else:
                        result.fail(failure)
                        logger.error(f"{plan.name}: {step.kind.value} failed: {failure}")
                        if self.settings.failure_policy is FailurePolicy.HALT_REGION:
                            halted = True

            self._propagate_failures(graph, order, results, started)
            for step in order:
                result = results[step.kind]
                if not result.status.is_terminal:
                    result.fail(StepCancelled(f"{plan.name} halted after a failed step"))
        finally:
            if watcher is not None and not watcher.done():
                watcher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await watcher

        region = RegionResult(plan=plan, step_results=results)
        logger.info(f"{plan.name}: {region.overall_status.value}")
        return region

    async def _execute(
        self,
        plan: ResolvedClusterPlan,
        step: ProvisioningStep,
        inputs: Mapping[StepKind, Any],
        gate: ReadinessGate,
        result: StepResult,
    ) -> Any:
        """Run one step within its timeout; gated steps stay Pending until the gate opens."""

        async def body() -> Any:
            if step.gated:
                await gate.wait()
            result.transition(StepStatus.READY)
            result.transition(StepStatus.RUNNING)
            result.invocations += 1
            logger.debug(f"{plan.name}: running {step.kind.value}")
            return await self.runner.run(step.kind, plan, inputs)

        if step.timeout is None:
            return await body()
        try:
            return await asyncio.wait_for(body(), timeout=step.timeout)
        except TimeoutError:
            raise TimeoutFailure(
                f"{step.kind.value} did not complete within {step.timeout:g}s"
            ) from None

    def _aborted_region(
        self, plan: ResolvedClusterPlan, graph: DependencyGraph | None, error: Exception
    ) -> RegionResult:
        """Result for a region whose run raised; every step is reported failed."""
        graph = graph or build_region_graph(self.settings)
        results = {}
        for step in graph.steps:
            result = StepResult(step.kind)
            result.fail(StepExecutionError(f"{plan.name} aborted: {type(error).__name__}: {error}"))
            results[step.kind] = result
        return RegionResult(plan=plan, step_results=results)

    @staticmethod
    def _failure_of(task: asyncio.Task) -> StepFailure | None:
        """Classify a finished step task."""
        if task.cancelled():
            return StepCancelled(f"{task.get_name()} was cancelled")
        error = task.exception()
        if error is None:
            return None
        if isinstance(error, StepFailure):
            return error
        return StepExecutionError(f"{type(error).__name__}: {error}")

    @staticmethod
    def _propagate_failures(
        graph: DependencyGraph,
        order: list[ProvisioningStep],
        results: dict[StepKind, StepResult],
        started: set[StepKind],
    ) -> None:
        """Fail unstarted steps whose dependencies failed, transitively."""
        for step in order:
            if step.kind in started or results[step.kind].status.is_terminal:
                continue
            failed = sorted(
                d.value for d in graph.get_dependencies(step.kind)
                if results[d].status is StepStatus.FAILED
            )
            if failed:
                results[step.kind].fail(
                    DependencyFailure(f"dependency failed: {', '.join(failed)}")
                )
