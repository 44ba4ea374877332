"""Provisioning pipeline: raw config to per-region results."""

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..components.specs import RawConfig
from ..core.env import RunContext
from ..orchestration.graph import DependencyGraph, build_region_graph
from ..orchestration.orchestrator import DependencyOrchestrator, RegionResult
from ..orchestration.runners import CollaboratorStepRunner
from ..orchestration.settings import OrchestratorSettings
from ..planning.defaults import DefaultsResolver
from ..planning.resolved import ResolvedClusterPlan
from ..planning.validator import ConfigValidator
from ..providers.base import ResourceProvider, WorkloadClient
from .summary import RegionSummary

logger = logging.getLogger(__name__)


@dataclass
class ProvisioningPlan:
    """Resolved plans plus the graph each one will run over."""

    plans: list[ResolvedClusterPlan]
    graphs: dict[str, DependencyGraph]
    settings: OrchestratorSettings

    def to_json(self) -> str:
        """JSON representation for CLI output."""
        data = {
            "settings": {
                "maxParallelRegions": self.settings.max_parallel_regions,
                "failurePolicy": self.settings.failure_policy.value,
                "minReadyNodes": self.settings.min_ready_nodes,
                "stepTimeouts": {k.value: v for k, v in self.settings.step_timeouts.items()},
            },
            "plans": [
                {
                    **plan.model_dump(mode="json"),
                    "steps": [step.kind.value for step in self.graphs[plan.name].topological_order()],
                    "edges": [
                        [dep.value, dependent.value]
                        for dep, dependent in self.graphs[plan.name].edges()
                    ],
                }
                for plan in self.plans
            ],
        }
        return json.dumps(data, indent=2, default=str)


@dataclass
class ProvisioningReport:
    """Result of a provisioning run."""

    results: list[RegionResult]
    summaries: list[RegionSummary]

    @property
    def success(self) -> bool:
        return all(result.succeeded for result in self.results)

    def to_json(self) -> str:
        """JSON representation for CLI output."""
        data = {
            "success": self.success,
            "regions": [summary.to_json() for summary in self.summaries],
        }
        return json.dumps(data, indent=2, default=str)


class ProvisioningService:
    """
    The full pipeline: validate, resolve, fan out, orchestrate, summarize.

    Configuration and validation errors are raised before any step runs;
    step failures are reported per region in the ProvisioningReport.
    """

    def __init__(
        self,
        context: RunContext,
        settings: OrchestratorSettings | None = None,
        overrides: Mapping[str, Any] | None = None,
    ):
        """
        Args:
            context: Environment-derived inputs for this run
            settings: Explicit orchestrator settings; when None they come from
                the document's ``orchestration`` block
            overrides: Keyword overrides for OrchestratorSettings.with_overrides
        """
        self.context = context
        self.settings = settings
        self.overrides = dict(overrides or {})
        self.validator = ConfigValidator()
        self.resolver = DefaultsResolver(context, validator=self.validator)

    def plan(self, raw: Mapping[str, Any] | RawConfig) -> ProvisioningPlan:
        """
        Resolve a document into plans and graphs without running anything.

        Raises:
            ConfigValidationError: On any validation problem or name collision
            ConfigError: If the project id is missing
        """
        config = self.validator.ensure_valid(raw)
        plans = self.resolver.resolve(config)

        settings = self.settings or OrchestratorSettings.from_spec(config.orchestration)
        settings = settings.with_overrides(**self.overrides)

        graphs = {plan.name: build_region_graph(settings) for plan in plans}
        return ProvisioningPlan(plans=plans, graphs=graphs, settings=settings)

    async def provision_async(
        self,
        raw: Mapping[str, Any] | RawConfig,
        provider: ResourceProvider,
        workload_client: WorkloadClient,
    ) -> ProvisioningReport:
        """Plan, then run every region plan against the collaborators."""
        planned = self.plan(raw)
        orchestrator = DependencyOrchestrator(
            CollaboratorStepRunner(provider, workload_client),
            planned.settings,
        )
        results = await orchestrator.run_all(planned.plans, planned.graphs)

        report = ProvisioningReport(
            results=results,
            summaries=[RegionSummary.from_result(r) for r in results],
        )
        failed = [r.plan.name for r in results if not r.succeeded]
        if failed:
            logger.warning(f"Provisioning finished with failed regions: {', '.join(failed)}")
        else:
            logger.info(f"Provisioned {len(results)} region(s)")
        return report

    def provision(
        self,
        raw: Mapping[str, Any] | RawConfig,
        provider: ResourceProvider,
        workload_client: WorkloadClient,
    ) -> ProvisioningReport:
        """Synchronous wrapper around ``provision_async``."""
        return asyncio.run(self.provision_async(raw, provider, workload_client))
