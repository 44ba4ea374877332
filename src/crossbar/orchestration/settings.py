"""Orchestrator settings."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING

from .steps import StepKind

if TYPE_CHECKING:
    from ..components.specs.config import OrchestrationSpec


class FailurePolicy(str, Enum):
    """What a region does after one of its steps fails.

    CONTINUE keeps starting steps that do not depend on the failed one.
    HALT_REGION starts nothing new; running steps finish and the rest are
    marked cancelled.
    """

    CONTINUE = "continue"
    HALT_REGION = "halt-region"


DEFAULT_MAX_PARALLEL_REGIONS = 4
DEFAULT_MIN_READY_NODES = 1

# Seconds
DEFAULT_STEP_TIMEOUTS: dict[StepKind, float] = {
    StepKind.CREATE_NETWORK: 600,
    StepKind.CREATE_EGRESS: 600,
    StepKind.CREATE_CLUSTER: 1800,
    StepKind.BUILD_CREDENTIALS: 60,
    StepKind.CREATE_STATIC_ADDRESS: 300,
    StepKind.INSTALL_INGRESS_CONTROLLER: 900,
    StepKind.INSTALL_CERTIFICATE_ISSUER: 900,
    StepKind.DEPLOY_APPLICATION: 900,
}


@dataclass(frozen=True)
class OrchestratorSettings:
    """Scheduler settings shared by every region in a run."""

    max_parallel_regions: int = DEFAULT_MAX_PARALLEL_REGIONS
    failure_policy: FailurePolicy = FailurePolicy.CONTINUE
    step_timeouts: Mapping[StepKind, float] = field(
        default_factory=lambda: dict(DEFAULT_STEP_TIMEOUTS)
    )
    min_ready_nodes: int = DEFAULT_MIN_READY_NODES

    def timeout_for(self, kind: StepKind) -> float | None:
        return self.step_timeouts.get(kind, DEFAULT_STEP_TIMEOUTS.get(kind))

    @classmethod
    def from_spec(cls, spec: OrchestrationSpec | None) -> OrchestratorSettings:
        """Settings from a validated ``orchestration`` block (absent fields use defaults)."""
        if spec is None:
            return cls()

        timeouts = dict(DEFAULT_STEP_TIMEOUTS)
        timeouts.update(spec.step_timeouts or {})
        return cls(
            max_parallel_regions=spec.max_parallel_regions or DEFAULT_MAX_PARALLEL_REGIONS,
            failure_policy=FailurePolicy(spec.failure_policy or FailurePolicy.CONTINUE.value),
            step_timeouts=timeouts,
            min_ready_nodes=spec.min_ready_nodes or DEFAULT_MIN_READY_NODES,
        )

    def with_overrides(
        self,
        max_parallel_regions: int | None = None,
        step_timeout: float | None = None,
        halt_on_failure: bool = False,
    ) -> OrchestratorSettings:
        """Apply command-line overrides; ``step_timeout`` replaces every step's bound."""
        changes = {}
        if max_parallel_regions is not None:
            changes["max_parallel_regions"] = max_parallel_regions
        if step_timeout is not None:
            changes["step_timeouts"] = {kind: step_timeout for kind in StepKind}
        if halt_on_failure:
            changes["failure_policy"] = FailurePolicy.HALT_REGION
        return replace(self, **changes)
