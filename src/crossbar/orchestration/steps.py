"""Provisioning steps and their per-step results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import DependencyFailure, StepCancelled, StepFailure


class StepKind(str, Enum):
    """Capabilities a region plan is built from."""

    CREATE_NETWORK = "create-network"
    CREATE_EGRESS = "create-egress"
    CREATE_CLUSTER = "create-cluster"
    BUILD_CREDENTIALS = "build-credentials"
    CREATE_STATIC_ADDRESS = "create-static-address"
    INSTALL_INGRESS_CONTROLLER = "install-ingress-controller"
    INSTALL_CERTIFICATE_ISSUER = "install-certificate-issuer"
    DEPLOY_APPLICATION = "deploy-application"


class StepStatus(str, Enum):
    """Per-step state machine: Pending -> Ready -> Running -> Succeeded | Failed."""

    PENDING = "pending"
    READY = "ready"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.SUCCEEDED, StepStatus.FAILED)


@dataclass(frozen=True)
class ProvisioningStep:
    """
    One node of a region's dependency graph.

    Attributes:
        kind: Capability this step performs
        index: Position in the graph arena
        dependencies: Arena indexes of the steps this one waits for
        gated: Whether the step also waits for node-pool readiness
        timeout: Maximum wait in seconds, readiness wait included
    """

    kind: StepKind
    index: int
    dependencies: frozenset[int] = frozenset()
    gated: bool = False
    timeout: float | None = None


@dataclass
class StepResult:
    """Outcome of one step. Only the orchestrator mutates it."""

    kind: StepKind
    status: StepStatus = StepStatus.PENDING
    output: Any = None
    failure: StepFailure | None = None
    invocations: int = 0
    history: list[StepStatus] = field(default_factory=lambda: [StepStatus.PENDING])

    def transition(self, status: StepStatus) -> None:
        self.status = status
        self.history.append(status)

    def succeed(self, output: Any) -> None:
        self.output = output
        self.transition(StepStatus.SUCCEEDED)

    def fail(self, failure: StepFailure) -> None:
        self.failure = failure
        self.transition(StepStatus.FAILED)

    @property
    def succeeded(self) -> bool:
        return self.status is StepStatus.SUCCEEDED

    @property
    def label(self) -> str:
        """Summary label: succeeded, failed, or skipped (never ran)."""
        if self.status is StepStatus.SUCCEEDED:
            return "succeeded"
        if isinstance(self.failure, (DependencyFailure, StepCancelled)) or not self.status.is_terminal:
            return "skipped"
        return "failed"

    @property
    def detail(self) -> str | None:
        if self.failure is None:
            return None
        return f"{self.failure.kind}: {self.failure}"
