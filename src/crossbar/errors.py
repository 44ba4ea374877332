"""Error types for crossbar.

Configuration problems (``ConfigError`` and ``ConfigValidationError``) are
raised before any provisioning step starts. Step failures (``StepFailure`` and
its subclasses) are never raised out of the orchestrator; they are recorded on
the step result of the region they happened in.
"""

from __future__ import annotations

from dataclasses import dataclass


class CrossbarError(Exception):
    """Base exception for crossbar errors."""
    pass


class ConfigError(CrossbarError):
    """Configuration error (missing project, unreadable config file)."""
    pass


@dataclass(frozen=True)
class ValidationIssue:
    """One violation found in a raw configuration tree."""

    field: str
    reason: str

    def __str__(self) -> str:
        return f"{self.field}: {self.reason}"


class ConfigValidationError(ConfigError):
    """Raised when a configuration tree has one or more violations."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = list(issues)
        lines = "\n".join(f"  - {issue}" for issue in self.issues)
        super().__init__(f"Configuration has {len(self.issues)} problem(s):\n{lines}")


class GraphError(CrossbarError):
    """Raised when a dependency graph is malformed (unknown step, cycle)."""
    pass


class CredentialError(CrossbarError):
    """Raised when cluster connection inputs are malformed."""
    pass


class StepFailure(CrossbarError):
    """Base class for failures recorded against a provisioning step."""

    kind = "error"


class StepExecutionError(StepFailure):
    """The collaborator executing the step raised an error."""

    kind = "error"


class DependencyFailure(StepFailure):
    """A dependency of the step failed, so the step never ran."""

    kind = "dependency"


class TimeoutFailure(StepFailure):
    """The step did not complete within its maximum wait."""

    kind = "timeout"


class StepCancelled(StepFailure):
    """The step was not started because its region halted after a failure."""

    kind = "cancelled"
