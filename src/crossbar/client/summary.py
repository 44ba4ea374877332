"""Per-region summaries emitted after a run."""

from dataclasses import asdict, dataclass, field
from typing import Any

from ..descriptors.outputs import ApplicationOutput, EgressOutput, StaticAddressOutput
from ..descriptors.workload import application_host
from ..orchestration.orchestrator import RegionResult
from ..orchestration.steps import StepKind


@dataclass
class RegionSummary:
    """What a user needs to know about one region after a run."""

    name: str
    region: str
    status: str
    https_host: str | None = None
    egress_ips: list[str] = field(default_factory=list)
    steps: dict[str, str] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_result(cls, result: RegionResult) -> "RegionSummary":
        """
        Summarize a region result.

        The HTTPS host is known as soon as the static address exists, even if
        the application itself was not deployed.
        """
        plan = result.plan

        host = None
        app = result.output(StepKind.DEPLOY_APPLICATION)
        address = result.output(StepKind.CREATE_STATIC_ADDRESS)
        if isinstance(app, ApplicationOutput):
            host = app.host
        elif isinstance(address, StaticAddressOutput):
            host = application_host(plan, address)

        egress = result.output(StepKind.CREATE_EGRESS)
        egress_ips = list(egress.addresses) if isinstance(egress, EgressOutput) else []

        return cls(
            name=plan.name,
            region=plan.region,
            status=result.overall_status.value,
            https_host=host,
            egress_ips=egress_ips,
            steps={kind.value: r.label for kind, r in result.step_results.items()},
            errors={
                kind.value: r.detail
                for kind, r in result.step_results.items()
                if r.detail is not None
            },
        )

    @property
    def url(self) -> str | None:
        return f"https://{self.https_host}" if self.https_host else None

    def to_json(self) -> dict[str, Any]:
        """JSON-serializable representation."""
        data = asdict(self)
        data["url"] = self.url
        return data
