"""Documented defaults and the resolver that merges them into plans.

Merging is a field-level shallow override applied independently to every
nested block: a field present in the document wins, an absent field takes
the default below.
"""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from ..components.specs import ClusterTemplate, InputMode, RawConfig
from ..core.env import RunContext
from .fanout import FanOutPlanner
from .resolved import (
    AppPlan,
    ClusterSettingsPlan,
    EgressPlan,
    ExperimentalPlan,
    HpaPlan,
    IngressPlan,
    NetworkingPlan,
    NodePoolPlan,
    ResolvedClusterPlan,
    ResolvedTemplate,
    ResourceQuantitiesPlan,
    ResourcesPlan,
)

if TYPE_CHECKING:
    from .validator import ConfigValidator

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "crossbar"

DEFAULT_NETWORKING = NetworkingPlan(
    vpc_name="{name}-vpc",
    subnet_cidr="10.10.0.0/20",
    private_nodes=True,
    master_cidr="172.16.0.0/28",
    pods_cidr="10.20.0.0/14",
    services_cidr="10.24.0.0/20",
)

DEFAULT_NODE_POOL = NodePoolPlan(
    machine_type="e2-standard-4",
    disk_size_gb=100,
    spot=False,
    min_nodes=1,
    max_nodes=3,
)

DEFAULT_EGRESS = EgressPlan(num_nat_addresses=1, min_ports_per_vm=2048)

DEFAULT_ISSUER_EMAIL = "admin@example.com"

DEFAULT_INGRESS = IngressPlan(
    allocate_global_static_ip=True,
    host_template="${ip}.sslip.io",
    cert_manager_email=DEFAULT_ISSUER_EMAIL,
)

DEFAULT_HPA = HpaPlan(
    enabled=True,
    min_replicas=1,
    max_replicas=10,
    target_cpu_utilization=70,
    target_memory_utilization=80,
)

DEFAULT_RESOURCES = ResourcesPlan(
    requests=ResourceQuantitiesPlan(cpu="1000m", memory="2048Mi"),
    limits=ResourceQuantitiesPlan(cpu="2000m", memory="4096Mi"),
)

DEFAULT_SERVICE_PORT = 8080
DEFAULT_PROBE_PATH = "/"

DEFAULT_EXPERIMENTAL = ExperimentalPlan(gateway_api=False)

DEFAULT_CLUSTER_SETTINGS = ClusterSettingsPlan(
    deletion_protection=False,
    description="GKE cluster managed by crossbar",
)


def merge(default: BaseModel, override: BaseModel | None) -> Any:
    """Shallow field-level merge: fields set in ``override`` replace the default's."""
    if override is None:
        return default
    changes = {
        name: value
        for name, value in override.model_dump(exclude_none=True).items()
        if name in type(default).model_fields
    }
    return default.model_copy(update=changes)


class DefaultsResolver:
    """Turns a raw document into resolved cluster plans.

    Example:
        >>> resolver = DefaultsResolver(RunContext.from_environ())
        >>> plans = resolver.resolve(yaml.safe_load(open("crossbar.yaml")))
    """

    def __init__(
        self,
        context: RunContext,
        validator: "ConfigValidator | None" = None,
        planner: FanOutPlanner | None = None,
    ):
        # Local import: the validator reads the defaults defined here
        from .validator import ConfigValidator

        self.context = context
        self.validator = validator or ConfigValidator()
        self.planner = planner or FanOutPlanner()

    def resolve(self, raw: Mapping[str, Any] | RawConfig) -> list[ResolvedClusterPlan]:
        """
        Validate and resolve a document into one plan per cluster.

        Args:
            raw: Parsed document or RawConfig

        Returns:
            Resolved plans in document order (region order in region mode)

        Raises:
            ConfigValidationError: If the document has any violation or
                derived names collide
            ConfigError: If the run context has no project id
        """
        config = self.validator.ensure_valid(raw)
        self.context.require_project()

        if config.input_modes() == [InputMode.REGIONS]:
            template = self.resolve_template(config.template)
            plans = self.planner.expand(
                template, config.regions, prefix=config.prefix or DEFAULT_PREFIX
            )
        else:
            plans = self.planner.passthrough(
                self.resolve_template(entry).instantiate(entry.name.strip(), entry.region.strip())
                for entry in config.cluster_entries()
            )

        self.planner.check_collisions(plans)
        logger.info(f"Resolved {len(plans)} cluster plan(s)")
        return plans

    def resolve_template(self, spec: ClusterTemplate | None) -> ResolvedTemplate:
        """Merge one cluster or template entry with the defaults."""
        spec = spec or ClusterTemplate()
        app = spec.app

        ingress = DEFAULT_INGRESS
        if self.context.issuer_email:
            ingress = ingress.model_copy(update={"cert_manager_email": self.context.issuer_email})

        resources = DEFAULT_RESOURCES
        if app is not None and app.resources is not None:
            resources = ResourcesPlan(
                requests=merge(DEFAULT_RESOURCES.requests, app.resources.requests),
                limits=merge(DEFAULT_RESOURCES.limits, app.resources.limits),
            )

        return ResolvedTemplate(
            project_id=self.context.require_project(),
            networking=merge(DEFAULT_NETWORKING, spec.networking),
            node_pool=merge(DEFAULT_NODE_POOL, spec.nodepool),
            egress=merge(DEFAULT_EGRESS, spec.egress),
            ingress=merge(ingress, spec.ingress),
            app=AppPlan(
                image=(app.image or "").strip() if app else "",
                hpa=merge(DEFAULT_HPA, app.hpa if app else None),
                resources=resources,
                service_port=_first(app.service.port if app and app.service else None, DEFAULT_SERVICE_PORT),
                probe_path=_first(app.probe_path if app else None, DEFAULT_PROBE_PATH),
            ),
            experimental=merge(DEFAULT_EXPERIMENTAL, spec.experimental),
            cluster=merge(DEFAULT_CLUSTER_SETTINGS, spec.cluster),
            workload_env=dict(self.context.workload_env),
        )


def _first(value, default):
    return default if value is None else value
