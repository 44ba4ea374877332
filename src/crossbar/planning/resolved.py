"""Fully resolved, immutable cluster plans."""

from pydantic import BaseModel, ConfigDict, model_validator

from ..core.k8s import sanitize_label_value
from ..core.naming import ResourceNames, ResourceNaming


class PlanModel(BaseModel):
    """Base for resolved models: immutable, no unknown fields."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class NetworkingPlan(PlanModel):
    vpc_name: str
    subnet_cidr: str
    private_nodes: bool
    master_cidr: str
    pods_cidr: str
    services_cidr: str


class NodePoolPlan(PlanModel):
    """Autoscaling bounds are explicit fields, always populated."""

    machine_type: str
    disk_size_gb: int
    spot: bool
    min_nodes: int
    max_nodes: int


class EgressPlan(PlanModel):
    num_nat_addresses: int
    min_ports_per_vm: int


class IngressPlan(PlanModel):
    allocate_global_static_ip: bool
    host_template: str
    cert_manager_email: str

    @property
    def network_tier(self) -> str:
        """Address tier: PREMIUM is globally routed, STANDARD stays regional."""
        return "PREMIUM" if self.allocate_global_static_ip else "STANDARD"


class HpaPlan(PlanModel):
    enabled: bool
    min_replicas: int
    max_replicas: int
    target_cpu_utilization: int
    target_memory_utilization: int


class ResourceQuantitiesPlan(PlanModel):
    cpu: str
    memory: str


class ResourcesPlan(PlanModel):
    requests: ResourceQuantitiesPlan
    limits: ResourceQuantitiesPlan


class AppPlan(PlanModel):
    image: str
    hpa: HpaPlan
    resources: ResourcesPlan
    service_port: int
    probe_path: str

    @property
    def replicas(self) -> int:
        """Initial replica count of the Deployment."""
        return self.hpa.min_replicas


class ExperimentalPlan(PlanModel):
    gateway_api: bool


class ClusterSettingsPlan(PlanModel):
    deletion_protection: bool
    description: str


class ResolvedTemplate(PlanModel):
    """Defaults merged into a template, before a name and region are assigned.

    ``networking.vpc_name`` is still a template here.
    """

    project_id: str
    networking: NetworkingPlan
    node_pool: NodePoolPlan
    egress: EgressPlan
    ingress: IngressPlan
    app: AppPlan
    experimental: ExperimentalPlan
    cluster: ClusterSettingsPlan
    workload_env: dict[str, str] = {}

    def instantiate(self, name: str, region: str) -> "ResolvedClusterPlan":
        """Bind the template to a cluster name and region, deriving every sub-name."""
        vpc = ResourceNaming.vpc_name(self.networking.vpc_name, name=name, region=region)
        names = ResourceNaming.resource_names(name, vpc, self.egress.num_nat_addresses)
        data = self.model_dump(exclude={"name", "region", "names"})
        data["networking"]["vpc_name"] = vpc
        return ResolvedClusterPlan(name=name, region=region, names=names, **data)


class ResolvedClusterPlan(ResolvedTemplate):
    """Fully defaulted, validated configuration for one cluster in one region."""

    name: str
    region: str
    names: ResourceNames

    @model_validator(mode="after")
    def _check_invariants(self) -> "ResolvedClusterPlan":
        if not self.name.strip():
            raise ValueError("name must not be empty")
        if not self.region.strip():
            raise ValueError("region must not be empty")
        if self.node_pool.min_nodes < 1:
            raise ValueError("node_pool.min_nodes must be at least 1")
        if self.node_pool.max_nodes < self.node_pool.min_nodes:
            raise ValueError("node_pool.max_nodes must be >= min_nodes")
        if self.egress.num_nat_addresses < 1:
            raise ValueError("egress.num_nat_addresses must be at least 1")
        if not self.app.image.strip():
            raise ValueError("app.image must not be empty")
        hpa = self.app.hpa
        if hpa.enabled:
            if not 1 <= hpa.min_replicas <= hpa.max_replicas:
                raise ValueError("hpa replicas must satisfy 1 <= min <= max")
            for target in (hpa.target_cpu_utilization, hpa.target_memory_utilization):
                if not 1 <= target <= 100:
                    raise ValueError("hpa utilization targets must be within [1, 100]")
        return self

    @property
    def labels(self) -> dict[str, str]:
        """Labels applied to every cloud resource of this plan."""
        return {"managed-by": "crossbar", "crossbar-cluster": sanitize_label_value(self.name)}
