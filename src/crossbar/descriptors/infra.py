"""Declarative descriptors handed to the cloud resource provider.

Each builder is a pure function of a resolved plan and, where a resource
needs the live identity of an earlier one, that step's typed output.
"""

from dataclasses import dataclass, field

from ..planning.resolved import ResolvedClusterPlan
from .outputs import NetworkOutput

PODS_RANGE_NAME = "pods"
SERVICES_RANGE_NAME = "services"
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


@dataclass(frozen=True)
class SecondaryRange:
    range_name: str
    ip_cidr_range: str


@dataclass(frozen=True)
class VpcDescriptor:
    name: str
    project: str
    description: str
    auto_create_subnetworks: bool = False


@dataclass(frozen=True)
class SubnetDescriptor:
    name: str
    project: str
    region: str
    ip_cidr_range: str
    secondary_ranges: tuple[SecondaryRange, ...]
    private_ip_google_access: bool = True


@dataclass(frozen=True)
class NetworkDescriptor:
    """VPC plus the one subnet the cluster lives in."""
    vpc: VpcDescriptor
    subnet: SubnetDescriptor


@dataclass(frozen=True)
class EgressDescriptor:
    """Cloud Router and Cloud NAT with manually reserved addresses."""
    project: str
    region: str
    network: str
    router_name: str
    nat_name: str
    address_names: tuple[str, ...]
    min_ports_per_vm: int
    nat_ip_allocate_option: str = "MANUAL_ONLY"
    source_subnetwork_ip_ranges_to_nat: str = "ALL_SUBNETWORKS_ALL_IP_RANGES"


@dataclass(frozen=True)
class NodePoolDescriptor:
    name: str
    machine_type: str
    disk_size_gb: int
    spot: bool
    min_nodes: int
    max_nodes: int
    disk_type: str = "pd-standard"
    oauth_scopes: tuple[str, ...] = (CLOUD_PLATFORM_SCOPE,)
    labels: dict[str, str] = field(default_factory=dict)
    tags: tuple[str, ...] = ()
    auto_repair: bool = True
    auto_upgrade: bool = True


@dataclass(frozen=True)
class ClusterDescriptor:
    """GKE cluster with its default pool removed and one autoscaling pool."""
    name: str
    project: str
    location: str
    network: str
    subnetwork: str
    private_nodes: bool
    master_cidr: str
    node_pool: NodePoolDescriptor
    description: str
    deletion_protection: bool
    gateway_api: bool
    labels: dict[str, str] = field(default_factory=dict)
    network_policy: bool = True
    pods_range_name: str = PODS_RANGE_NAME
    services_range_name: str = SERVICES_RANGE_NAME


@dataclass(frozen=True)
class StaticAddressDescriptor:
    """Regional external address for the ingress load balancer."""
    name: str
    project: str
    region: str
    network_tier: str
    labels: dict[str, str] = field(default_factory=dict)


def network_descriptors(plan: ResolvedClusterPlan) -> NetworkDescriptor:
    networking = plan.networking
    return NetworkDescriptor(
        vpc=VpcDescriptor(
            name=plan.names.vpc,
            project=plan.project_id,
            description=f"VPC for {plan.name}",
        ),
        subnet=SubnetDescriptor(
            name=plan.names.subnet,
            project=plan.project_id,
            region=plan.region,
            ip_cidr_range=networking.subnet_cidr,
            secondary_ranges=(
                SecondaryRange(PODS_RANGE_NAME, networking.pods_cidr),
                SecondaryRange(SERVICES_RANGE_NAME, networking.services_cidr),
            ),
        ),
    )


def egress_descriptor(plan: ResolvedClusterPlan, network: NetworkOutput) -> EgressDescriptor:
    return EgressDescriptor(
        project=plan.project_id,
        region=plan.region,
        network=network.network_id,
        router_name=plan.names.router,
        nat_name=plan.names.nat,
        address_names=plan.names.nat_addresses,
        min_ports_per_vm=plan.egress.min_ports_per_vm,
    )


def cluster_descriptor(plan: ResolvedClusterPlan, network: NetworkOutput) -> ClusterDescriptor:
    """Regional cluster in the plan's subnet."""
    pool = plan.node_pool
    return ClusterDescriptor(
        name=plan.names.cluster,
        project=plan.project_id,
        location=plan.region,
        network=network.network_id,
        subnetwork=network.subnet_id,
        private_nodes=plan.networking.private_nodes,
        master_cidr=plan.networking.master_cidr,
        node_pool=NodePoolDescriptor(
            name=plan.names.node_pool,
            machine_type=pool.machine_type,
            disk_size_gb=pool.disk_size_gb,
            spot=pool.spot,
            min_nodes=pool.min_nodes,
            max_nodes=pool.max_nodes,
            labels=plan.labels,
            tags=(plan.names.node_tag,),
        ),
        description=plan.cluster.description,
        deletion_protection=plan.cluster.deletion_protection,
        gateway_api=plan.experimental.gateway_api,
        labels=plan.labels,
    )


def static_address_descriptor(plan: ResolvedClusterPlan) -> StaticAddressDescriptor:
    return StaticAddressDescriptor(
        name=plan.names.static_address,
        project=plan.project_id,
        region=plan.region,
        network_tier=plan.ingress.network_tier,
        labels=plan.labels,
    )
