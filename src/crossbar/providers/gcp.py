"""Google Cloud resource provider backed by the Pulumi Automation API.

Each step of each plan owns one stack (``<plan>-<env>`` in project
``crossbar-<step>``), so re-running a step converges on the resources the
previous run created. Pulumi runs in a worker thread; the event loop is
never blocked.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

import pulumi
import pulumi_gcp as gcp
from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException

from ..core import automation
from ..core.automation import get_output_value
from ..core.env import DEFAULT_ENVIRONMENT
from ..descriptors.infra import (
    ClusterDescriptor,
    EgressDescriptor,
    NetworkDescriptor,
    StaticAddressDescriptor,
)
from ..descriptors.outputs import (
    ClusterOutput,
    EgressOutput,
    NetworkOutput,
    StaticAddressOutput,
)
from ..orchestration.credentials import CredentialBundleBuilder
from ..orchestration.steps import StepKind
from ..planning.resolved import ResolvedClusterPlan
from .base import ResourceProvider

logger = logging.getLogger(__name__)

# Label GKE puts on every node of a node pool
NODE_POOL_LABEL = "cloud.google.com/gke-nodepool"


def count_ready_nodes(core_api: Any, node_pool: str) -> int:
    """Number of nodes in ``node_pool`` whose Ready condition is True."""
    nodes = core_api.list_node(label_selector=f"{NODE_POOL_LABEL}={node_pool}")
    ready = 0
    for node in nodes.items:
        conditions = (node.status.conditions if node.status else None) or []
        if any(c.type == "Ready" and c.status == "True" for c in conditions):
            ready += 1
    return ready


def network_program(d: NetworkDescriptor) -> Callable[[], None]:
    def program():
        vpc = gcp.compute.Network(
            d.vpc.name,
            name=d.vpc.name,
            project=d.vpc.project,
            description=d.vpc.description,
            auto_create_subnetworks=d.vpc.auto_create_subnetworks,
        )
        subnet = gcp.compute.Subnetwork(
            d.subnet.name,
            name=d.subnet.name,
            project=d.subnet.project,
            region=d.subnet.region,
            network=vpc.id,
            ip_cidr_range=d.subnet.ip_cidr_range,
            private_ip_google_access=d.subnet.private_ip_google_access,
            secondary_ip_ranges=[
                gcp.compute.SubnetworkSecondaryIpRangeArgs(
                    range_name=r.range_name,
                    ip_cidr_range=r.ip_cidr_range,
                )
                for r in d.subnet.secondary_ranges
            ],
        )
        pulumi.export("network_name", vpc.name)
        pulumi.export("network_id", vpc.id)
        pulumi.export("subnet_name", subnet.name)
        pulumi.export("subnet_id", subnet.id)

    return program


def egress_program(d: EgressDescriptor) -> Callable[[], None]:
    def program():
        addresses = [
            gcp.compute.Address(
                name,
                name=name,
                project=d.project,
                region=d.region,
                description=f"Static IP {i + 1} for {d.nat_name}",
            )
            for i, name in enumerate(d.address_names)
        ]
        router = gcp.compute.Router(
            d.router_name,
            name=d.router_name,
            project=d.project,
            region=d.region,
            network=d.network,
        )
        nat = gcp.compute.RouterNat(
            d.nat_name,
            name=d.nat_name,
            project=d.project,
            region=d.region,
            router=router.name,
            nat_ip_allocate_option=d.nat_ip_allocate_option,
            nat_ips=[a.self_link for a in addresses],
            source_subnetwork_ip_ranges_to_nat=d.source_subnetwork_ip_ranges_to_nat,
            min_ports_per_vm=d.min_ports_per_vm,
        )
        pulumi.export("router_name", router.name)
        pulumi.export("nat_name", nat.name)
        pulumi.export("addresses", [a.address for a in addresses])

    return program


def cluster_program(d: ClusterDescriptor) -> Callable[[], None]:
    def program():
        private_config = None
        if d.private_nodes:
            private_config = gcp.container.ClusterPrivateClusterConfigArgs(
                enable_private_nodes=True,
                enable_private_endpoint=False,
                master_ipv4_cidr_block=d.master_cidr,
            )
        gateway_config = None
        if d.gateway_api:
            gateway_config = gcp.container.ClusterGatewayApiConfigArgs(channel="CHANNEL_STANDARD")

        cluster = gcp.container.Cluster(
            d.name,
            name=d.name,
            project=d.project,
            location=d.location,
            network=d.network,
            subnetwork=d.subnetwork,
            remove_default_node_pool=True,
            initial_node_count=1,
            private_cluster_config=private_config,
            network_policy=gcp.container.ClusterNetworkPolicyArgs(enabled=d.network_policy),
            ip_allocation_policy=gcp.container.ClusterIpAllocationPolicyArgs(
                cluster_secondary_range_name=d.pods_range_name,
                services_secondary_range_name=d.services_range_name,
            ),
            gateway_api_config=gateway_config,
            resource_labels=d.labels,
            description=d.description,
            deletion_protection=d.deletion_protection,
        )

        pool = d.node_pool
        node_pool = gcp.container.NodePool(
            pool.name,
            name=pool.name,
            project=d.project,
            location=d.location,
            cluster=cluster.name,
            initial_node_count=pool.min_nodes,
            autoscaling=gcp.container.NodePoolAutoscalingArgs(
                min_node_count=pool.min_nodes,
                max_node_count=pool.max_nodes,
            ),
            node_config=gcp.container.NodePoolNodeConfigArgs(
                machine_type=pool.machine_type,
                disk_size_gb=pool.disk_size_gb,
                disk_type=pool.disk_type,
                spot=pool.spot,
                oauth_scopes=list(pool.oauth_scopes),
                labels=pool.labels,
                tags=list(pool.tags),
            ),
            management=gcp.container.NodePoolManagementArgs(
                auto_repair=pool.auto_repair,
                auto_upgrade=pool.auto_upgrade,
            ),
        )

        pulumi.export("cluster_name", cluster.name)
        pulumi.export("location", cluster.location)
        pulumi.export("endpoint", cluster.endpoint)
        pulumi.export("ca_certificate", cluster.master_auth.cluster_ca_certificate)
        pulumi.export("node_pool_name", node_pool.name)

    return program


def static_address_program(d: StaticAddressDescriptor) -> Callable[[], None]:
    def program():
        address = gcp.compute.Address(
            d.name,
            name=d.name,
            project=d.project,
            region=d.region,
            address_type="EXTERNAL",
            network_tier=d.network_tier,
            labels=d.labels,
            description="Ingress load balancer address",
        )
        pulumi.export("name", address.name)
        pulumi.export("address", address.address)
        pulumi.export("network_tier", address.network_tier)

    return program


class GcpResourceProvider(ResourceProvider):
    """
    Creates GCP resources with one Pulumi stack per step and plan.

    Args:
        env: Environment name, part of every stack name
        backend_url: Pulumi backend (defaults to the local file backend)
        poll_interval: Seconds between ready-node polls
        on_output: Callback for Pulumi engine output
        credentials: Builds the bundle used to reach a new cluster's API
    """

    def __init__(
        self,
        env: str = DEFAULT_ENVIRONMENT,
        backend_url: str | None = None,
        poll_interval: float = 15.0,
        on_output: Callable[[str], None] | None = None,
        credentials: CredentialBundleBuilder | None = None,
    ):
        self.env = env
        self.backend_url = backend_url
        self.poll_interval = poll_interval
        self.on_output = on_output
        self.credentials = credentials or CredentialBundleBuilder()
        automation.configure_quiet_environment()

    async def _up(
        self, plan: ResolvedClusterPlan, kind: StepKind, program: Callable[[], None]
    ) -> dict[str, Any]:
        return await asyncio.to_thread(
            automation.up,
            kind.value,
            plan.name,
            self.env,
            program,
            config={"gcp:project": plan.project_id, "gcp:region": plan.region},
            backend_url=self.backend_url,
            on_output=self.on_output,
        )

    async def create_network(
        self, plan: ResolvedClusterPlan, descriptor: NetworkDescriptor
    ) -> NetworkOutput:
        outputs = await self._up(plan, StepKind.CREATE_NETWORK, network_program(descriptor))
        return NetworkOutput(
            network_name=get_output_value(outputs, "network_name", descriptor.vpc.name),
            network_id=get_output_value(outputs, "network_id"),
            subnet_name=get_output_value(outputs, "subnet_name", descriptor.subnet.name),
            subnet_id=get_output_value(outputs, "subnet_id"),
            region=descriptor.subnet.region,
        )

    async def create_egress(
        self, plan: ResolvedClusterPlan, descriptor: EgressDescriptor
    ) -> EgressOutput:
        outputs = await self._up(plan, StepKind.CREATE_EGRESS, egress_program(descriptor))
        return EgressOutput(
            router_name=get_output_value(outputs, "router_name", descriptor.router_name),
            nat_name=get_output_value(outputs, "nat_name", descriptor.nat_name),
            addresses=tuple(get_output_value(outputs, "addresses", [])),
        )

    async def create_cluster(
        self, plan: ResolvedClusterPlan, descriptor: ClusterDescriptor
    ) -> ClusterOutput:
        outputs = await self._up(plan, StepKind.CREATE_CLUSTER, cluster_program(descriptor))
        return ClusterOutput(
            cluster_name=get_output_value(outputs, "cluster_name", descriptor.name),
            location=get_output_value(outputs, "location", descriptor.location),
            endpoint=get_output_value(outputs, "endpoint", ""),
            ca_certificate=get_output_value(outputs, "ca_certificate", ""),
            node_pool_name=get_output_value(outputs, "node_pool_name", descriptor.node_pool.name),
        )

    async def create_static_address(
        self, plan: ResolvedClusterPlan, descriptor: StaticAddressDescriptor
    ) -> StaticAddressOutput:
        outputs = await self._up(
            plan, StepKind.CREATE_STATIC_ADDRESS, static_address_program(descriptor)
        )
        return StaticAddressOutput(
            name=get_output_value(outputs, "name", descriptor.name),
            address=get_output_value(outputs, "address"),
            network_tier=get_output_value(outputs, "network_tier", descriptor.network_tier),
        )

    def _core_api(self, cluster: ClusterOutput) -> k8s_client.CoreV1Api:
        bundle = self.credentials.build(
            cluster.endpoint, cluster.ca_certificate, cluster.cluster_name
        )
        api_client = k8s_config.new_client_from_config_dict(bundle.to_kubeconfig())
        return k8s_client.CoreV1Api(api_client)

    async def watch_node_pool(
        self, plan: ResolvedClusterPlan, cluster: ClusterOutput
    ) -> AsyncIterator[int]:
        """Poll the cluster's Kubernetes API and report the pool's Ready node count.

        The node pool existing is not enough: only nodes whose ``Ready``
        condition is True are counted, across every zone of the region.
        """
        core_api = self._core_api(cluster)
        while True:
            try:
                count = await asyncio.to_thread(
                    count_ready_nodes, core_api, cluster.node_pool_name
                )
            except ApiException as e:
                logger.warning(
                    f"{cluster.node_pool_name}: listing nodes failed ({e.status} {e.reason}), retrying"
                )
                count = 0
            logger.debug(f"{cluster.node_pool_name}: {count} ready node(s)")
            yield count
            await asyncio.sleep(self.poll_interval)
