"""In-memory collaborators.

Used by tests and by ``crossbar up --dry-run``. Outputs are derived from
resource names only, so two runs over the same plans return identical
addresses and endpoints.
"""

import asyncio
import base64
import hashlib
import logging
from collections.abc import AsyncIterator, Iterable
from typing import Any

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
from ..descriptors.workload import WorkloadBundle
from ..orchestration.credentials import CredentialBundle
from ..orchestration.steps import StepKind
from ..planning.resolved import ResolvedClusterPlan
from .base import ResourceProvider, WorkloadClient

logger = logging.getLogger(__name__)


class SimulatedFailure(RuntimeError):
    """Raised by in-memory collaborators for steps they were told to fail."""
    pass


def fake_ip(name: str, first_octet: int = 34) -> str:
    """Deterministic public-looking IPv4 address for a resource name."""
    digest = hashlib.sha256(name.encode()).digest()
    return f"{first_octet}.{digest[0]}.{digest[1]}.{max(digest[2], 1)}"


def fake_ca(name: str) -> str:
    pem = f"-----BEGIN CERTIFICATE-----\n{name}\n-----END CERTIFICATE-----\n"
    return base64.b64encode(pem.encode()).decode()


class InMemoryResourceProvider(ResourceProvider):
    """
    Resource provider that creates nothing.

    Args:
        fail_on: Steps that raise SimulatedFailure
        never_ready: Report zero ready nodes and then end the readiness feed
        delay: Seconds each create call takes
    """

    def __init__(
        self,
        fail_on: Iterable[StepKind] = (),
        never_ready: bool = False,
        delay: float = 0.0,
    ):
        self.fail_on = set(fail_on)
        self.never_ready = never_ready
        self.delay = delay
        self.calls: list[tuple[str, StepKind]] = []

    async def _call(self, plan: ResolvedClusterPlan, kind: StepKind) -> None:
        self.calls.append((plan.name, kind))
        if self.delay:
            await asyncio.sleep(self.delay)
        if kind in self.fail_on:
            raise SimulatedFailure(f"simulated {kind.value} failure for {plan.name}")

    def calls_for(self, plan_name: str) -> list[StepKind]:
        return [kind for name, kind in self.calls if name == plan_name]

    async def create_network(
        self, plan: ResolvedClusterPlan, descriptor: NetworkDescriptor
    ) -> NetworkOutput:
        await self._call(plan, StepKind.CREATE_NETWORK)
        project = descriptor.vpc.project
        return NetworkOutput(
            network_name=descriptor.vpc.name,
            network_id=f"projects/{project}/global/networks/{descriptor.vpc.name}",
            subnet_name=descriptor.subnet.name,
            subnet_id=(
                f"projects/{project}/regions/{descriptor.subnet.region}"
                f"/subnetworks/{descriptor.subnet.name}"
            ),
            region=descriptor.subnet.region,
        )

    async def create_egress(
        self, plan: ResolvedClusterPlan, descriptor: EgressDescriptor
    ) -> EgressOutput:
        await self._call(plan, StepKind.CREATE_EGRESS)
        return EgressOutput(
            router_name=descriptor.router_name,
            nat_name=descriptor.nat_name,
            addresses=tuple(fake_ip(name) for name in descriptor.address_names),
        )

    async def create_cluster(
        self, plan: ResolvedClusterPlan, descriptor: ClusterDescriptor
    ) -> ClusterOutput:
        await self._call(plan, StepKind.CREATE_CLUSTER)
        return ClusterOutput(
            cluster_name=descriptor.name,
            location=descriptor.location,
            endpoint=fake_ip(descriptor.name, first_octet=35),
            ca_certificate=fake_ca(descriptor.name),
            node_pool_name=descriptor.node_pool.name,
        )

    async def create_static_address(
        self, plan: ResolvedClusterPlan, descriptor: StaticAddressDescriptor
    ) -> StaticAddressOutput:
        await self._call(plan, StepKind.CREATE_STATIC_ADDRESS)
        return StaticAddressOutput(
            name=descriptor.name,
            address=fake_ip(descriptor.name),
            network_tier=descriptor.network_tier,
        )

    async def watch_node_pool(
        self, plan: ResolvedClusterPlan, cluster: ClusterOutput
    ) -> AsyncIterator[int]:
        yield 0
        if self.never_ready:
            return
        await asyncio.sleep(0)
        yield plan.node_pool.min_nodes


class InMemoryWorkloadClient(WorkloadClient):
    """Workload client that records applied bundles per cluster endpoint."""

    def __init__(self, fail_on: Iterable[StepKind] = (), delay: float = 0.0):
        self.fail_on = {kind.value for kind in fail_on}
        self.delay = delay
        self.applied: list[tuple[str, WorkloadBundle]] = []

    def bundles_for(self, plan_name: str) -> list[WorkloadBundle]:
        return [bundle for _, bundle in self.applied if bundle.owner == plan_name]

    async def apply(self, credentials: CredentialBundle, bundle: WorkloadBundle) -> dict[str, Any]:
        self.applied.append((credentials.endpoint, bundle))
        if self.delay:
            await asyncio.sleep(self.delay)
        if bundle.component in self.fail_on:
            raise SimulatedFailure(f"simulated {bundle.component} failure for {bundle.owner}")
        logger.debug(f"Applied {bundle.name} to {credentials.cluster_name}")
        return {
            "releases": [release.name for release in bundle.releases],
            "objects": [obj["metadata"]["name"] for obj in bundle.objects()],
        }
