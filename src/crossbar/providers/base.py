"""Collaborator interfaces.

The orchestrator never creates anything itself. Cloud resources are created
by a ResourceProvider and Kubernetes objects by a WorkloadClient; both may
retry internally, and both surface failures by raising.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
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
from ..planning.resolved import ResolvedClusterPlan


class ResourceProvider(ABC):
    """Creates cloud resources from descriptors and returns their live outputs.

    Every create is convergent: calling it again with the same descriptor
    returns the existing resource.
    """

    @abstractmethod
    async def create_network(
        self, plan: ResolvedClusterPlan, descriptor: NetworkDescriptor
    ) -> NetworkOutput:
        pass

    @abstractmethod
    async def create_egress(
        self, plan: ResolvedClusterPlan, descriptor: EgressDescriptor
    ) -> EgressOutput:
        pass

    @abstractmethod
    async def create_cluster(
        self, plan: ResolvedClusterPlan, descriptor: ClusterDescriptor
    ) -> ClusterOutput:
        pass

    @abstractmethod
    async def create_static_address(
        self, plan: ResolvedClusterPlan, descriptor: StaticAddressDescriptor
    ) -> StaticAddressOutput:
        pass

    @abstractmethod
    def watch_node_pool(
        self, plan: ResolvedClusterPlan, cluster: ClusterOutput
    ) -> AsyncIterator[int]:
        """Stream ready-node counts for the cluster's node pool.

        The stream may end or run forever; the consumer stops reading once it
        has seen enough capacity.
        """
        pass


class WorkloadClient(ABC):
    """Applies workload bundles to a cluster addressed by a credential bundle."""

    @abstractmethod
    async def apply(self, credentials: CredentialBundle, bundle: WorkloadBundle) -> dict[str, Any]:
        """Apply a bundle and return whatever identifiers the client reports."""
        pass
