"""Step bodies: descriptors in, collaborator calls, typed outputs out."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

from ..descriptors.infra import (
    cluster_descriptor,
    egress_descriptor,
    network_descriptors,
    static_address_descriptor,
)
from ..descriptors.outputs import (
    ApplicationOutput,
    CertificateIssuerOutput,
    ClusterOutput,
    IngressControllerOutput,
)
from ..descriptors.workload import (
    CERT_MANAGER_NAMESPACE,
    INGRESS_CLASS,
    application_bundle,
    application_host,
    certificate_issuer_bundle,
    ingress_controller_bundle,
)
from .credentials import CredentialBundleBuilder
from .steps import StepKind

if TYPE_CHECKING:
    from ..planning.resolved import ResolvedClusterPlan
    from ..providers.base import ResourceProvider, WorkloadClient

logger = logging.getLogger(__name__)

Inputs = Mapping[StepKind, Any]


class StepRunner(ABC):
    """Executes step bodies for the orchestrator."""

    @abstractmethod
    async def run(self, kind: StepKind, plan: ResolvedClusterPlan, inputs: Inputs) -> Any:
        """Run one step; ``inputs`` holds the outputs of every ancestor step."""
        pass

    @abstractmethod
    def readiness(self, plan: ResolvedClusterPlan, cluster: ClusterOutput) -> AsyncIterator[int]:
        """Ready-node feed for the plan's node pool."""
        pass


class CollaboratorStepRunner(StepRunner):
    """Runs steps against a ResourceProvider and a WorkloadClient."""

    def __init__(
        self,
        provider: ResourceProvider,
        workload_client: WorkloadClient,
        credentials: CredentialBundleBuilder | None = None,
    ):
        self.provider = provider
        self.workload_client = workload_client
        self.credentials = credentials or CredentialBundleBuilder()
        self._handlers: dict[StepKind, Callable[[ResolvedClusterPlan, Inputs], Awaitable[Any]]] = {
            StepKind.CREATE_NETWORK: self._create_network,
            StepKind.CREATE_EGRESS: self._create_egress,
            StepKind.CREATE_CLUSTER: self._create_cluster,
            StepKind.BUILD_CREDENTIALS: self._build_credentials,
            StepKind.CREATE_STATIC_ADDRESS: self._create_static_address,
            StepKind.INSTALL_INGRESS_CONTROLLER: self._install_ingress_controller,
            StepKind.INSTALL_CERTIFICATE_ISSUER: self._install_certificate_issuer,
            StepKind.DEPLOY_APPLICATION: self._deploy_application,
        }

    async def run(self, kind: StepKind, plan: ResolvedClusterPlan, inputs: Inputs) -> Any:
        return await self._handlers[kind](plan, inputs)

    def readiness(self, plan: ResolvedClusterPlan, cluster: ClusterOutput) -> AsyncIterator[int]:
        return self.provider.watch_node_pool(plan, cluster)

    async def _create_network(self, plan, inputs):
        return await self.provider.create_network(plan, network_descriptors(plan))

    async def _create_egress(self, plan, inputs):
        network = inputs[StepKind.CREATE_NETWORK]
        return await self.provider.create_egress(plan, egress_descriptor(plan, network))

    async def _create_cluster(self, plan, inputs):
        network = inputs[StepKind.CREATE_NETWORK]
        return await self.provider.create_cluster(plan, cluster_descriptor(plan, network))

    async def _build_credentials(self, plan, inputs):
        cluster = inputs[StepKind.CREATE_CLUSTER]
        return self.credentials.build(cluster.endpoint, cluster.ca_certificate, cluster.cluster_name)

    async def _create_static_address(self, plan, inputs):
        return await self.provider.create_static_address(plan, static_address_descriptor(plan))

    async def _install_ingress_controller(self, plan, inputs):
        address = inputs[StepKind.CREATE_STATIC_ADDRESS]
        bundle = ingress_controller_bundle(plan, address)
        await self.workload_client.apply(inputs[StepKind.BUILD_CREDENTIALS], bundle)
        return IngressControllerOutput(
            release_name=plan.names.ingress_controller,
            ingress_class=INGRESS_CLASS,
            load_balancer_ip=address.address,
        )

    async def _install_certificate_issuer(self, plan, inputs):
        bundle = certificate_issuer_bundle(plan)
        await self.workload_client.apply(inputs[StepKind.BUILD_CREDENTIALS], bundle)
        return CertificateIssuerOutput(
            release_name=plan.names.cert_manager,
            namespace=CERT_MANAGER_NAMESPACE,
            issuer_name=plan.names.issuer,
        )

    async def _deploy_application(self, plan, inputs):
        address = inputs[StepKind.CREATE_STATIC_ADDRESS]
        bundle = application_bundle(
            plan,
            address,
            inputs[StepKind.INSTALL_INGRESS_CONTROLLER],
            inputs[StepKind.INSTALL_CERTIFICATE_ISSUER],
        )
        await self.workload_client.apply(inputs[StepKind.BUILD_CREDENTIALS], bundle)
        host = application_host(plan, address)
        logger.info(f"{plan.name}: application available at https://{host}")
        return ApplicationOutput(
            deployment_name=plan.names.app,
            service_name=plan.names.service,
            ingress_name=plan.names.ingress,
            host=host,
            replicas=plan.app.replicas,
            hpa_name=plan.names.hpa if plan.app.hpa.enabled else None,
        )
