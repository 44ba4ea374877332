"""Workload client backed by pulumi_kubernetes.

A bundle becomes one stack (``<plan>-<env>`` in project
``crossbar-<component>``) whose Kubernetes provider is built from the
credential bundle's kubeconfig.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import pulumi
import pulumi_kubernetes as k8s

from ..core import automation
from ..core.env import DEFAULT_ENVIRONMENT
from ..descriptors.workload import WorkloadBundle
from ..orchestration.credentials import CredentialBundle
from .base import WorkloadClient

logger = logging.getLogger(__name__)


def bundle_program(credentials: CredentialBundle, bundle: WorkloadBundle) -> Callable[[], None]:
    """Inline program applying prelude, releases and manifests in order."""

    def program():
        provider = k8s.Provider(
            f"{bundle.name}-k8s",
            kubeconfig=credentials.to_kubeconfig_yaml(),
        )
        depends_on: list[pulumi.Resource] = []

        if bundle.prelude:
            prelude = k8s.yaml.ConfigGroup(
                f"{bundle.name}-prelude",
                objs=list(bundle.prelude),
                opts=pulumi.ResourceOptions(provider=provider),
            )
            depends_on.append(prelude)

        releases = []
        for spec in bundle.releases:
            release = k8s.helm.v3.Release(
                spec.name,
                k8s.helm.v3.ReleaseArgs(
                    name=spec.name,
                    chart=spec.chart,
                    version=spec.version,
                    repository_opts=k8s.helm.v3.RepositoryOptsArgs(repo=spec.repo),
                    namespace=spec.namespace,
                    create_namespace=spec.create_namespace,
                    values=spec.values,
                ),
                opts=pulumi.ResourceOptions(provider=provider, depends_on=list(depends_on)),
            )
            releases.append(release)
        depends_on.extend(releases)

        if bundle.manifests:
            k8s.yaml.ConfigGroup(
                f"{bundle.name}-manifests",
                objs=list(bundle.manifests),
                opts=pulumi.ResourceOptions(provider=provider, depends_on=depends_on),
            )

        pulumi.export("releases", [r.name for r in releases])
        pulumi.export("objects", [obj["metadata"]["name"] for obj in bundle.objects()])

    return program


class PulumiWorkloadClient(WorkloadClient):
    """
    Applies workload bundles through the Pulumi Automation API.

    Args:
        env: Environment name, part of every stack name
        backend_url: Pulumi backend (defaults to the local file backend)
        on_output: Callback for Pulumi engine output
    """

    def __init__(
        self,
        env: str = DEFAULT_ENVIRONMENT,
        backend_url: str | None = None,
        on_output: Callable[[str], None] | None = None,
    ):
        self.env = env
        self.backend_url = backend_url
        self.on_output = on_output
        automation.configure_quiet_environment()

    async def apply(self, credentials: CredentialBundle, bundle: WorkloadBundle) -> dict[str, Any]:
        logger.info(f"Applying {bundle.name} to {credentials.cluster_name}")
        outputs = await asyncio.to_thread(
            automation.up,
            bundle.component,
            bundle.owner,
            self.env,
            bundle_program(credentials, bundle),
            backend_url=self.backend_url,
            on_output=self.on_output,
        )
        return {
            "releases": automation.get_output_value(outputs, "releases", []),
            "objects": automation.get_output_value(outputs, "objects", []),
        }
