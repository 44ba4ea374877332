"""Centralized naming conventions for crossbar stacks and resources.

This module provides a single source of truth for all naming conventions
used throughout crossbar, including Pulumi stacks, GCP resources, and
Kubernetes resources.

Every name is a pure function of its inputs. No counters, clocks or random
suffixes are involved, so expanding the same configuration twice yields the
same identifiers and a re-run converges on the resources the first run made.
"""

import string

from pydantic import BaseModel, ConfigDict

from .k8s import dns_1123_label

VPC_PLACEHOLDERS = ("name", "region")


class ResourceNames(BaseModel):
    """Every derived resource name for one cluster plan."""

    model_config = ConfigDict(frozen=True)

    vpc: str
    subnet: str
    router: str
    nat: str
    nat_addresses: tuple[str, ...]
    cluster: str
    node_pool: str
    node_tag: str
    static_address: str
    ingress_controller: str
    cert_manager: str
    issuer: str
    app: str
    service: str
    hpa: str
    ingress: str
    tls_secret: str

    def global_names(self) -> dict[str, str]:
        """Names that must be unique across every plan in a project.

        Returns:
            Mapping of a label (e.g. 'vpc') to the derived name
        """
        names = {
            "vpc": self.vpc,
            "subnet": self.subnet,
            "router": self.router,
            "nat": self.nat,
            "cluster": self.cluster,
            "staticAddress": self.static_address,
        }
        for i, address in enumerate(self.nat_addresses):
            names[f"natAddresses[{i}]"] = address
        return names


class ResourceNaming:
    """Centralized naming for all Pulumi stacks and cloud resources.

    All methods use the PROJECT_PREFIX to ensure consistency.
    """

    PROJECT_PREFIX = "crossbar"

    @staticmethod
    def region_cluster_name(region: str, prefix: str | None = None) -> str:
        """Generate the cluster name for a region-list entry.

        Pattern: {prefix}-{region}

        Args:
            region: Region name (e.g. us-east1)
            prefix: Name prefix, defaults to PROJECT_PREFIX

        Returns:
            Cluster name like 'crossbar-us-east1'
        """
        prefix = dns_1123_label(prefix or ResourceNaming.PROJECT_PREFIX,
                                fallback=ResourceNaming.PROJECT_PREFIX)
        return f"{prefix}-{region}"

    @staticmethod
    def vpc_name(template: str, name: str, region: str) -> str:
        """Render a VPC name template.

        The template may use the bare ``{name}`` and ``{region}`` placeholders.

        Raises:
            ValueError: If the template is malformed or uses any other field,
                attribute, index, conversion or format spec
        """
        for _, field, format_spec, conversion in string.Formatter().parse(template):
            if field is None:
                continue
            if field not in VPC_PLACEHOLDERS or format_spec or conversion:
                raise ValueError(f"unsupported placeholder '{{{field}}}'")
        return template.format(name=name, region=region)

    @staticmethod
    def resource_names(name: str, vpc: str, num_nat_addresses: int) -> ResourceNames:
        """Derive all sub-resource names for a cluster plan.

        Args:
            name: Resolved cluster name
            vpc: Rendered VPC name
            num_nat_addresses: Number of NAT addresses to reserve

        Returns:
            ResourceNames for the plan
        """
        app = f"{name}-app"
        return ResourceNames(
            vpc=vpc,
            subnet=f"{vpc}-subnet",
            router=f"{name}-router",
            nat=f"{name}-nat",
            nat_addresses=tuple(f"{name}-nat-ip-{i}" for i in range(num_nat_addresses)),
            cluster=f"{name}-cluster",
            node_pool=f"{name}-nodepool",
            node_tag=f"{name}-nodes",
            static_address=f"{name}-lb-ip",
            ingress_controller=f"{name}-ngx",
            cert_manager=f"{name}-cert-manager",
            issuer="letsencrypt-prod",
            app=app,
            service=f"{app}-service",
            hpa=f"{app}-hpa",
            ingress=f"{app}-ingress",
            tls_secret=f"{name}-tls-secret",
        )

    @staticmethod
    def get_project_name(step: str) -> str:
        """Generate Pulumi project name for a provisioning step.

        Pattern: {PROJECT_PREFIX}-{step}

        Returns:
            Project name like 'crossbar-create-cluster'
        """
        return f"{ResourceNaming.PROJECT_PREFIX}-{step}"

    @staticmethod
    def get_stack_name(plan_name: str, env: str) -> str:
        """Generate Pulumi stack name for one plan.

        Pattern: {plan_name}-{env}

        Returns:
            Stack name like 'crossbar-us-east1-dev'
        """
        return f"{plan_name}-{env}"
