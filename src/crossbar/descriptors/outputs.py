"""Typed step outputs.

These are the contracts between provisioning steps: each step publishes one
of them on success and dependent steps read them, never the live resources.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class NetworkOutput:
    """Output of create-network."""
    network_name: str
    network_id: str
    subnet_name: str
    subnet_id: str
    region: str


@dataclass(frozen=True)
class EgressOutput:
    """Output of create-egress: the addresses all outbound traffic leaves from."""
    router_name: str
    nat_name: str
    addresses: tuple[str, ...]


@dataclass(frozen=True)
class ClusterOutput:
    """Output of create-cluster.

    Contains what credential building and readiness watching need.
    """
    cluster_name: str
    location: str
    endpoint: str
    ca_certificate: str
    node_pool_name: str


@dataclass(frozen=True)
class StaticAddressOutput:
    name: str
    address: str
    network_tier: str


@dataclass(frozen=True)
class IngressControllerOutput:
    release_name: str
    ingress_class: str
    load_balancer_ip: str


@dataclass(frozen=True)
class CertificateIssuerOutput:
    release_name: str
    namespace: str
    issuer_name: str


@dataclass(frozen=True)
class ApplicationOutput:
    """Output of deploy-application."""
    deployment_name: str
    service_name: str
    ingress_name: str
    host: str
    replicas: int
    hpa_name: Optional[str] = None

    @property
    def url(self) -> str:
        return f"https://{self.host}"
