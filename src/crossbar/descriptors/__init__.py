"""Collaborator-facing descriptors and typed step outputs."""

from .outputs import (
    ApplicationOutput,
    CertificateIssuerOutput,
    ClusterOutput,
    EgressOutput,
    IngressControllerOutput,
    NetworkOutput,
    StaticAddressOutput,
)

__all__ = [
    "NetworkOutput",
    "EgressOutput",
    "ClusterOutput",
    "StaticAddressOutput",
    "IngressControllerOutput",
    "CertificateIssuerOutput",
    "ApplicationOutput",
]
