"""Raw configuration specifications."""

from .cluster import (
    AppSpec,
    ClusterSettingsSpec,
    ClusterSpec,
    ClusterTemplate,
    EgressSpec,
    ExperimentalSpec,
    HpaSpec,
    IngressSpec,
    NetworkingSpec,
    NodePoolSpec,
    ResourceQuantities,
    ResourcesSpec,
    ServiceSpec,
)
from .config import InputMode, OrchestrationSpec, RawConfig

__all__ = [
    "AppSpec",
    "ClusterSettingsSpec",
    "ClusterSpec",
    "ClusterTemplate",
    "EgressSpec",
    "ExperimentalSpec",
    "HpaSpec",
    "IngressSpec",
    "InputMode",
    "NetworkingSpec",
    "NodePoolSpec",
    "OrchestrationSpec",
    "RawConfig",
    "ResourceQuantities",
    "ResourcesSpec",
    "ServiceSpec",
]
