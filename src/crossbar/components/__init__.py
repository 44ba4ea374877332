"""crossbar configuration models."""

from .config_base import ConfigModel, load_document
from .specs import (
    AppSpec,
    ClusterSpec,
    ClusterTemplate,
    HpaSpec,
    NodePoolSpec,
    OrchestrationSpec,
    RawConfig,
)

__all__ = [
    # Base
    "ConfigModel",
    "load_document",
    # Document
    "RawConfig",
    "OrchestrationSpec",
    # Cluster
    "ClusterSpec",
    "ClusterTemplate",
    "NodePoolSpec",
    "AppSpec",
    "HpaSpec",
]
