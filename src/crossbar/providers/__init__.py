"""Collaborators that create resources on behalf of the orchestrator.

The Pulumi-backed implementations live in ``providers.gcp`` and
``providers.kubernetes`` and are imported on demand.
"""

from .base import ResourceProvider, WorkloadClient
from .memory import InMemoryResourceProvider, InMemoryWorkloadClient

__all__ = [
    "ResourceProvider",
    "WorkloadClient",
    "InMemoryResourceProvider",
    "InMemoryWorkloadClient",
]
