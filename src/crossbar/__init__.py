"""crossbar - per-region GKE application stacks from one declarative document."""

from ._version import __version__
from .client.provision import ProvisioningReport, ProvisioningService

__all__ = ["ProvisioningService", "ProvisioningReport", "__version__"]
