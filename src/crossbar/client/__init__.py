"""Service layer: the full provisioning pipeline and its report."""

from .provision import ProvisioningPlan, ProvisioningReport, ProvisioningService
from .summary import RegionSummary

__all__ = ["ProvisioningService", "ProvisioningPlan", "ProvisioningReport", "RegionSummary"]
