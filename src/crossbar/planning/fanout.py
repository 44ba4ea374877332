"""Fan-out of templates into per-region plans with deterministic names."""

import logging
from collections.abc import Iterable, Sequence

from ..core.naming import ResourceNaming
from ..errors import ConfigValidationError, ValidationIssue
from .resolved import ResolvedClusterPlan, ResolvedTemplate

logger = logging.getLogger(__name__)


class FanOutPlanner:
    """Expands region lists into independent plans.

    Names are derived only from the prefix, the region and the plan name, so
    expanding the same input twice yields identical identifiers. All names
    are allocated here, before any region starts executing.
    """

    def expand(
        self,
        template: ResolvedTemplate,
        regions: Sequence[str],
        prefix: str = ResourceNaming.PROJECT_PREFIX,
    ) -> list[ResolvedClusterPlan]:
        """
        One plan per region, named ``<prefix>-<region>``.

        Args:
            template: Resolved shared settings
            regions: Target regions, in order
            prefix: Name prefix

        Returns:
            Plans in region order
        """
        plans = []
        for region in regions:
            region = region.strip()
            name = ResourceNaming.region_cluster_name(region, prefix=prefix)
            plans.append(template.instantiate(name, region))
        logger.debug(f"Expanded template into {[p.name for p in plans]}")
        return plans

    def passthrough(self, plans: Iterable[ResolvedClusterPlan]) -> list[ResolvedClusterPlan]:
        """Explicit cluster lists are used as given."""
        return list(plans)

    def check_collisions(self, plans: Sequence[ResolvedClusterPlan]) -> None:
        """
        Fail if plan names or project-wide resource names collide.

        Raises:
            ConfigValidationError: With one issue per collision
        """
        issues: list[ValidationIssue] = []
        seen_plans: dict[str, int] = {}
        seen_names: dict[str, str] = {}

        for i, plan in enumerate(plans):
            if plan.name in seen_plans:
                issues.append(ValidationIssue(
                    f"plans[{i}].name",
                    f"'{plan.name}' collides with plans[{seen_plans[plan.name]}]",
                ))
                continue
            seen_plans[plan.name] = i

            for label, name in plan.names.global_names().items():
                owner = f"plans[{i}].names.{label}"
                if name in seen_names:
                    issues.append(ValidationIssue(
                        owner, f"'{name}' collides with {seen_names[name]}"
                    ))
                else:
                    seen_names[name] = owner

        if issues:
            raise ConfigValidationError(issues)
