"""Validation of raw configuration documents.

Every violation is collected so a user sees all problems in one pass. Paths
use the document's camelCase keys, e.g. ``clusters[0].nodepool.minNodes``.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from ..components.config_base import issues_from_validation_error
from ..components.specs import ClusterTemplate, InputMode, RawConfig
from ..core.k8s import (
    MAX_GKE_NAME_LENGTH,
    MAX_LABEL_LENGTH,
    MAX_RELEASE_NAME_LENGTH,
    is_resource_name,
)
from ..core.naming import ResourceNaming
from ..errors import ConfigValidationError, ValidationIssue
from ..orchestration.settings import FailurePolicy
from .defaults import DEFAULT_EGRESS, DEFAULT_HPA, DEFAULT_NODE_POOL, DEFAULT_PREFIX

# Every derived name must fit its own limit; the node pool name is the tightest
MAX_NAME_LENGTH = min(
    MAX_GKE_NAME_LENGTH - len("-nodepool"),
    MAX_GKE_NAME_LENGTH - len("-cluster"),
    MAX_RELEASE_NAME_LENGTH - len("-cert-manager"),
    MAX_LABEL_LENGTH - len("-app-service"),
)

# The subnet is named ``<vpc>-subnet``
MAX_VPC_NAME_LENGTH = MAX_LABEL_LENGTH - len("-subnet")

NAME_RULE = "lowercase letters, digits and hyphens, starting with a letter"


class ConfigValidator:
    """Checks a raw configuration tree.

    Structural problems (wrong types, unknown keys) are reported first;
    semantic checks run only on a document that parsed.
    """

    def validate(self, raw: Mapping[str, Any] | RawConfig) -> list[ValidationIssue]:
        """
        Validate a document.

        Args:
            raw: Parsed document or RawConfig

        Returns:
            Every violation found; an empty list means the document is valid
        """
        config, issues = self._parse(raw)
        if config is None:
            return issues

        modes = config.input_modes()
        self._check_shape(config, modes, issues)
        if len(modes) != 1:
            return issues

        entries = self._entries(config, modes[0])
        self._check_identity(config, modes[0], issues)
        self._check_node_pools(entries, issues)
        self._check_egress(entries, issues)
        self._check_images(entries, issues)
        self._check_hpa(entries, issues)
        self._check_templates(entries, self._identities(config, modes[0]), issues)
        self._check_orchestration(config, entries, issues)
        return issues

    def ensure_valid(self, raw: Mapping[str, Any] | RawConfig) -> RawConfig:
        """
        Validate and return the parsed document.

        Raises:
            ConfigValidationError: If there is any violation
        """
        issues = self.validate(raw)
        if issues:
            raise ConfigValidationError(issues)
        return raw if isinstance(raw, RawConfig) else RawConfig.model_validate(raw)

    def _parse(self, raw) -> tuple[RawConfig | None, list[ValidationIssue]]:
        if isinstance(raw, RawConfig):
            return raw, []
        if not isinstance(raw, Mapping):
            return None, [ValidationIssue("<root>", "configuration must be a mapping")]
        try:
            return RawConfig.model_validate(dict(raw)), []
        except ValidationError as e:
            return None, issues_from_validation_error(e)

    @staticmethod
    def _entries(config: RawConfig, mode: InputMode) -> list[tuple[str, ClusterTemplate]]:
        """(path, spec) pairs for every cluster-shaped entry."""
        if mode is InputMode.REGIONS:
            return [("template", config.template or ClusterTemplate())]
        if mode is InputMode.SINGLE:
            return [("cluster", config.cluster)]
        return [(f"clusters[{i}]", entry) for i, entry in enumerate(config.clusters)]

    def _check_shape(self, config: RawConfig, modes: list[InputMode], issues: list) -> None:
        if not modes:
            issues.append(ValidationIssue("clusters", "at least one cluster or region is required"))
            return
        if len(modes) > 1:
            used = ", ".join(m.value for m in modes)
            issues.append(ValidationIssue("<root>", f"use only one of clusters, cluster, regions (found {used})"))
            return
        if config.clusters is not None and not config.clusters:
            issues.append(ValidationIssue("clusters", "must contain at least one cluster"))
        if config.regions is not None and not config.regions:
            issues.append(ValidationIssue("regions", "must contain at least one region"))
        if modes[0] is not InputMode.REGIONS:
            if config.template is not None:
                issues.append(ValidationIssue("template", "only allowed together with regions"))
            if config.prefix is not None:
                issues.append(ValidationIssue("prefix", "only allowed together with regions"))

    def _check_identity(self, config: RawConfig, mode: InputMode, issues: list) -> None:
        """Names and regions: present, well formed, unique."""
        if mode is InputMode.REGIONS:
            prefix = config.prefix if config.prefix is not None else DEFAULT_PREFIX
            if not is_resource_name(prefix):
                issues.append(ValidationIssue("prefix", f"must be {NAME_RULE}"))
            first_seen: dict[str, int] = {}
            for i, region in enumerate(config.regions):
                region = region.strip()
                if not region:
                    issues.append(ValidationIssue(f"regions[{i}]", "must not be empty"))
                    continue
                if region in first_seen:
                    issues.append(ValidationIssue(
                        f"regions[{i}]",
                        f"duplicate region '{region}' (first listed at regions[{first_seen[region]}])",
                    ))
                    continue
                first_seen[region] = i
                name = ResourceNaming.region_cluster_name(region, prefix=prefix)
                self._check_name(f"regions[{i}]", name, issues)
            return

        first_seen = {}
        for path, entry in self._entries(config, mode):
            name = (entry.name or "").strip()
            if not name:
                issues.append(ValidationIssue(f"{path}.name", "must not be empty"))
            else:
                self._check_name(f"{path}.name", name, issues)
            if not (entry.region or "").strip():
                issues.append(ValidationIssue(f"{path}.region", "must not be empty"))

        for path, entry in self._entries(config, mode):
            name = (entry.name or "").strip()
            if not name:
                continue
            if name in first_seen:
                issues.append(ValidationIssue(
                    f"{path}.name",
                    f"duplicate cluster name '{name}' (first used by {first_seen[name]})",
                ))
            else:
                first_seen[name] = path

    @staticmethod
    def _check_name(path: str, name: str, issues: list) -> None:
        if not is_resource_name(name):
            issues.append(ValidationIssue(path, f"cluster name '{name}' must be {NAME_RULE}"))
        elif len(name) > MAX_NAME_LENGTH:
            issues.append(ValidationIssue(
                path, f"cluster name '{name}' must be at most {MAX_NAME_LENGTH} characters"
            ))

    def _check_node_pools(self, entries, issues: list) -> None:
        for path, entry in entries:
            min_nodes, max_nodes = _node_bounds(entry)
            if min_nodes < 1:
                issues.append(ValidationIssue(f"{path}.nodepool.minNodes", "must be at least 1"))
            if max_nodes < min_nodes:
                issues.append(ValidationIssue(
                    f"{path}.nodepool.maxNodes", f"must be >= minNodes ({min_nodes})"
                ))
            pool = entry.nodepool
            if pool is not None and pool.disk_size_gb is not None and pool.disk_size_gb < 1:
                issues.append(ValidationIssue(f"{path}.nodepool.diskSizeGb", "must be at least 1"))

    def _check_egress(self, entries, issues: list) -> None:
        for path, entry in entries:
            egress = entry.egress
            count = _value(egress, "num_nat_addresses", DEFAULT_EGRESS.num_nat_addresses)
            if count < 1:
                issues.append(ValidationIssue(f"{path}.egress.numNatAddresses", "must be at least 1"))
            ports = _value(egress, "min_ports_per_vm", DEFAULT_EGRESS.min_ports_per_vm)
            if ports < 1:
                issues.append(ValidationIssue(f"{path}.egress.minPortsPerVm", "must be at least 1"))

    def _check_images(self, entries, issues: list) -> None:
        for path, entry in entries:
            if entry.app is None or not (entry.app.image or "").strip():
                issues.append(ValidationIssue(f"{path}.app.image", "is required"))

    def _check_hpa(self, entries, issues: list) -> None:
        for path, entry in entries:
            if entry.app is None or entry.app.hpa is None:
                continue
            hpa = entry.app.hpa
            min_replicas = _value(hpa, "min_replicas", DEFAULT_HPA.min_replicas)
            max_replicas = _value(hpa, "max_replicas", DEFAULT_HPA.max_replicas)
            if min_replicas < 1:
                issues.append(ValidationIssue(f"{path}.app.hpa.minReplicas", "must be at least 1"))
            if max_replicas < min_replicas:
                issues.append(ValidationIssue(
                    f"{path}.app.hpa.maxReplicas", f"must be >= minReplicas ({min_replicas})"
                ))
            for field, key in (
                ("target_cpu_utilization", "targetCpuUtilization"),
                ("target_memory_utilization", "targetMemoryUtilization"),
            ):
                target = getattr(hpa, field)
                if target is not None and not 1 <= target <= 100:
                    issues.append(ValidationIssue(f"{path}.app.hpa.{key}", "must be between 1 and 100"))

    @staticmethod
    def _identities(config: RawConfig, mode: InputMode) -> dict[str, list[tuple[str, str]]]:
        """(name, region) pairs each entry's templates are rendered with."""
        if mode is InputMode.REGIONS:
            prefix = config.prefix if config.prefix is not None else DEFAULT_PREFIX
            regions = [r.strip() for r in config.regions if r.strip()]
            return {
                "template": [
                    (ResourceNaming.region_cluster_name(r, prefix=prefix), r) for r in regions
                ]
            }
        return {
            path: [((entry.name or "").strip(), (entry.region or "").strip())]
            for path, entry in ConfigValidator._entries(config, mode)
        }

    def _check_templates(self, entries, identities: dict, issues: list) -> None:
        """Name and host templates must only use known placeholders."""
        for path, entry in entries:
            app = entry.app
            if app is not None and app.service is not None and app.service.port is not None:
                if not 1 <= app.service.port <= 65535:
                    issues.append(ValidationIssue(f"{path}.app.service.port", "must be between 1 and 65535"))
            if entry.networking is not None and entry.networking.vpc_name is not None:
                self._check_vpc_name(
                    f"{path}.networking.vpcName",
                    entry.networking.vpc_name,
                    identities.get(path, []),
                    issues,
                )
            if entry.ingress is not None and entry.ingress.host_template is not None:
                if not entry.ingress.host_template.strip():
                    issues.append(ValidationIssue(f"{path}.ingress.hostTemplate", "must not be empty"))

    @staticmethod
    def _check_vpc_name(path: str, template: str, identities, issues: list) -> None:
        """The template must parse, and every rendering must be a valid network name."""
        if not template.strip():
            issues.append(ValidationIssue(path, "must not be empty"))
            return
        try:
            ResourceNaming.vpc_name(template, name="a", region="b")
        except ValueError as e:
            issues.append(ValidationIssue(
                path, f"invalid template ({e}); only {{name}} and {{region}} are available"
            ))
            return
        for name, region in identities:
            if not name:
                continue
            vpc = ResourceNaming.vpc_name(template, name=name, region=region)
            if not is_resource_name(vpc, max_length=MAX_VPC_NAME_LENGTH):
                issues.append(ValidationIssue(
                    path,
                    f"renders to '{vpc}', which must be {NAME_RULE} "
                    f"and at most {MAX_VPC_NAME_LENGTH} characters",
                ))
                return

    def _check_orchestration(self, config: RawConfig, entries, issues: list) -> None:
        spec = config.orchestration
        if spec is None:
            return
        if spec.max_parallel_regions is not None and spec.max_parallel_regions < 1:
            issues.append(ValidationIssue("orchestration.maxParallelRegions", "must be at least 1"))
        if spec.failure_policy is not None:
            allowed = [p.value for p in FailurePolicy]
            if spec.failure_policy not in allowed:
                issues.append(ValidationIssue(
                    "orchestration.failurePolicy", f"must be one of {', '.join(allowed)}"
                ))
        for kind, seconds in (spec.step_timeouts or {}).items():
            if seconds <= 0:
                issues.append(ValidationIssue(
                    f"orchestration.stepTimeouts.{kind.value}", "must be greater than 0"
                ))
        if spec.min_ready_nodes is not None:
            if spec.min_ready_nodes < 1:
                issues.append(ValidationIssue("orchestration.minReadyNodes", "must be at least 1"))
            else:
                for path, entry in entries:
                    _, max_nodes = _node_bounds(entry)
                    if spec.min_ready_nodes > max_nodes:
                        issues.append(ValidationIssue(
                            "orchestration.minReadyNodes",
                            f"must not exceed {path}.nodepool.maxNodes ({max_nodes})",
                        ))


def _value(spec, field: str, default: int) -> int:
    """Effective value of an optional field after defaulting."""
    if spec is None:
        return default
    value = getattr(spec, field)
    return default if value is None else value


def _node_bounds(entry: ClusterTemplate) -> tuple[int, int]:
    pool = entry.nodepool
    return (
        _value(pool, "min_nodes", DEFAULT_NODE_POOL.min_nodes),
        _value(pool, "max_nodes", DEFAULT_NODE_POOL.max_nodes),
    )


_default_validator = ConfigValidator()


def validate(raw: Mapping[str, Any] | RawConfig) -> list[ValidationIssue]:
    """Validate a document with the default validator."""
    return _default_validator.validate(raw)


def ensure_valid(raw: Mapping[str, Any] | RawConfig) -> RawConfig:
    """Validate a document, raising ConfigValidationError on any violation."""
    return _default_validator.ensure_valid(raw)
