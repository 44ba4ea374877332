"""Tests for default resolution."""

import pytest
from pydantic import ValidationError

from crossbar.core.env import RunContext
from crossbar.errors import ConfigError, ConfigValidationError
from crossbar.planning.defaults import (
    DEFAULT_HPA,
    DEFAULT_NETWORKING,
    DEFAULT_NODE_POOL,
    DefaultsResolver,
    merge,
)
from crossbar.components.specs import NodePoolSpec


class TestMerge:
    """Shallow field-level merging."""

    def test_none_override_keeps_default(self):
        assert merge(DEFAULT_NODE_POOL, None) is DEFAULT_NODE_POOL

    def test_present_fields_win(self):
        merged = merge(DEFAULT_NODE_POOL, NodePoolSpec(max_nodes=7, spot=True))
        assert merged.max_nodes == 7
        assert merged.spot is True
        assert merged.min_nodes == DEFAULT_NODE_POOL.min_nodes
        assert merged.machine_type == DEFAULT_NODE_POOL.machine_type


class TestDefaultsResolver:
    """Resolution of documents into plans."""

    def test_region_mode_names_and_order(self, plans):
        assert [p.name for p in plans] == ["crossbar-us-east1", "crossbar-europe-west1"]
        assert [p.region for p in plans] == ["us-east1", "europe-west1"]

    def test_defaults_applied(self, plan):
        assert plan.project_id == "test-project"
        assert plan.node_pool.machine_type == "e2-standard-4"
        assert plan.node_pool.disk_size_gb == 100
        assert plan.egress.num_nat_addresses == 1
        assert plan.egress.min_ports_per_vm == 2048
        assert plan.ingress.host_template == "${ip}.sslip.io"
        assert plan.ingress.network_tier == "PREMIUM"
        assert plan.app.hpa == DEFAULT_HPA
        assert plan.app.service_port == 8080
        assert plan.app.probe_path == "/"
        assert plan.app.replicas == DEFAULT_HPA.min_replicas
        assert plan.cluster.deletion_protection is False
        assert plan.experimental.gateway_api is False

    def test_vpc_template_rendered(self, plan):
        assert DEFAULT_NETWORKING.vpc_name == "{name}-vpc"
        assert plan.networking.vpc_name == "crossbar-us-east1-vpc"
        assert plan.names.vpc == "crossbar-us-east1-vpc"
        assert plan.names.subnet == "crossbar-us-east1-vpc-subnet"

    def test_workload_env_copied(self, plan):
        assert plan.workload_env == {"CROSSBAR_FEATURE": "on"}

    def test_partial_override(self, resolver):
        plans = resolver.resolve({
            "cluster": {
                "name": "alpha",
                "region": "us-east1",
                "nodepool": {"maxNodes": 6},
                "app": {
                    "image": "img:1",
                    "resources": {"requests": {"cpu": "500m"}},
                    "hpa": {"enabled": False},
                },
            },
        })
        plan = plans[0]
        assert plan.node_pool.min_nodes == 1
        assert plan.node_pool.max_nodes == 6
        assert plan.app.resources.requests.cpu == "500m"
        assert plan.app.resources.requests.memory == "2048Mi"
        assert plan.app.resources.limits.cpu == "2000m"
        assert plan.app.hpa.enabled is False
        assert plan.app.hpa.max_replicas == DEFAULT_HPA.max_replicas

    def test_explicit_clusters(self, resolver, clusters_document):
        plans = resolver.resolve(clusters_document)
        assert [p.name for p in plans] == ["alpha", "beta"]
        assert plans[1].node_pool.min_nodes == 2
        assert plans[1].names.cluster == "beta-cluster"

    def test_names_and_regions_are_trimmed(self, resolver):
        plans = resolver.resolve({
            "clusters": [{"name": " alpha ", "region": " us-east1 ", "app": {"image": "i"}}],
        })
        assert plans[0].name == "alpha"
        assert plans[0].region == "us-east1"

    def test_custom_prefix(self, resolver, region_document):
        region_document["prefix"] = "team"
        plans = resolver.resolve(region_document)
        assert plans[0].name == "team-us-east1"

    def test_standard_tier_without_global_ip(self, resolver, region_document):
        region_document["template"]["ingress"] = {"allocateGlobalStaticIp": False}
        plans = resolver.resolve(region_document)
        assert plans[0].ingress.network_tier == "STANDARD"

    def test_resolution_is_deterministic(self, resolver, region_document):
        assert resolver.resolve(region_document) == resolver.resolve(region_document)

    def test_plans_are_immutable(self, plan):
        with pytest.raises(ValidationError):
            plan.name = "other"

    def test_invalid_document_raises(self, resolver):
        with pytest.raises(ConfigValidationError):
            resolver.resolve({"regions": ["us-east1"]})

    def test_missing_project(self, region_document):
        resolver = DefaultsResolver(RunContext(project_id=None))
        with pytest.raises(ConfigError, match="GOOGLE_CLOUD_PROJECT"):
            resolver.resolve(region_document)


class TestIssuerEmail:
    """Certificate issuer email precedence."""

    def test_default_email(self, plan):
        assert plan.ingress.cert_manager_email == "admin@example.com"

    def test_context_email(self, region_document):
        context = RunContext(project_id="p", issuer_email="ops@example.org")
        plans = DefaultsResolver(context).resolve(region_document)
        assert plans[0].ingress.cert_manager_email == "ops@example.org"

    def test_document_email_wins(self, region_document):
        region_document["template"]["ingress"] = {"certManagerEmail": "team@example.net"}
        context = RunContext(project_id="p", issuer_email="ops@example.org")
        plans = DefaultsResolver(context).resolve(region_document)
        assert plans[0].ingress.cert_manager_email == "team@example.net"
