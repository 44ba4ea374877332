"""Tests for the collaborators.

Pulumi-backed collaborators are exercised with ``automation.up`` patched out,
so no stack is ever touched. Node readiness reads a fake CoreV1Api.
"""

import asyncio
from types import SimpleNamespace

import pytest
from kubernetes.client.rest import ApiException

from crossbar.core import automation
from crossbar.descriptors.infra import network_descriptors, static_address_descriptor
from crossbar.descriptors.outputs import ClusterOutput
from crossbar.descriptors.workload import certificate_issuer_bundle
from crossbar.orchestration.credentials import CredentialBundleBuilder
from crossbar.orchestration.steps import StepKind
from crossbar.providers.gcp import NODE_POOL_LABEL, GcpResourceProvider, count_ready_nodes
from crossbar.providers.kubernetes import PulumiWorkloadClient
from crossbar.providers.memory import (
    InMemoryResourceProvider,
    InMemoryWorkloadClient,
    SimulatedFailure,
    fake_ip,
)


@pytest.fixture
def pulumi_calls(monkeypatch):
    """Replace automation.up; returns the recorded calls."""
    calls = []

    def fake_up(step, plan_name, env, program, config=None, backend_url=None, on_output=None):
        calls.append({"step": step, "plan": plan_name, "env": env, "config": config})
        return {
            "network_name": {"value": "vpc"},
            "network_id": {"value": "projects/p/global/networks/vpc"},
            "subnet_name": {"value": "subnet"},
            "subnet_id": {"value": "projects/p/regions/r/subnetworks/subnet"},
            "address": {"value": "34.1.1.1"},
            "releases": {"value": ["crossbar-us-east1-cert-manager"]},
            "objects": {"value": ["cert-manager", "letsencrypt-prod"]},
        }

    monkeypatch.setattr(automation, "up", fake_up)
    return calls


def cluster_output(plan):
    return ClusterOutput(
        cluster_name=plan.names.cluster,
        location=plan.region,
        endpoint="35.1.2.3",
        ca_certificate="Q0E=",
        node_pool_name=plan.names.node_pool,
    )


def ready_node(ready="True", conditions=True):
    if not conditions:
        return SimpleNamespace(status=SimpleNamespace(conditions=None))
    conditions = [
        SimpleNamespace(type="MemoryPressure", status="False"),
        SimpleNamespace(type="Ready", status=ready),
    ]
    return SimpleNamespace(status=SimpleNamespace(conditions=conditions))


class FakeCoreApi:
    """Stands in for CoreV1Api.list_node; fails the first ``errors`` calls."""

    def __init__(self, nodes, errors=0):
        self.nodes = nodes
        self.errors = errors
        self.selectors = []

    def list_node(self, label_selector=None):
        self.selectors.append(label_selector)
        if self.errors:
            self.errors -= 1
            raise ApiException(status=503, reason="Service Unavailable")
        return SimpleNamespace(items=self.nodes)


async def first_count(provider, plan):
    feed = provider.watch_node_pool(plan, cluster_output(plan))
    try:
        return await feed.__anext__()
    finally:
        await feed.aclose()


class TestGcpResourceProvider:
    """One stack per step and plan."""

    def test_create_network(self, plan, pulumi_calls):
        provider = GcpResourceProvider(env="test")
        output = asyncio.run(provider.create_network(plan, network_descriptors(plan)))

        assert output.network_id == "projects/p/global/networks/vpc"
        assert output.region == plan.region
        assert pulumi_calls == [{
            "step": "create-network",
            "plan": plan.name,
            "env": "test",
            "config": {"gcp:project": "test-project", "gcp:region": "us-east1"},
        }]

    def test_static_address_tier_defaults_to_descriptor(self, plan, pulumi_calls):
        provider = GcpResourceProvider(env="test")
        output = asyncio.run(provider.create_static_address(plan, static_address_descriptor(plan)))

        assert output.address == "34.1.1.1"
        assert output.network_tier == "PREMIUM"
        assert pulumi_calls[0]["step"] == "create-static-address"

    def test_watch_node_pool_counts_ready_nodes(self, plan, monkeypatch):
        api = FakeCoreApi([ready_node(), ready_node(ready="False"), ready_node()])
        provider = GcpResourceProvider(env="test", poll_interval=0)
        monkeypatch.setattr(provider, "_core_api", lambda cluster: api)

        assert asyncio.run(first_count(provider, plan)) == 2
        assert api.selectors == [f"{NODE_POOL_LABEL}={plan.names.node_pool}"]

    def test_existing_pool_without_ready_nodes_reports_zero(self, plan, monkeypatch):
        api = FakeCoreApi([ready_node(ready="Unknown"), ready_node(conditions=False)])
        provider = GcpResourceProvider(env="test", poll_interval=0)
        monkeypatch.setattr(provider, "_core_api", lambda cluster: api)

        assert asyncio.run(first_count(provider, plan)) == 0

    def test_api_errors_report_zero_and_keep_polling(self, plan, monkeypatch):
        api = FakeCoreApi([ready_node()], errors=1)
        provider = GcpResourceProvider(env="test", poll_interval=0)
        monkeypatch.setattr(provider, "_core_api", lambda cluster: api)

        async def first_two():
            feed = provider.watch_node_pool(plan, cluster_output(plan))
            try:
                return [await feed.__anext__(), await feed.__anext__()]
            finally:
                await feed.aclose()

        assert asyncio.run(first_two()) == [0, 1]

    def test_count_ignores_nodes_without_status(self):
        api = FakeCoreApi([SimpleNamespace(status=None), ready_node()])
        assert count_ready_nodes(api, "pool") == 1


class TestPulumiWorkloadClient:
    """Bundles are applied as their own stacks."""

    def test_apply(self, plan, pulumi_calls):
        credentials = CredentialBundleBuilder().build("35.1.2.3", "Q0E=", plan.names.cluster)
        client = PulumiWorkloadClient(env="test")

        result = asyncio.run(client.apply(credentials, certificate_issuer_bundle(plan)))

        assert result["releases"] == ["crossbar-us-east1-cert-manager"]
        assert pulumi_calls[0]["step"] == "install-certificate-issuer"
        assert pulumi_calls[0]["plan"] == plan.name


class TestInMemoryCollaborators:
    """Deterministic in-memory collaborators."""

    def test_fake_ip_is_stable(self):
        assert fake_ip("a") == fake_ip("a")
        assert fake_ip("a") != fake_ip("b")
        assert fake_ip("a", first_octet=35).startswith("35.")

    def test_records_calls_and_fails_on_request(self, plan):
        provider = InMemoryResourceProvider(fail_on={StepKind.CREATE_NETWORK})
        with pytest.raises(SimulatedFailure):
            asyncio.run(provider.create_network(plan, network_descriptors(plan)))
        assert provider.calls_for(plan.name) == [StepKind.CREATE_NETWORK]

    def test_readiness_feed(self, plan):
        async def collect(provider):
            return [count async for count in provider.watch_node_pool(plan, cluster_output(plan))]

        assert asyncio.run(collect(InMemoryResourceProvider())) == [0, plan.node_pool.min_nodes]
        assert asyncio.run(collect(InMemoryResourceProvider(never_ready=True))) == [0]

    def test_workload_client_records_bundles(self, plan):
        client = InMemoryWorkloadClient()
        credentials = CredentialBundleBuilder().build("35.1.2.3", "Q0E=")
        result = asyncio.run(client.apply(credentials, certificate_issuer_bundle(plan)))

        assert result["objects"] == ["cert-manager", "letsencrypt-prod"]
        assert client.applied[0][0] == "https://35.1.2.3"
        assert [b.name for b in client.bundles_for(plan.name)] == [plan.names.cert_manager]
