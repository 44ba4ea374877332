"""Test configuration and shared fixtures for crossbar tests."""

import copy

import pytest

from crossbar.core.env import RunContext
from crossbar.planning.defaults import DefaultsResolver

PROJECT = "test-project"

REGION_DOCUMENT = {
    "regions": ["us-east1", "europe-west1"],
    "template": {
        "nodepool": {"minNodes": 1, "maxNodes": 3},
        "app": {"image": "ghcr.io/example/app:1.0"},
    },
}

CLUSTERS_DOCUMENT = {
    "clusters": [
        {
            "name": "alpha",
            "region": "us-central1",
            "app": {"image": "ghcr.io/example/app:1.0"},
        },
        {
            "name": "beta",
            "region": "asia-east1",
            "nodepool": {"minNodes": 2, "maxNodes": 5},
            "app": {"image": "ghcr.io/example/app:2.0"},
        },
    ],
}


@pytest.fixture
def context():
    """Run context with a project and one workload variable."""
    return RunContext(
        project_id=PROJECT,
        environment="test",
        workload_env={"CROSSBAR_FEATURE": "on"},
    )


@pytest.fixture
def region_document():
    return copy.deepcopy(REGION_DOCUMENT)


@pytest.fixture
def clusters_document():
    return copy.deepcopy(CLUSTERS_DOCUMENT)


@pytest.fixture
def resolver(context):
    return DefaultsResolver(context)


@pytest.fixture
def plans(resolver, region_document):
    """Resolved plans for the two-region document."""
    return resolver.resolve(region_document)


@pytest.fixture
def plan(plans):
    """The us-east1 plan."""
    return plans[0]
