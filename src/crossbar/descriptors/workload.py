"""Kubernetes workload bundles handed to the workload client.

A bundle is applied in three stages: ``prelude`` manifests (namespaces,
classes), then Helm ``releases``, then ``manifests`` that may depend on CRDs
the releases install.
"""

from dataclasses import dataclass, field
from string import Template
from typing import Any

from ..orchestration.steps import StepKind
from ..planning.resolved import ResolvedClusterPlan
from ..versions import (
    CERT_MANAGER_CHART,
    CERT_MANAGER_REPO,
    CERT_MANAGER_VERSION,
    INGRESS_NGINX_CHART,
    INGRESS_NGINX_REPO,
    INGRESS_NGINX_VERSION,
    LETSENCRYPT_PROD_SERVER,
)
from .outputs import CertificateIssuerOutput, IngressControllerOutput, StaticAddressOutput

INGRESS_CLASS = "nginx"
INGRESS_NAMESPACE = "ingress-nginx"
CERT_MANAGER_NAMESPACE = "cert-manager"
APP_NAMESPACE = "default"


@dataclass(frozen=True)
class HelmRelease:
    """A pinned Helm chart release."""
    name: str
    chart: str
    version: str
    repo: str
    namespace: str
    values: dict[str, Any] = field(default_factory=dict)
    create_namespace: bool = False


@dataclass(frozen=True)
class WorkloadBundle:
    """Objects applied together to one cluster.

    Attributes:
        name: Bundle name, unique within a plan
        component: Step that applies the bundle
        owner: Name of the plan the bundle belongs to
    """
    name: str
    component: str
    owner: str
    prelude: tuple[dict[str, Any], ...] = ()
    releases: tuple[HelmRelease, ...] = ()
    manifests: tuple[dict[str, Any], ...] = ()

    def objects(self) -> list[dict[str, Any]]:
        """All plain manifests in apply order."""
        return [*self.prelude, *self.manifests]


def render_host(template: str, ip: str) -> str:
    """Render a host template; ``${ip}`` and ``${LB_IP}`` both expand to the address.

    >>> render_host("${ip}.sslip.io", "34.1.2.3")
    '34.1.2.3.sslip.io'
    """
    return Template(template).safe_substitute(ip=ip, LB_IP=ip)


def _labels(plan: ResolvedClusterPlan, component: str) -> dict[str, str]:
    return {"app": plan.names.app, "component": component, "managed-by": "crossbar"}


def ingress_controller_bundle(
    plan: ResolvedClusterPlan, address: StaticAddressOutput
) -> WorkloadBundle:
    """IngressClass plus the ingress-nginx release bound to the static address."""
    ingress_class = {
        "apiVersion": "networking.k8s.io/v1",
        "kind": "IngressClass",
        "metadata": {"name": INGRESS_CLASS},
        "spec": {"controller": "k8s.io/ingress-nginx"},
    }
    release = HelmRelease(
        name=plan.names.ingress_controller,
        chart=INGRESS_NGINX_CHART,
        version=INGRESS_NGINX_VERSION,
        repo=INGRESS_NGINX_REPO,
        namespace=INGRESS_NAMESPACE,
        create_namespace=True,
        values={
            "fullnameOverride": plan.names.ingress_controller,
            "controller": {
                "admissionWebhooks": {"enabled": False},
                "publishService": {"enabled": True},
                "service": {
                    "type": "LoadBalancer",
                    "loadBalancerIP": address.address,
                    "annotations": {"cloud.google.com/load-balancer-type": "External"},
                },
                "metrics": {"enabled": True},
                "resources": {
                    "requests": {"cpu": "100m", "memory": "90Mi"},
                    "limits": {"cpu": "500m", "memory": "512Mi"},
                },
                # The IngressClass is created from the prelude
                "ingressClassResource": {"name": INGRESS_CLASS, "enabled": False, "default": False},
            },
        },
    )
    return WorkloadBundle(
        name=plan.names.ingress_controller,
        component=StepKind.INSTALL_INGRESS_CONTROLLER.value,
        owner=plan.name,
        prelude=(ingress_class,),
        releases=(release,),
    )


def certificate_issuer_bundle(plan: ResolvedClusterPlan) -> WorkloadBundle:
    """cert-manager with CRDs and a Let's Encrypt HTTP-01 ClusterIssuer."""
    namespace = {
        "apiVersion": "v1",
        "kind": "Namespace",
        "metadata": {"name": CERT_MANAGER_NAMESPACE},
    }
    release = HelmRelease(
        name=plan.names.cert_manager,
        chart=CERT_MANAGER_CHART,
        version=CERT_MANAGER_VERSION,
        repo=CERT_MANAGER_REPO,
        namespace=CERT_MANAGER_NAMESPACE,
        values={"installCRDs": True},
    )
    issuer = {
        "apiVersion": "cert-manager.io/v1",
        "kind": "ClusterIssuer",
        "metadata": {"name": plan.names.issuer},
        "spec": {
            "acme": {
                "server": LETSENCRYPT_PROD_SERVER,
                "email": plan.ingress.cert_manager_email,
                "privateKeySecretRef": {"name": f"{plan.names.issuer}-key"},
                "solvers": [{"http01": {"ingress": {"class": INGRESS_CLASS}}}],
            },
        },
    }
    return WorkloadBundle(
        name=plan.names.cert_manager,
        component=StepKind.INSTALL_CERTIFICATE_ISSUER.value,
        owner=plan.name,
        prelude=(namespace,),
        releases=(release,),
        manifests=(issuer,),
    )


def application_bundle(
    plan: ResolvedClusterPlan,
    address: StaticAddressOutput,
    controller: IngressControllerOutput,
    issuer: CertificateIssuerOutput,
) -> WorkloadBundle:
    """Deployment, Service, optional HPA and the TLS Ingress for the application."""
    app = plan.app
    names = plan.names
    port = app.service_port
    labels = _labels(plan, "application")
    selector = {"app": names.app}
    host = application_host(plan, address)

    probe = {"httpGet": {"path": app.probe_path, "port": port}}
    container = {
        "name": "app",
        "image": app.image,
        "ports": [{"containerPort": port, "name": "http"}],
        "env": [{"name": k, "value": v} for k, v in sorted(plan.workload_env.items())],
        "resources": {
            "requests": app.resources.requests.model_dump(),
            "limits": app.resources.limits.model_dump(),
        },
        "livenessProbe": {**probe, "initialDelaySeconds": 30, "periodSeconds": 30},
        "readinessProbe": {**probe, "initialDelaySeconds": 10, "periodSeconds": 10},
    }

    deployment = {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": names.app, "namespace": APP_NAMESPACE, "labels": labels},
        "spec": {
            "replicas": app.replicas,
            "selector": {"matchLabels": selector},
            "template": {
                "metadata": {"labels": labels},
                "spec": {"restartPolicy": "Always", "containers": [container]},
            },
        },
    }

    service = {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": names.service, "namespace": APP_NAMESPACE, "labels": labels},
        "spec": {
            "type": "ClusterIP",
            "selector": selector,
            "ports": [{"name": "http", "port": port, "targetPort": port, "protocol": "TCP"}],
        },
    }

    ingress = {
        "apiVersion": "networking.k8s.io/v1",
        "kind": "Ingress",
        "metadata": {
            "name": names.ingress,
            "namespace": APP_NAMESPACE,
            "labels": labels,
            "annotations": {
                "cert-manager.io/cluster-issuer": issuer.issuer_name,
                # ACME HTTP-01 challenges arrive over plain HTTP
                "nginx.ingress.kubernetes.io/ssl-redirect": "false",
            },
        },
        "spec": {
            "ingressClassName": controller.ingress_class,
            "tls": [{"hosts": [host], "secretName": names.tls_secret}],
            "rules": [{
                "host": host,
                "http": {"paths": [{
                    "path": "/",
                    "pathType": "Prefix",
                    "backend": {"service": {"name": names.service, "port": {"number": port}}},
                }]},
            }],
        },
    }

    manifests = [deployment, service]
    if app.hpa.enabled:
        manifests.append(hpa_manifest(plan))
    manifests.append(ingress)
    return WorkloadBundle(
        name=names.app,
        component=StepKind.DEPLOY_APPLICATION.value,
        owner=plan.name,
        manifests=tuple(manifests),
    )


def hpa_manifest(plan: ResolvedClusterPlan) -> dict[str, Any]:
    """autoscaling/v2 HPA on CPU and memory utilization."""
    hpa = plan.app.hpa
    names = plan.names

    def metric(resource: str, target: int) -> dict[str, Any]:
        return {
            "type": "Resource",
            "resource": {
                "name": resource,
                "target": {"type": "Utilization", "averageUtilization": target},
            },
        }

    return {
        "apiVersion": "autoscaling/v2",
        "kind": "HorizontalPodAutoscaler",
        "metadata": {"name": names.hpa, "namespace": APP_NAMESPACE, "labels": _labels(plan, "autoscaler")},
        "spec": {
            "scaleTargetRef": {"apiVersion": "apps/v1", "kind": "Deployment", "name": names.app},
            "minReplicas": hpa.min_replicas,
            "maxReplicas": hpa.max_replicas,
            "metrics": [
                metric("cpu", hpa.target_cpu_utilization),
                metric("memory", hpa.target_memory_utilization),
            ],
        },
    }


def application_host(plan: ResolvedClusterPlan, address: StaticAddressOutput) -> str:
    return render_host(plan.ingress.host_template, address.address)
