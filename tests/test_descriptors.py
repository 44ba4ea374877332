"""Tests for collaborator descriptors and workload bundles."""

from crossbar.descriptors.infra import (
    cluster_descriptor,
    egress_descriptor,
    network_descriptors,
    static_address_descriptor,
)
from crossbar.descriptors.outputs import (
    CertificateIssuerOutput,
    IngressControllerOutput,
    NetworkOutput,
    StaticAddressOutput,
)
from crossbar.descriptors.workload import (
    application_bundle,
    certificate_issuer_bundle,
    ingress_controller_bundle,
    render_host,
)
from crossbar.versions import CERT_MANAGER_VERSION, INGRESS_NGINX_VERSION

ADDRESS = StaticAddressOutput(name="lb", address="34.10.20.30", network_tier="PREMIUM")


def network_for(plan):
    return NetworkOutput(
        network_name=plan.names.vpc,
        network_id=f"projects/p/global/networks/{plan.names.vpc}",
        subnet_name=plan.names.subnet,
        subnet_id=f"projects/p/regions/{plan.region}/subnetworks/{plan.names.subnet}",
        region=plan.region,
    )


def app_bundle(plan):
    controller = IngressControllerOutput(plan.names.ingress_controller, "nginx", ADDRESS.address)
    issuer = CertificateIssuerOutput(plan.names.cert_manager, "cert-manager", plan.names.issuer)
    return application_bundle(plan, ADDRESS, controller, issuer)


def by_kind(bundle):
    return {obj["kind"]: obj for obj in bundle.objects()}


class TestInfraDescriptors:
    """Cloud resource descriptors."""

    def test_network(self, plan):
        d = network_descriptors(plan)
        assert d.vpc.name == plan.names.vpc
        assert d.vpc.auto_create_subnetworks is False
        assert d.subnet.region == "us-east1"
        assert d.subnet.ip_cidr_range == plan.networking.subnet_cidr
        assert [(r.range_name, r.ip_cidr_range) for r in d.subnet.secondary_ranges] == [
            ("pods", plan.networking.pods_cidr),
            ("services", plan.networking.services_cidr),
        ]

    def test_egress_uses_live_network_id(self, plan):
        network = network_for(plan)
        d = egress_descriptor(plan, network)
        assert d.network == network.network_id
        assert d.address_names == plan.names.nat_addresses
        assert d.nat_ip_allocate_option == "MANUAL_ONLY"
        assert d.min_ports_per_vm == 2048

    def test_cluster(self, plan):
        d = cluster_descriptor(plan, network_for(plan))
        assert d.name == plan.names.cluster
        assert d.location == plan.region
        assert d.subnetwork.endswith(plan.names.subnet)
        assert d.private_nodes is True
        assert d.node_pool.name == plan.names.node_pool
        assert (d.node_pool.min_nodes, d.node_pool.max_nodes) == (1, 3)
        assert d.node_pool.tags == (plan.names.node_tag,)
        assert d.labels == {"managed-by": "crossbar", "crossbar-cluster": plan.name}

    def test_static_address(self, plan):
        d = static_address_descriptor(plan)
        assert d.name == plan.names.static_address
        assert d.region == plan.region
        assert d.network_tier == "PREMIUM"


class TestWorkloadBundles:
    """Kubernetes workload bundles."""

    def test_render_host(self):
        assert render_host("${ip}.sslip.io", "1.2.3.4") == "1.2.3.4.sslip.io"
        assert render_host("app.${LB_IP}.nip.io", "1.2.3.4") == "app.1.2.3.4.nip.io"
        assert render_host("static.example.com", "1.2.3.4") == "static.example.com"

    def test_ingress_controller(self, plan):
        bundle = ingress_controller_bundle(plan, ADDRESS)
        [release] = bundle.releases

        assert bundle.component == "install-ingress-controller"
        assert bundle.owner == plan.name
        assert release.version == INGRESS_NGINX_VERSION
        assert release.values["controller"]["service"]["loadBalancerIP"] == ADDRESS.address
        assert by_kind(bundle)["IngressClass"]["metadata"]["name"] == "nginx"

    def test_certificate_issuer(self, plan):
        bundle = certificate_issuer_bundle(plan)
        [release] = bundle.releases

        assert release.version == CERT_MANAGER_VERSION
        assert release.values == {"installCRDs": True}
        issuer = by_kind(bundle)["ClusterIssuer"]
        assert issuer["metadata"]["name"] == "letsencrypt-prod"
        assert issuer["spec"]["acme"]["email"] == plan.ingress.cert_manager_email
        # Namespace before the release, issuer after it
        assert [o["kind"] for o in bundle.prelude] == ["Namespace"]
        assert [o["kind"] for o in bundle.manifests] == ["ClusterIssuer"]

    def test_application_manifests(self, plan):
        bundle = app_bundle(plan)
        assert [o["kind"] for o in bundle.manifests] == [
            "Deployment",
            "Service",
            "HorizontalPodAutoscaler",
            "Ingress",
        ]

        objects = by_kind(bundle)
        container = objects["Deployment"]["spec"]["template"]["spec"]["containers"][0]
        assert container["image"] == plan.app.image
        assert container["env"] == [{"name": "CROSSBAR_FEATURE", "value": "on"}]
        assert container["resources"]["limits"] == {"cpu": "2000m", "memory": "4096Mi"}
        assert objects["Service"]["spec"]["ports"][0]["port"] == 8080

        hpa = objects["HorizontalPodAutoscaler"]["spec"]
        assert hpa["scaleTargetRef"]["name"] == plan.names.app
        assert (hpa["minReplicas"], hpa["maxReplicas"]) == (1, 10)

    def test_application_ingress_tls(self, plan):
        ingress = by_kind(app_bundle(plan))["Ingress"]
        host = "34.10.20.30.sslip.io"

        assert ingress["metadata"]["annotations"]["cert-manager.io/cluster-issuer"] == "letsencrypt-prod"
        assert ingress["spec"]["ingressClassName"] == "nginx"
        assert ingress["spec"]["tls"] == [{"hosts": [host], "secretName": plan.names.tls_secret}]
        assert ingress["spec"]["rules"][0]["host"] == host

    def test_hpa_disabled(self, resolver, region_document):
        region_document["template"]["app"]["hpa"] = {"enabled": False, "minReplicas": 2}
        plan = resolver.resolve(region_document)[0]

        bundle = app_bundle(plan)
        assert "HorizontalPodAutoscaler" not in by_kind(bundle)
        assert by_kind(bundle)["Deployment"]["spec"]["replicas"] == 2
