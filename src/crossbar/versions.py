"""Centralized version management for the charts and plugins crossbar installs.

Every chart is pinned; nothing here may point at 'latest'.
"""

# Helm charts
INGRESS_NGINX_CHART = "ingress-nginx"
INGRESS_NGINX_VERSION = "4.10.1"
INGRESS_NGINX_REPO = "https://kubernetes.github.io/ingress-nginx"

CERT_MANAGER_CHART = "cert-manager"
CERT_MANAGER_VERSION = "v1.14.4"
CERT_MANAGER_REPO = "https://charts.jetstack.io"

# ACME endpoint used by the default ClusterIssuer
LETSENCRYPT_PROD_SERVER = "https://acme-v02.api.letsencrypt.org/directory"

# Exec credential plugin used in generated kubeconfigs
GKE_AUTH_PLUGIN = "gke-gcloud-auth-plugin"
EXEC_CREDENTIAL_API_VERSION = "client.authentication.k8s.io/v1beta1"
GKE_AUTH_PLUGIN_INSTALL_HINT = (
    "Install gke-gcloud-auth-plugin for use with kubectl by following "
    "https://cloud.google.com/blog/products/containers-kubernetes/kubectl-auth-changes-in-gke"
)
