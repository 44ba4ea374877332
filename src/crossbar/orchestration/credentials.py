"""Connection descriptors for freshly created clusters."""

from dataclasses import dataclass, field
from typing import Any

import yaml

from ..errors import CredentialError
from ..versions import EXEC_CREDENTIAL_API_VERSION, GKE_AUTH_PLUGIN, GKE_AUTH_PLUGIN_INSTALL_HINT


@dataclass(frozen=True)
class ExecAuth:
    """Exec-plugin auth: the client runs a command that mints short-lived tokens.

    No static token is ever stored in a bundle.
    """

    command: str = GKE_AUTH_PLUGIN
    api_version: str = EXEC_CREDENTIAL_API_VERSION
    args: tuple[str, ...] = ()
    install_hint: str = GKE_AUTH_PLUGIN_INSTALL_HINT
    provide_cluster_info: bool = True

    def to_kubeconfig_user(self) -> dict[str, Any]:
        exec_config: dict[str, Any] = {
            "apiVersion": self.api_version,
            "command": self.command,
            "installHint": self.install_hint,
            "provideClusterInfo": self.provide_cluster_info,
        }
        if self.args:
            exec_config["args"] = list(self.args)
        return {"exec": exec_config}


@dataclass(frozen=True)
class CredentialBundle:
    """
    Everything needed to address a cluster's control plane.

    Attributes:
        cluster_name: Context name used in the kubeconfig
        endpoint: Control-plane URI (always with a scheme)
        trust_anchor: Base64 encoded cluster CA certificate
        auth: Exec-plugin auth descriptor
    """

    cluster_name: str
    endpoint: str
    trust_anchor: str
    auth: ExecAuth = field(default_factory=ExecAuth)

    def to_kubeconfig(self) -> dict[str, Any]:
        """Single-context kubeconfig document."""
        name = self.cluster_name
        return {
            "apiVersion": "v1",
            "kind": "Config",
            "clusters": [{
                "name": name,
                "cluster": {
                    "certificate-authority-data": self.trust_anchor,
                    "server": self.endpoint,
                },
            }],
            "contexts": [{
                "name": name,
                "context": {"cluster": name, "user": name},
            }],
            "current-context": name,
            "users": [{
                "name": name,
                "user": self.auth.to_kubeconfig_user(),
            }],
            "preferences": {},
        }

    def to_kubeconfig_yaml(self) -> str:
        return yaml.safe_dump(self.to_kubeconfig(), default_flow_style=False, sort_keys=False)


class CredentialBundleBuilder:
    """Builds CredentialBundles from cluster creation outputs."""

    def __init__(self, auth: ExecAuth | None = None):
        self.auth = auth or ExecAuth()

    def build(self, endpoint: str, trust_anchor: str, cluster_name: str = "cluster") -> CredentialBundle:
        """
        Build a bundle for one cluster.

        Args:
            endpoint: Control-plane host or URI; ``https://`` is added when no scheme is given
            trust_anchor: Base64 encoded CA certificate
            cluster_name: Kubeconfig context name

        Returns:
            CredentialBundle using exec-plugin auth

        Raises:
            CredentialError: If the endpoint or trust anchor is empty
        """
        endpoint = (endpoint or "").strip()
        trust_anchor = (trust_anchor or "").strip()
        if not endpoint:
            raise CredentialError(f"Cluster {cluster_name} has no control-plane endpoint")
        if not trust_anchor:
            raise CredentialError(f"Cluster {cluster_name} has no CA certificate")
        if "://" not in endpoint:
            endpoint = f"https://{endpoint}"
        return CredentialBundle(
            cluster_name=cluster_name,
            endpoint=endpoint,
            trust_anchor=trust_anchor,
            auth=self.auth,
        )
