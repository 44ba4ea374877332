"""Kubernetes and GCP naming validators.

GKE clusters, node pools, VPC networks and Kubernetes objects all share the
RFC 1035 / DNS-1123 label shape, so derived resource names are checked with
the helpers in this module.
"""

import re

_LABEL = re.compile(r"^[a-z]([-a-z0-9]*[a-z0-9])?$")
MAX_LABEL_LENGTH = 63

# GKE cluster and node pool names
MAX_GKE_NAME_LENGTH = 40
# Helm release names
MAX_RELEASE_NAME_LENGTH = 53


def dns_1123_label(name: str, fallback: str = "default", max_length: int = MAX_LABEL_LENGTH) -> str:
    """Sanitize a name to be DNS-1123 label compliant.

    Args:
        name: The name to sanitize
        fallback: Default value if sanitization results in empty string
        max_length: Maximum allowed length

    Returns:
        Lowercase name of alphanumerics and single hyphens

    Example:
        >>> dns_1123_label("My_Prefix!")
        'my-prefix'
    """
    if not name:
        return fallback

    sanitized = re.sub(r"[^a-z0-9-]", "-", name.lower())
    sanitized = re.sub(r"-+", "-", sanitized).strip("-")

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length].rstrip("-")

    return sanitized or fallback


def is_resource_name(name: str, max_length: int = MAX_LABEL_LENGTH) -> bool:
    """Check that a name is usable for GCP and Kubernetes resources.

    Must start with a letter, contain only lowercase alphanumerics and
    hyphens, end with an alphanumeric and be at most ``max_length`` long.
    """
    if not name or len(name) > max_length:
        return False
    return bool(_LABEL.match(name))


def sanitize_label_value(value: str, max_length: int = MAX_LABEL_LENGTH) -> str:
    """Make a value usable as both a GCP resource label and a node label.

    GCP allows lowercase letters, digits, '_' and '-'; Kubernetes also wants
    an alphanumeric first and last character.
    """
    cleaned = re.sub(r"[^a-z0-9_-]", "", (value or "").lower())
    return cleaned[:max_length].strip("-_")
