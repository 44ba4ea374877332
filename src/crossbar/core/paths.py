"""Centralized path management for crossbar.

All on-disk locations crossbar uses are defined here.
"""

from pathlib import Path

CROSSBAR_HOME = Path.home() / ".crossbar"
PULUMI_HOME = CROSSBAR_HOME / "pulumi"

# One backend for every stack
BACKEND_DIR = PULUMI_HOME / "backend"

SECRETS_DIR = CROSSBAR_HOME / "secrets"
PASSPHRASE_FILE = SECRETS_DIR / "pulumi-passphrase"


def get_backend_url(url: str | None = None) -> str:
    """Get backend URL, defaulting to the local file backend.

    Args:
        url: Explicit backend URL (e.g. gs://bucket)

    Returns:
        Backend URL string
    """
    if url:
        return url
    ensure_backend()
    return f"file://{BACKEND_DIR}"


def ensure_work_dir(step: str) -> Path:
    """Ensure the Pulumi working directory for a provisioning step exists.

    Args:
        step: Step name (e.g. create-cluster)

    Returns:
        Path to the working directory
    """
    if not step or "/" in step or step.startswith("."):
        raise ValueError(f"Invalid step name for a work directory: {step!r}")
    work_dir = PULUMI_HOME / step
    work_dir.mkdir(parents=True, exist_ok=True)
    return work_dir


def ensure_backend() -> Path:
    """Ensure backend directory exists.

    Returns:
        Path to the backend directory
    """
    BACKEND_DIR.mkdir(parents=True, exist_ok=True)
    return BACKEND_DIR
