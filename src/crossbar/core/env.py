"""Run context resolution - the single source of truth for environment inputs.

Everything crossbar reads from the process environment is read here, once,
into an explicit ``RunContext`` value that is passed to every component that
needs it. Planning and orchestration code never looks at ``os.environ``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from ..errors import ConfigError

PROJECT_VARIABLE = "GOOGLE_CLOUD_PROJECT"
ENV_VARIABLE = "CROSSBAR_ENV"
ISSUER_EMAIL_VARIABLE = "CERT_MANAGER_EMAIL"

# Variables with this prefix are passed through to the application workload
WORKLOAD_ENV_PREFIX = "CROSSBAR_"

DEFAULT_ENVIRONMENT = "dev"


@dataclass(frozen=True)
class RunContext:
    """Environment-derived inputs for one run.

    Attributes:
        project_id: Cloud project identifier (required before resolving plans)
        environment: Environment name used to namespace Pulumi stacks
        workload_env: Variables passed opaquely into the application deploy
        issuer_email: Optional override for the certificate issuer contact
    """

    project_id: str | None = None
    environment: str = DEFAULT_ENVIRONMENT
    workload_env: Mapping[str, str] = field(default_factory=dict)
    issuer_email: str | None = None

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, str] | None = None,
        env: str | None = None,
    ) -> "RunContext":
        """Build a context from an environment mapping.

        Resolution order for the environment name:
        1. Explicit ``env`` parameter
        2. CROSSBAR_ENV variable
        3. DEFAULT_ENVIRONMENT (dev)

        Args:
            environ: Mapping to read (defaults to os.environ)
            env: Explicit environment name

        Returns:
            RunContext populated from the mapping
        """
        environ = os.environ if environ is None else environ

        project = (environ.get(PROJECT_VARIABLE) or "").strip() or None
        email = (environ.get(ISSUER_EMAIL_VARIABLE) or "").strip() or None

        return cls(
            project_id=project,
            environment=env or environ.get(ENV_VARIABLE) or DEFAULT_ENVIRONMENT,
            workload_env=collect_workload_env(environ),
            issuer_email=email,
        )

    def require_project(self) -> str:
        """Return the project id or raise ConfigError if it is not set."""
        if not self.project_id or not self.project_id.strip():
            raise ConfigError(f"{PROJECT_VARIABLE} environment variable must be set")
        return self.project_id


def collect_workload_env(environ: Mapping[str, str]) -> dict[str, str]:
    """Collect the workload variables from an environment mapping.

    The crossbar control variable (CROSSBAR_ENV) is not forwarded.

    Args:
        environ: Environment mapping

    Returns:
        Sorted dict of prefixed variables
    """
    return {
        key: value
        for key, value in sorted(environ.items())
        if key.startswith(WORKLOAD_ENV_PREFIX) and key != ENV_VARIABLE
    }
