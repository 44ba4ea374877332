"""Pulumi Automation API helpers shared by the Pulumi-backed collaborators.

Every stack is encrypted with the same passphrase, read from
``~/.crossbar/secrets/pulumi-passphrase`` and created on first use. The
environment (including PULUMI_CONFIG_PASSPHRASE_FILE) must be passed to the
Pulumi subprocess or stacks become unreadable.
"""

import logging
import os
import secrets
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pulumi.automation as auto

from .naming import ResourceNaming
from .paths import PASSPHRASE_FILE, ensure_work_dir, get_backend_url

logger = logging.getLogger(__name__)

# Stacks are updated from worker threads; passphrase creation must happen once
_passphrase_lock = threading.Lock()


def configure_quiet_environment():
    """Configure environment variables to suppress noisy output from gRPC/Pulumi."""
    os.environ.setdefault("GRPC_ENABLE_FORK_SUPPORT", "0")
    os.environ.setdefault("GRPC_VERBOSITY", "ERROR")
    if not os.isatty(1):
        os.environ.setdefault("NO_COLOR", "1")


def _ensure_passphrase(passphrase_file: Path = PASSPHRASE_FILE) -> Path:
    """Ensure the Pulumi passphrase file exists and is the one Pulumi uses."""
    with _passphrase_lock:
        if not passphrase_file.exists():
            passphrase_file.parent.mkdir(parents=True, exist_ok=True)
            tmp = passphrase_file.with_suffix(".tmp")
            tmp.write_text(secrets.token_urlsafe(32))
            if os.name != "nt":
                tmp.chmod(0o600)
            tmp.replace(passphrase_file)
            logger.info(f"Generated Pulumi passphrase: {passphrase_file}")

        os.environ["PULUMI_CONFIG_PASSPHRASE_FILE"] = str(passphrase_file)
        # A direct passphrase would take precedence over the file
        os.environ.pop("PULUMI_CONFIG_PASSPHRASE", None)
    return passphrase_file


def workspace_options(
    project: str, work_dir: Path, backend_url: str | None = None
) -> auto.LocalWorkspaceOptions:
    """Create standard LocalWorkspaceOptions for Pulumi operations.

    Args:
        project: Project name
        work_dir: Working directory for Pulumi operations
        backend_url: Optional backend URL (defaults to the local file backend)

    Returns:
        Configured LocalWorkspaceOptions with backend settings
    """
    _ensure_passphrase()

    return auto.LocalWorkspaceOptions(
        work_dir=str(work_dir),
        project_settings=auto.ProjectSettings(
            name=project,
            runtime="python",
            backend=auto.ProjectBackend(url=get_backend_url(backend_url)),
        ),
        # Never None: the language host must inherit the passphrase file
        env_vars=dict(os.environ),
    )


def select_stack(
    step: str,
    plan_name: str,
    env: str,
    program: Callable[[], None],
    backend_url: str | None = None,
) -> auto.Stack:
    """Select or create the stack of one step for one plan.

    Args:
        step: Step name, which selects the Pulumi project
        plan_name: Resolved plan name
        env: Environment name
        program: Inline Pulumi program
        backend_url: Optional backend URL

    Returns:
        Selected or created Pulumi stack
    """
    project = ResourceNaming.get_project_name(step)
    stack = ResourceNaming.get_stack_name(plan_name, env)
    work_dir = ensure_work_dir(step)

    return auto.create_or_select_stack(
        stack_name=stack,
        project_name=project,
        program=program,
        opts=workspace_options(project, work_dir, backend_url),
    )


def up(
    step: str,
    plan_name: str,
    env: str,
    program: Callable[[], None],
    config: dict[str, str] | None = None,
    backend_url: str | None = None,
    on_output: Callable[[str], None] | None = None,
) -> dict[str, Any]:
    """Run pulumi up on a step's stack.

    Args:
        step: Step name
        plan_name: Resolved plan name
        env: Environment name
        program: Inline Pulumi program
        config: Plain stack configuration values (e.g. gcp:project)
        backend_url: Optional backend URL
        on_output: Optional callback for output messages

    Returns:
        Stack outputs after update
    """
    stack = select_stack(step, plan_name, env, program, backend_url)
    for key, value in (config or {}).items():
        stack.set_config(key, auto.ConfigValue(value=value))

    logger.info(f"pulumi up {stack.name} ({ResourceNaming.get_project_name(step)})")
    result = stack.up(on_output=on_output or (lambda _: None))
    return result.outputs


def get_output_value(outputs: dict[str, Any], key: str, default: Any = None) -> Any:
    """Plain value of one stack output, or ``default`` when it is absent.

    Accepts ``auto.OutputValue`` objects as well as the ``{"value": ...}``
    dicts of exported stack state.

    >>> get_output_value({"endpoint": {"value": "34.1.2.3"}}, "endpoint")
    '34.1.2.3'
    """
    output = outputs.get(key)
    if output is None:
        return default
    if isinstance(output, dict):
        return output.get("value", default)
    return getattr(output, "value", default)
