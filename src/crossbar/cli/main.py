"""Crossbar CLI entry point."""

# Set environment variables before any other imports to suppress gRPC warnings
import os
os.environ.setdefault("GRPC_ENABLE_FORK_SUPPORT", "0")
os.environ.setdefault("GRPC_VERBOSITY", "ERROR")

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.markup import escape

from ..client.provision import ProvisioningService
from ..components.config_base import load_document
from ..core.env import RunContext
from ..errors import ConfigValidationError, CrossbarError
from ..planning.validator import ConfigValidator
from . import display
from .common_options import config_argument, env_option, json_option, verbose_option
from .display import error, info, success, warning

app = typer.Typer(
    name="crossbar",
    help="Multi-region GKE provisioning: network, egress, cluster, ingress, TLS and app",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


def _fail(e: CrossbarError) -> NoReturn:
    """Report a pre-run error and exit non-zero."""
    if isinstance(e, ConfigValidationError):
        display.validation_issues(e.issues)
    else:
        error(escape(str(e)))
    raise typer.Exit(1)


@app.command()
def validate(
    config: Path = config_argument(),
    verbose: bool = verbose_option(),
):
    """Check a configuration document and list every problem found."""
    _configure_logging(verbose)
    try:
        document = load_document(config)
    except CrossbarError as e:
        _fail(e)

    issues = ConfigValidator().validate(document)
    if issues:
        display.validation_issues(issues)
        raise typer.Exit(1)
    success(f"{config} is valid")


@app.command()
def plan(
    config: Path = config_argument(),
    env: Optional[str] = env_option(),
    max_parallel: Optional[int] = typer.Option(
        None, "--max-parallel", help="Maximum number of regions provisioned at once"
    ),
    json_output: bool = json_option(),
    verbose: bool = verbose_option(),
):
    """Resolve defaults and fan-out, then show the plans without creating anything."""
    _configure_logging(verbose)
    context = RunContext.from_environ(env=env)
    service = ProvisioningService(context, overrides={"max_parallel_regions": max_parallel})
    try:
        planned = service.plan(load_document(config))
    except CrossbarError as e:
        _fail(e)

    if json_output:
        typer.echo(planned.to_json())
        return
    display.plan_table(planned)


@app.command()
def up(
    config: Path = config_argument(),
    env: Optional[str] = env_option(),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Run the full pipeline against in-memory collaborators"
    ),
    max_parallel: Optional[int] = typer.Option(
        None, "--max-parallel", help="Maximum number of regions provisioned at once"
    ),
    step_timeout: Optional[float] = typer.Option(
        None, "--step-timeout", help="Override every step timeout (seconds)"
    ),
    halt_on_failure: bool = typer.Option(
        False, "--halt-on-failure", help="Stop scheduling a region's steps after its first failure"
    ),
    json_output: bool = json_option(),
    verbose: bool = verbose_option(),
):
    """Provision every planned region.

    Regions run in parallel; within a region, steps start as soon as their
    dependencies succeed. Exits non-zero if any region failed.
    """
    _configure_logging(verbose)
    context = RunContext.from_environ(env=env)
    service = ProvisioningService(
        context,
        overrides={
            "max_parallel_regions": max_parallel,
            "step_timeout": step_timeout,
            "halt_on_failure": halt_on_failure,
        },
    )

    if dry_run:
        from ..providers.memory import InMemoryResourceProvider, InMemoryWorkloadClient
        provider = InMemoryResourceProvider()
        workload_client = InMemoryWorkloadClient()
        if not json_output:
            warning("Dry run: nothing will be created")
    else:
        # Pulumi providers are only imported when something is really created
        from ..providers.gcp import GcpResourceProvider
        from ..providers.kubernetes import PulumiWorkloadClient
        provider = GcpResourceProvider(env=context.environment)
        workload_client = PulumiWorkloadClient(env=context.environment)

    try:
        report = service.provision(load_document(config), provider, workload_client)
    except CrossbarError as e:
        _fail(e)

    if json_output:
        typer.echo(report.to_json())
    else:
        display.report_tables(report)
        if report.success:
            success(f"Provisioned {len(report.results)} region(s)")
        else:
            failed = [s.name for s in report.summaries if s.status != "succeeded"]
            error(f"Failed regions: {', '.join(failed)}")

    if not report.success:
        raise typer.Exit(1)


@app.command()
def version():
    """Show crossbar version."""
    from .._version import describe
    info(f"crossbar version: {describe()}")


def main():
    """Main CLI entry point."""
    try:
        app()
    except KeyboardInterrupt:
        warning("\nInterrupted by user")
        raise typer.Exit(1)
    except Exception as e:
        error(f"Error: {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    main()
