"""Consolidated display utilities for CLI commands."""

from typing import Any

from rich.console import Console
from rich.table import Table

from ..client.provision import ProvisioningPlan, ProvisioningReport
from ..errors import ValidationIssue

console = Console()

STATUS_STYLES = {
    "succeeded": "green",
    "failed": "red",
    "skipped": "yellow",
}


def success(message: str) -> None:
    """Print success message."""
    console.print(f"[green]✓ {message}[/green]")


def warning(message: str) -> None:
    """Print warning message."""
    console.print(f"[yellow]⚠️  {message}[/yellow]")


def error(message: str) -> None:
    """Print error message."""
    console.print(f"[red]❌ {message}[/red]")


def info(message: str) -> None:
    """Print info message."""
    console.print(message)


def section(title: str) -> None:
    """Print section header."""
    console.print(f"\n[bold]{title}[/bold]")


def info_dict(data: dict[str, Any], indent: str = "  ") -> None:
    """Print a dictionary as indented key-value pairs."""
    for key, value in data.items():
        console.print(f"{indent}{key}: {value}")


def _styled(label: str) -> str:
    style = STATUS_STYLES.get(label)
    return f"[{style}]{label}[/{style}]" if style else label


def validation_issues(issues: list[ValidationIssue]) -> None:
    """Print every validation issue as a table."""
    table = Table(title=f"{len(issues)} configuration problem(s)", show_lines=False)
    table.add_column("Field", style="yellow")
    table.add_column("Problem")
    for issue in issues:
        table.add_row(issue.field, issue.reason)
    console.print(table)


def plan_table(planned: ProvisioningPlan) -> None:
    """Show resolved plans and their step order."""
    table = Table(title="Resolved cluster plans")
    table.add_column("Name", style="cyan")
    table.add_column("Region")
    table.add_column("Nodes")
    table.add_column("Machine")
    table.add_column("NAT IPs")
    table.add_column("Image")
    for plan in planned.plans:
        table.add_row(
            plan.name,
            plan.region,
            f"{plan.node_pool.min_nodes}-{plan.node_pool.max_nodes}",
            plan.node_pool.machine_type,
            str(plan.egress.num_nat_addresses),
            plan.app.image,
        )
    console.print(table)

    if planned.plans:
        graph = planned.graphs[planned.plans[0].name]
        section("Step order (per region):")
        for step in graph.topological_order():
            deps = ", ".join(sorted(d.value for d in graph.get_dependencies(step.kind))) or "-"
            gate = " [dim](waits for node-pool readiness)[/dim]" if step.gated else ""
            console.print(f"  {step.kind.value} [dim]<- {deps}[/dim]{gate}")

    section("Orchestration:")
    info_dict({
        "Max parallel regions": planned.settings.max_parallel_regions,
        "Failure policy": planned.settings.failure_policy.value,
        "Min ready nodes": planned.settings.min_ready_nodes,
    })


def report_tables(report: ProvisioningReport) -> None:
    """Show the per-region summary of a run."""
    for summary in report.summaries:
        section(f"{summary.name} ({summary.region}): {_styled(summary.status)}")
        info_dict({
            "HTTPS host": summary.url or "-",
            "Egress IPs": ", ".join(summary.egress_ips) or "-",
        })

        table = Table(show_header=True)
        table.add_column("Step")
        table.add_column("Status")
        table.add_column("Detail", style="dim")
        for step, label in summary.steps.items():
            table.add_row(step, _styled(label), summary.errors.get(step, ""))
        console.print(table)
