"""Common Typer options shared across CLI commands."""

from typing import Optional

import typer


def config_argument(help_text: str = "Configuration document (YAML or JSON)") -> typer.Argument:
    """Create the standard configuration file argument.

    Args:
        help_text: Custom help text

    Returns:
        Configured Typer Argument
    """
    return typer.Argument(
        ...,
        help=help_text,
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    )


def env_option(
    default: Optional[str] = None,
    help_text: str = "Environment name used in Pulumi stack names (default: CROSSBAR_ENV or dev)",
) -> typer.Option:
    """Create a standard environment option."""
    return typer.Option(default, "--env", "-e", help=help_text)


def json_option(help_text: str = "Output in JSON format") -> typer.Option:
    return typer.Option(False, "--json", help=help_text)


def verbose_option(help_text: str = "Show detailed log output") -> typer.Option:
    return typer.Option(False, "--verbose", "-v", help=help_text)
