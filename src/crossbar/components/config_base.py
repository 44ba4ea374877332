"""Base configuration model with YAML loading capabilities."""

import logging
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from ..errors import ConfigError, ConfigValidationError, ValidationIssue

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="ConfigModel")


def load_document(path: Path) -> dict[str, Any]:
    """
    Read a YAML (or JSON) configuration document.

    Args:
        path: Path to the document

    Returns:
        Parsed mapping

    Raises:
        ConfigError: On missing file, invalid YAML, or a non-mapping document
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        location = ""
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            location = f" (line {mark.line + 1}, column {mark.column + 1})"
        raise ConfigError(f"Invalid YAML syntax in {path.name}{location}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Error reading configuration file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration in {path.name} must be a mapping, got {type(data).__name__}")

    logger.debug(f"Loaded configuration document {path}")
    return data


def issue_path(loc: tuple) -> str:
    """Render a pydantic error location as a dotted path (``clusters[0].app.image``)."""
    parts: list[str] = []
    for item in loc:
        if isinstance(item, int):
            if parts:
                parts[-1] = f"{parts[-1]}[{item}]"
            else:
                parts.append(f"[{item}]")
        else:
            parts.append(str(item))
    return ".".join(parts) or "<root>"


def issues_from_validation_error(error: ValidationError) -> list[ValidationIssue]:
    """Convert pydantic errors into ValidationIssues."""
    issues = []
    for err in error.errors():
        field_path = issue_path(err["loc"])
        error_type = err["type"]
        if error_type == "missing":
            reason = "required field is missing"
        elif error_type == "extra_forbidden":
            reason = "unknown field"
        else:
            reason = err["msg"]
        issues.append(ValidationIssue(field_path, reason))
    return issues


class ConfigModel(BaseModel):
    """Base model with YAML loading/saving capabilities.

    Fields are snake_case in Python and camelCase in documents; unknown keys
    are rejected.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    @classmethod
    def from_yaml(cls: type[T], path: Path) -> T:
        """
        Load and validate configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Validated configuration model instance

        Raises:
            ConfigError: On file not found or invalid YAML
            ConfigValidationError: On structural validation errors
        """
        data = load_document(path)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(issues_from_validation_error(e)) from e

    def to_yaml_string(self) -> str:
        """
        Convert configuration to YAML string.

        Returns:
            YAML formatted string of the configuration
        """
        return yaml.safe_dump(
            self.model_dump(by_alias=True, exclude_none=True, mode="json"),
            default_flow_style=False,
            sort_keys=False,
        )
