"""Runtime settings for the TRAX engine."""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator


class TraxSettings(BaseModel):
    """
    Settings shared by the parser, resolver and mutation engine.

    Params:
        default_scheme: Scheme assumed for locators that carry none
        known_schemes: Schemes recognised without a following `//`
        indent: Indentation unit used by the serializer
        keep_comments: Whether parsed comments become tree nodes
        atomic_commits: Roll back a whole commit when one of its messages fails
        max_instantiation_depth: Limit for nested class instantiation
    """

    default_scheme: str = "file"
    known_schemes: frozenset[str] = Field(
        default_factory=lambda: frozenset({"file", "trax", "http", "https"})
    )
    indent: str = "\t"
    keep_comments: bool = True
    atomic_commits: bool = False
    max_instantiation_depth: int = Field(default=32, gt=0)

    model_config = {"frozen": True}

    @field_validator("default_scheme")
    @classmethod
    def _lowercase_scheme(cls, value: str) -> str:
        if not value or not value.isalpha():
            raise ValueError(f"scheme must be alphabetic, got {value!r}")
        return value.lower()

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "TraxSettings":
        """Create from a YAML file with partial overrides.

        Example YAML:
            default_scheme: trax
            atomic_commits: true
            indent: "  "
        """
        import yaml

        path = Path(yaml_path)
        with path.open() as f:
            config = yaml.safe_load(f) or {}

        return load_settings(config)


DEFAULT_SETTINGS = TraxSettings()


def load_settings(data: dict[str, Any] | None = None) -> TraxSettings:
    """
    Validate a plain mapping into settings.

    Params:
        data: Overrides for the default settings; None gives the defaults

    Returns:
        A frozen TraxSettings instance

    Raises:
        pydantic.ValidationError: If a value has the wrong type or range
    """
    if not data:
        return DEFAULT_SETTINGS
    return TraxSettings.model_validate(data)
