"""
Typed configuration models using Pydantic.

Two kinds of configuration live here:

- FeatureConfig: base for config objects declared on test classes and
  features with ``@annotate(...)`` and read back with
  ``FeaturesRunner.get_config``.
- RunnerSettings: settings of the execution engine and CLI, loaded from YAML.
"""

from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

C = TypeVar("C", bound=BaseModel)


class FeatureConfig(BaseModel):
    """
    Base class for feature configuration.

    Only fields passed explicitly at construction take part in merging; the
    rest fall back to the model defaults.
    """

    model_config = ConfigDict(frozen=True)


def has_defaults(config_type: type[BaseModel]) -> bool:
    """Whether config_type can be built without arguments."""
    return all(not info.is_required() for info in config_type.model_fields.values())


def merge_configs(config_type: type[C], configs: list[C]) -> C | None:
    """
    Merge config objects, earliest first.

    For every field, the first config that set it explicitly wins; fields no
    config set keep the model default.

    Args:
        config_type: Model type to build.
        configs: Candidate configs, in precedence order.

    Returns:
        Merged config, or None when nothing was declared and config_type has
        required fields.
    """
    if not configs:
        return config_type() if has_defaults(config_type) else None
    if len(configs) == 1:
        return configs[0]

    values: dict[str, Any] = {}
    for config in configs:
        for name in config.model_fields_set:
            values.setdefault(name, getattr(config, name))
    return config_type(**values)


class LogLevel(str, Enum):
    """Supported log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class RunnerSettings(BaseModel):
    """Execution engine and CLI settings."""

    model_config = ConfigDict(frozen=True)

    log_level: LogLevel = Field(default=LogLevel.WARNING, description="Log level")
    json_logs: bool = Field(default=False, description="Render logs as JSON")
    test_method_prefix: str = Field(
        default="test", description="Methods starting with this prefix are tests"
    )
    setup_method: str = Field(default="setup", description="Per-test setup method name")
    teardown_method: str = Field(
        default="teardown", description="Per-test teardown method name"
    )
    setup_class_method: str = Field(
        default="setup_class", description="Class-level setup classmethod name"
    )
    teardown_class_method: str = Field(
        default="teardown_class", description="Class-level teardown classmethod name"
    )
    resources_root: Path | None = Field(
        default=None, description="Fallback directory for test resources"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        """Accept lower-case level names."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("test_method_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Ensure the prefix is a usable identifier start."""
        if not v or not v.replace("_", "a").isidentifier():
            msg = f"test_method_prefix must be a non-empty identifier prefix, got: {v!r}"
            raise ValueError(msg)
        return v
