"""
Configuration management with typed Pydantic models.

Provides feature configuration merging and runner settings loading.
"""

from featurerunner.config.loader import load_settings
from featurerunner.config.settings import (
    FeatureConfig,
    LogLevel,
    RunnerSettings,
    merge_configs,
)

__all__ = [
    "FeatureConfig",
    "LogLevel",
    "RunnerSettings",
    "load_settings",
    "merge_configs",
]
