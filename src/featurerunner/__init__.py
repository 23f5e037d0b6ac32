"""
Featurerunner: feature-driven test class lifecycle orchestration.

Test classes declare the reusable features they need; the runner resolves the
feature dependency graph, wires the features through layered injection
scopes, and drives them through a fixed sequence of lifecycle phases around
each class run and each test method.
"""

from importlib.metadata import version

from featurerunner.declarations import Requires, annotate, requires
from featurerunner.exceptions import (
    AggregatedFailure,
    CycleDetectedError,
    FeatureRunnerError,
    InstantiationError,
    RuleProductionError,
    SkipSignal,
    assume,
)
from featurerunner.feature import RunnerFeature
from featurerunner.injection import Binder, Scope, inject
from featurerunner.rules import Rule, class_rule, rule
from featurerunner.runner import FeaturesRunner

__version__ = version("featurerunner")

__all__ = [
    "AggregatedFailure",
    "Binder",
    "CycleDetectedError",
    "FeatureRunnerError",
    "FeaturesRunner",
    "InstantiationError",
    "Requires",
    "Rule",
    "RuleProductionError",
    "RunnerFeature",
    "Scope",
    "SkipSignal",
    "__version__",
    "annotate",
    "assume",
    "class_rule",
    "inject",
    "requires",
    "rule",
]
