"""Execution engine driving FeaturesRunner around plain test classes."""

from featurerunner.engine.class_runner import ClassRunner, RunSummary
from featurerunner.engine.statements import run_guarded, with_rules

__all__ = ["ClassRunner", "RunSummary", "run_guarded", "with_rules"]
