"""
Base type for runner features.

A feature is a reusable module that augments a test class: it can require
other features, contribute injection bindings, supply rules and receive a
callback at every lifecycle phase. All hooks are no-ops by default.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from featurerunner.injection import Binder
    from featurerunner.runner import FeaturesRunner


class RunnerFeature:
    """
    Lifecycle hooks a feature may override.

    Subclasses are instantiated once per class run, in dependency order,
    through construct().
    """

    @classmethod
    def construct(cls) -> "RunnerFeature":
        """Create the feature instance. Zero-argument construction by default."""
        return cls()

    def initialize(self, runner: "FeaturesRunner") -> None:
        """Called once, right after every feature of the run is instantiated."""

    def start(self, runner: "FeaturesRunner") -> None:
        """Called once, after initialize."""

    def configure(self, runner: "FeaturesRunner", binder: "Binder") -> None:
        """Contribute bindings to the feature scope."""

    def before_run(self, runner: "FeaturesRunner") -> None:
        """Called once, before the first test method."""

    def before_method_run(
        self, runner: "FeaturesRunner", method: Callable[..., Any], test: object
    ) -> None:
        """Called before each test method."""

    def before_setup(self, runner: "FeaturesRunner") -> None:
        """Called before the test instance's own setup."""

    def test_created(self, test: object) -> None:
        """Called once the test instance is created and injected."""

    def after_method_run(
        self, runner: "FeaturesRunner", method: Callable[..., Any], test: object
    ) -> None:
        """Called after each test method, even when it failed."""

    def after_teardown(self, runner: "FeaturesRunner") -> None:
        """Called after the test instance's teardown, even on failure."""

    def after_run(self, runner: "FeaturesRunner") -> None:
        """Called once, after the last test method."""

    def stop(self, runner: "FeaturesRunner") -> None:
        """Called once, last."""
