"""
Execution engine for plain test classes.

Runs every test method of a class through a FeaturesRunner:

    initialize / start / configure_bindings / before_run
      class rules
        setup_class
          for each method:
            method rules
              before_setup ... after_teardown
                setup ... teardown
                  before_method_run ... after_method_run
                    test method
        teardown_class
    after_run / stop (always)
"""

import unittest
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from featurerunner.config.settings import RunnerSettings
from featurerunner.description import Description, Statement
from featurerunner.engine import statements
from featurerunner.engine.discovery import find_test_methods
from featurerunner.locator import ResourceLocator
from featurerunner.notifier import MethodResult, Outcome, RunNotifier
from featurerunner.runner import FeaturesRunner
from featurerunner.utils.logging import get_logger, log_context

log = get_logger(__name__)


@dataclass
class RunSummary:
    """Aggregate result of one class run."""

    test_class: type
    results: list[MethodResult] = field(default_factory=list)
    error: BaseException | None = None
    skipped_reason: str | None = None

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def passed(self) -> int:
        """Number of passed methods."""
        return self._count(Outcome.PASSED)

    @property
    def failed(self) -> int:
        """Number of failed methods."""
        return self._count(Outcome.FAILED)

    @property
    def skipped(self) -> int:
        """Number of skipped methods."""
        return self._count(Outcome.SKIPPED)

    @property
    def ok(self) -> bool:
        """True when neither a method nor the class run failed."""
        return self.error is None and self.failed == 0


class ClassRunner:
    """
    Runs the test methods of one class with its features.

    Test methods are the callables whose name starts with the configured
    prefix, in definition order (base classes first).
    """

    def __init__(self, test_class: type, settings: RunnerSettings | None = None) -> None:
        """
        Initialize class runner.

        Args:
            test_class: Class to run.
            settings: Engine settings; defaults when None.

        Raises:
            CycleDetectedError: If the class's feature requirements are cyclic.
        """
        self.test_class = test_class
        self.settings = settings or RunnerSettings()
        self.description = Description(test_class)
        self.features = FeaturesRunner(
            test_class,
            locator=ResourceLocator(test_class, self.settings.resources_root),
        )

    def test_method_names(self) -> list[str]:
        """Names of the test methods, in definition order."""
        return find_test_methods(self.test_class, self.settings.test_method_prefix)

    def run(self, notifier: RunNotifier | None = None) -> RunSummary:
        """
        Run the class.

        Args:
            notifier: Receives run events; a fresh one by default.

        Returns:
            RunSummary of this run.
        """
        notifier = notifier or RunNotifier()
        summary = RunSummary(test_class=self.test_class)
        recorded = len(notifier.results)

        with log_context(test_class=self.test_class.__qualname__):
            self.features.on_scope(notifier)
            statement = self.class_block(notifier)
            notifier.fire_test_started(self.description)
            try:
                statement()
            except unittest.SkipTest as e:
                summary.skipped_reason = str(e)
                notifier.fire_test_skipped(self.description, str(e))
            except Exception as e:
                summary.error = e
                notifier.fire_test_failure(self.description, e)
            finally:
                notifier.fire_test_finished(self.description)

        # the class record stays in the notifier; the summary counts methods
        summary.results = [
            r for r in notifier.results[recorded:] if not r.description.is_suite
        ]
        log.info(
            "Class run finished",
            test_class=self.test_class.__qualname__,
            passed=summary.passed,
            failed=summary.failed,
            skipped=summary.skipped,
            error=None if summary.error is None else type(summary.error).__name__,
        )
        return summary

    def class_block(self, notifier: RunNotifier) -> Statement:
        """The full class statement: feature phases around class rules and children."""

        def children() -> None:
            self.run_children(notifier)

        fixtures = self._with_class_fixtures(children)

        def with_class_rules() -> None:
            # collected once the features are live and injected
            rules = self.features.class_rules()
            statements.with_rules(fixtures, rules, self.description)()

        statement = statements.with_before_class(self.features, with_class_rules)
        return statements.with_after_class(self.features, statement)

    def _with_class_fixtures(self, next_: Statement) -> Statement:
        setup = self._class_fixture(self.settings.setup_class_method)
        teardown = self._class_fixture(self.settings.teardown_class_method)
        statement = statements.with_befores(setup, next_)
        return statements.with_afters(teardown, statement)

    def _class_fixture(self, name: str) -> list[Callable[[], Any]]:
        fixture = getattr(self.test_class, name, None)
        return [fixture] if callable(fixture) else []

    def _instance_fixture(self, test: object, name: str) -> list[Callable[[], Any]]:
        fixture = getattr(test, name, None)
        return [fixture] if callable(fixture) else []

    def run_children(self, notifier: RunNotifier) -> None:
        """Run every test method."""
        for name in self.test_method_names():
            self.run_method(name, notifier)

    def method_block(self, name: str) -> Statement:
        """Statement running one test method with its lifecycle and rules."""
        test = self.features.create_test()
        method = getattr(test, name)
        description = self.description.child(name)

        statement = statements.invoke_method(method)
        statement = statements.with_method_run(self.features, method, test, statement)
        statement = statements.with_befores(
            self._instance_fixture(test, self.settings.setup_method), statement
        )
        statement = statements.with_afters(
            self._instance_fixture(test, self.settings.teardown_method), statement
        )
        statement = statements.with_setup_hooks(self.features, statement)
        return statements.with_rules(statement, self.features.method_rules(test), description)

    def run_method(self, name: str, notifier: RunNotifier) -> None:
        """Run one test method and report its outcome."""
        description = self.description.child(name)
        notifier.fire_test_started(description)
        try:
            self.method_block(name)()
        except unittest.SkipTest as e:
            notifier.fire_test_skipped(description, str(e))
        except Exception as e:
            notifier.fire_test_failure(description, e)
        finally:
            notifier.fire_test_finished(description)
