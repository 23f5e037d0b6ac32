"""
Statement builders for the execution chain.

A statement is a zero-argument callable. Each builder wraps a statement with
one lifecycle step; the class runner composes them into the full chain.
"""

from collections.abc import Callable, Sequence
from typing import Any

from featurerunner.description import Description, Statement
from featurerunner.exceptions import AggregatedFailure
from featurerunner.rules import Rule
from featurerunner.runner import FeaturesRunner
from featurerunner.utils.logging import get_logger

log = get_logger(__name__)


def run_guarded(protected: Statement, exit_step: Statement) -> None:
    """
    Run protected, then always run exit_step.

    If both fail, the exit step's failure propagates and the earlier error is
    recorded as suppressed on it (and chained as its context). If only the
    protected step failed, its error propagates unchanged.
    """
    try:
        protected()
    except BaseException as first:
        try:
            exit_step()
        except AggregatedFailure as second:
            second.add_suppressed(first)
            raise
        except Exception as second:
            log.debug(
                "Exit step failed after protected step",
                first=type(first).__name__,
                second=type(second).__name__,
            )
            raise
        raise
    exit_step()


def with_rules(
    statement: Statement, rules: Sequence[Rule], description: Description
) -> Statement:
    """Wrap statement so that the first rule is the outermost."""
    for each in reversed(rules):
        statement = each.apply(statement, description)
    return statement


def invoke_method(method: Callable[[], Any]) -> Statement:
    """Call a bound test method, discarding its return value."""

    def evaluate() -> None:
        method()

    return evaluate


def with_method_run(
    runner: FeaturesRunner, method: Callable[..., Any], test: object, next_: Statement
) -> Statement:
    """before_method_run, the test, and a guaranteed after_method_run."""

    def evaluate() -> None:
        def protected() -> None:
            runner.before_method_run(method, test)
            next_()

        run_guarded(protected, lambda: runner.after_method_run(method, test))

    return evaluate


def with_befores(befores: Sequence[Callable[[], Any]], next_: Statement) -> Statement:
    """Run setup callables, then next_."""

    def evaluate() -> None:
        for before in befores:
            before()
        next_()

    return evaluate


def with_afters(afters: Sequence[Callable[[], Any]], next_: Statement) -> Statement:
    """
    Run next_, then every teardown callable even if an earlier one failed.

    The first error (from next_ or a teardown) propagates. Every later error
    is logged and attached to it as a note (and recorded as suppressed when
    the first error is an AggregatedFailure).
    """

    def evaluate() -> None:
        errors: list[BaseException] = []
        try:
            next_()
        except BaseException as e:
            errors.append(e)
        for after in afters:
            try:
                after()
            except Exception as e:
                errors.append(e)
        if not errors:
            return
        first, *later = errors
        for error in later:
            log.warning(
                "Teardown failed after an earlier error",
                first=type(first).__name__,
                error=f"{type(error).__name__}: {error!s}",
            )
            first.add_note(f"Teardown also failed: {type(error).__name__}: {error!s}")
            if isinstance(first, AggregatedFailure):
                first.add_suppressed(error)
        raise first

    return evaluate


def with_setup_hooks(runner: FeaturesRunner, next_: Statement) -> Statement:
    """before_setup around the instance's setup, guaranteed after_teardown."""

    def evaluate() -> None:
        def protected() -> None:
            runner.before_setup()
            next_()

        run_guarded(protected, runner.after_teardown)

    return evaluate


def with_before_class(runner: FeaturesRunner, next_: Statement) -> Statement:
    """The class setup phases, then next_."""

    def evaluate() -> None:
        runner.initialize()
        runner.start()
        runner.configure_bindings()
        runner.before_run()
        next_()

    return evaluate


def with_after_class(runner: FeaturesRunner, previous: Statement) -> Statement:
    """previous, then after_run and stop, both guaranteed."""

    def evaluate() -> None:
        def finish() -> None:
            run_guarded(runner.after_run, runner.stop)

        run_guarded(previous, finish)

    return evaluate
