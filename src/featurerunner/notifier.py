"""Run notifications: listeners and recorded outcomes."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from featurerunner.description import Description
from featurerunner.utils.logging import get_logger

log = get_logger(__name__)


class Outcome(str, Enum):
    """Result of running one test method (or a whole class)."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class MethodResult:
    """Recorded outcome of one description."""

    description: Description
    outcome: Outcome
    error: BaseException | None = None
    duration: float = 0.0


class RunListener:
    """Receives run events. All callbacks are no-ops by default."""

    def test_started(self, description: Description) -> None:
        """A test method is about to run."""

    def test_failure(self, description: Description, error: BaseException) -> None:
        """A test method (or the class run) failed."""

    def test_skipped(self, description: Description, reason: str) -> None:
        """A test method (or the class run) was skipped."""

    def test_finished(self, description: Description) -> None:
        """A test method finished, whatever its outcome."""


class RunNotifier:
    """
    Dispatches run events to listeners and records results.

    Bound in the root injection scope so features can report through it.
    """

    def __init__(self) -> None:
        self.listeners: list[RunListener] = []
        self.results: list[MethodResult] = []
        self._started: dict[Description, float] = {}
        self._current: dict[Description, MethodResult] = {}

    def add_listener(self, listener: RunListener) -> None:
        """Register a listener."""
        self.listeners.append(listener)

    def _each(self, call: Callable[[RunListener], None]) -> None:
        for listener in self.listeners:
            call(listener)

    def fire_test_started(self, description: Description) -> None:
        """Record the start of a test."""
        self._started[description] = time.perf_counter()
        self._current[description] = MethodResult(description, Outcome.PASSED)
        log.debug("Test started", test=description.display_name)
        self._each(lambda listener: listener.test_started(description))

    def fire_test_failure(self, description: Description, error: BaseException) -> None:
        """Record a failure."""
        result = self._current.setdefault(description, MethodResult(description, Outcome.FAILED))
        result.outcome = Outcome.FAILED
        result.error = error
        log.info(
            "Test failed",
            test=description.display_name,
            error=f"{type(error).__name__}: {error!s}",
        )
        self._each(lambda listener: listener.test_failure(description, error))

    def fire_test_skipped(self, description: Description, reason: str) -> None:
        """Record a skip."""
        result = self._current.setdefault(description, MethodResult(description, Outcome.SKIPPED))
        result.outcome = Outcome.SKIPPED
        log.info("Test skipped", test=description.display_name, reason=reason)
        self._each(lambda listener: listener.test_skipped(description, reason))

    def fire_test_finished(self, description: Description) -> None:
        """Close the record of a test."""
        result = self._current.pop(description, None) or MethodResult(description, Outcome.PASSED)
        started = self._started.pop(description, None)
        if started is not None:
            result.duration = time.perf_counter() - started
        self.results.append(result)
        log.debug("Test finished", test=description.display_name, outcome=result.outcome.value)
        self._each(lambda listener: listener.test_finished(description))
