"""
Errors raised while resolving, wiring and driving runner features.

Setup errors (cycles, bad declarations, construction) are fatal for a class
run. Hook failures raised during a phase are collected per feature and
surfaced together as one AggregatedFailure.
"""

import unittest
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from featurerunner.dispatch import Phase


class FeatureRunnerError(Exception):
    """Base exception for all featurerunner errors."""


class CycleDetectedError(FeatureRunnerError):
    """Raised when a feature transitively requires itself."""

    def __init__(self, identity: type, path: tuple[type, ...] = ()) -> None:
        self.identity = identity
        self.path = path
        chain = " -> ".join(t.__qualname__ for t in (*path, identity))
        super().__init__(
            f"Cycle detected in features dependencies of {identity.__qualname__}"
            + (f" ({chain})" if path else "")
        )


class FeatureDeclarationError(FeatureRunnerError):
    """Raised when a requirement declaration names something that is not a feature."""


class InstantiationError(FeatureRunnerError):
    """Raised when a resolved feature cannot be constructed."""

    def __init__(self, identity: type) -> None:
        self.identity = identity
        super().__init__(f"Cannot instantiate feature {identity.__qualname__}")


class InjectionError(FeatureRunnerError):
    """Raised when a scope has no binding for a requested key."""

    def __init__(self, key: Any, message: str | None = None) -> None:
        self.key = key
        super().__init__(message or f"No binding for {_describe_key(key)}")


class LifecycleError(FeatureRunnerError):
    """Raised when a lifecycle entry point is called in the wrong state."""


class RuleProductionError(FeatureRunnerError):
    """Raised when a rule-supplying method or its injection fails."""

    def __init__(self, member: str) -> None:
        self.member = member
        super().__init__(f"Errors in rules factory {member}")


class SkipSignal(unittest.SkipTest):
    """
    Signals that the current test (or run) is not applicable.

    Not a failure: it short-circuits phase dispatch and is never aggregated.
    Subclassing unittest.SkipTest lets pytest and unittest report it as a skip.
    """


def assume(condition: bool, reason: str = "assumption failed") -> None:
    """Raise SkipSignal unless condition holds."""
    if not condition:
        raise SkipSignal(reason)


@dataclass(frozen=True)
class FeatureFailure:
    """A single hook failure attributed to the feature that raised it."""

    identity: type
    cause: Exception


class AggregatedFailure(FeatureRunnerError):
    """
    One or more feature hooks failed while dispatching a phase.

    Carries every individual cause in visitation order. Exceptions that were
    superseded by this failure (see engine.statements.run_guarded) are kept in
    ``suppressed``.
    """

    def __init__(self, phase: "Phase", failures: list[FeatureFailure]) -> None:
        self.phase = phase
        self.failures = list(failures)
        self.suppressed: list[BaseException] = []
        names = ", ".join(f.identity.__qualname__ for f in self.failures)
        super().__init__(f"invoke on features error in {phase.value}: [{names}]")

    @property
    def causes(self) -> list[Exception]:
        """Individual causes, in visitation order."""
        return [f.cause for f in self.failures]

    @property
    def identities(self) -> list[type]:
        """Features whose hook failed, in visitation order."""
        return [f.identity for f in self.failures]

    def add_suppressed(self, error: BaseException) -> None:
        """Record an exception superseded by this failure."""
        self.suppressed.append(error)

    def __str__(self) -> str:
        lines = [super().__str__()]
        for failure in self.failures:
            lines.append(
                f"  {failure.identity.__qualname__}: "
                f"{type(failure.cause).__name__}: {failure.cause}"
            )
        return "\n".join(lines)


def _describe_key(key: Any) -> str:
    if isinstance(key, type):
        return key.__qualname__
    return repr(key)
