"""
Phase dispatch over the live features.

Every feature gets its hook called for a phase, whatever its siblings did.
Failures are collected and raised together once all features ran; a skip
signal is the only thing that stops a dispatch early.
"""

import unittest
from collections.abc import Callable, Sequence
from enum import Enum

from featurerunner.exceptions import AggregatedFailure, FeatureFailure
from featurerunner.feature import RunnerFeature
from featurerunner.utils.logging import get_logger

log = get_logger(__name__)


class Phase(str, Enum):
    """Fixed lifecycle phases, in the order a class run goes through them."""

    INITIALIZE = "initialize"
    START = "start"
    CONFIGURE_BINDINGS = "configure_bindings"
    BEFORE_RUN = "before_run"
    BEFORE_METHOD_RUN = "before_method_run"
    BEFORE_SETUP = "before_setup"
    TEST_CREATED = "test_created"
    AFTER_METHOD_RUN = "after_method_run"
    AFTER_TEARDOWN = "after_teardown"
    AFTER_RUN = "after_run"
    STOP = "stop"

    @property
    def reverse(self) -> bool:
        """Whether the phase visits features in reverse dependency order."""
        return self in _REVERSE_PHASES

    @property
    def exit(self) -> bool:
        """Whether the phase must run even when the step before it failed."""
        return self in _EXIT_PHASES


_REVERSE_PHASES = frozenset({Phase.AFTER_TEARDOWN, Phase.AFTER_RUN, Phase.STOP})

_EXIT_PHASES = frozenset(
    {Phase.AFTER_METHOD_RUN, Phase.AFTER_TEARDOWN, Phase.AFTER_RUN, Phase.STOP}
)


def ordered(phase: Phase, features: Sequence[RunnerFeature]) -> list[RunnerFeature]:
    """Features in the visiting order of phase."""
    if phase.reverse:
        return list(reversed(features))
    return list(features)


def invoke_features(
    phase: Phase,
    features: Sequence[RunnerFeature],
    call: Callable[[RunnerFeature], None],
) -> None:
    """
    Call a phase hook on every feature.

    Args:
        phase: Phase being dispatched; selects forward or reverse order.
        features: Live features in dependency order.
        call: Invokes the phase hook on one feature.

    Raises:
        unittest.SkipTest: Re-raised unchanged as soon as a hook raises it.
        AggregatedFailure: If one or more hooks raised any other exception.
    """
    failures: list[FeatureFailure] = []
    for feature in ordered(phase, features):
        try:
            call(feature)
        except unittest.SkipTest:
            log.debug(
                "Feature requested skip",
                phase=phase.value,
                feature=type(feature).__qualname__,
            )
            raise
        except Exception as e:
            log.warning(
                "Feature hook failed",
                phase=phase.value,
                feature=type(feature).__qualname__,
                error=f"{type(e).__name__}: {e!s}",
            )
            failures.append(FeatureFailure(identity=type(feature), cause=e))

    if failures:
        raise AggregatedFailure(phase, failures)
