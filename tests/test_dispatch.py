"""Tests for phase dispatch."""

import unittest

import pytest

from featurerunner.dispatch import Phase, invoke_features, ordered
from featurerunner.exceptions import AggregatedFailure, SkipSignal
from featurerunner.feature import RunnerFeature

calls: list[str] = []


@pytest.fixture(autouse=True)
def clear_calls() -> None:
    """Reset the call log."""
    calls.clear()


class Recording(RunnerFeature):
    error: Exception | None = None

    def hook(self) -> None:
        calls.append(type(self).__name__)
        if self.error is not None:
            raise self.error


class A(Recording):
    pass


class B(Recording):
    pass


class C(Recording):
    pass


def hook(feature: RunnerFeature) -> None:
    assert isinstance(feature, Recording)
    feature.hook()


class TestPhase:
    """Tests for the Phase enum."""

    @pytest.mark.parametrize(
        "phase", [Phase.AFTER_TEARDOWN, Phase.AFTER_RUN, Phase.STOP]
    )
    def test_reverse_phases(self, phase: Phase) -> None:
        """Test that exit phases after teardown run in reverse."""
        assert phase.reverse

    @pytest.mark.parametrize(
        "phase",
        [
            Phase.INITIALIZE,
            Phase.START,
            Phase.BEFORE_RUN,
            Phase.BEFORE_METHOD_RUN,
            Phase.BEFORE_SETUP,
            Phase.AFTER_METHOD_RUN,
        ],
    )
    def test_forward_phases(self, phase: Phase) -> None:
        """Test that enter phases and after_method_run run forward."""
        assert not phase.reverse

    def test_exit_phases(self) -> None:
        """Test which phases are guaranteed to run."""
        assert Phase.AFTER_METHOD_RUN.exit
        assert Phase.STOP.exit
        assert not Phase.BEFORE_RUN.exit


class TestInvokeFeatures:
    """Tests for invoke_features."""

    def test_forward_order(self) -> None:
        """Test that forward phases visit features in order."""
        invoke_features(Phase.BEFORE_RUN, [A(), B(), C()], hook)
        assert calls == ["A", "B", "C"]

    def test_reverse_order(self) -> None:
        """Test that reverse phases visit features in reverse order."""
        invoke_features(Phase.AFTER_RUN, [A(), B(), C()], hook)
        assert calls == ["C", "B", "A"]

    def test_ordered_does_not_mutate(self) -> None:
        """Test that ordering a reverse phase leaves the input alone."""
        features = [A(), B(), C()]
        assert [type(f) for f in ordered(Phase.STOP, features)] == [C, B, A]
        assert [type(f) for f in features] == [A, B, C]

    def test_single_failure_aggregated(self) -> None:
        """Test that one failing feature does not stop its siblings."""
        failing = B()
        cause = ValueError("boom")
        failing.error = cause

        with pytest.raises(AggregatedFailure) as exc_info:
            invoke_features(Phase.BEFORE_RUN, [A(), failing, C()], hook)

        assert calls == ["A", "B", "C"]
        assert exc_info.value.causes == [cause]
        assert exc_info.value.identities == [B]
        assert exc_info.value.phase is Phase.BEFORE_RUN

    def test_all_failures_kept_in_visit_order(self) -> None:
        """Test that every failure is kept, in visitation order."""
        a, c = A(), C()
        a.error = ValueError("a")
        c.error = KeyError("c")

        with pytest.raises(AggregatedFailure) as exc_info:
            invoke_features(Phase.STOP, [a, B(), c], hook)

        assert calls == ["C", "B", "A"]
        assert exc_info.value.identities == [C, A]
        assert [type(e) for e in exc_info.value.causes] == [KeyError, ValueError]

    def test_skip_short_circuits(self) -> None:
        """Test that a skip stops dispatch and propagates unmodified."""
        a = A()
        signal = SkipSignal("not applicable")
        a.error = signal

        with pytest.raises(SkipSignal) as exc_info:
            invoke_features(Phase.BEFORE_METHOD_RUN, [a, B()], hook)

        assert exc_info.value is signal
        assert calls == ["A"]

    def test_skip_wins_over_earlier_failures(self) -> None:
        """Test that a skip after a failure still propagates as a skip."""
        a, b = A(), B()
        a.error = RuntimeError("broken")
        b.error = unittest.SkipTest("skip")

        with pytest.raises(unittest.SkipTest):
            invoke_features(Phase.BEFORE_RUN, [a, b, C()], hook)

        assert calls == ["A", "B"]

    def test_no_failures_returns_normally(self) -> None:
        """Test that a clean dispatch raises nothing."""
        invoke_features(Phase.START, [A(), B()], hook)
        assert calls == ["A", "B"]

    def test_empty_feature_list(self) -> None:
        """Test that dispatching over no features is a no-op."""
        invoke_features(Phase.START, [], hook)
        assert calls == []

    def test_aggregated_failure_message_names_features(self) -> None:
        """Test the aggregated failure's message."""
        b = B()
        b.error = ValueError("bad value")

        with pytest.raises(AggregatedFailure) as exc_info:
            invoke_features(Phase.AFTER_METHOD_RUN, [b], hook)

        message = str(exc_info.value)
        assert "after_method_run" in message
        assert "B: ValueError: bad value" in message
