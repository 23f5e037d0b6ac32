"""Tests for rule declaration and collection."""

from collections.abc import Callable

import pytest

from featurerunner.declarations import requires
from featurerunner.description import Description, Statement
from featurerunner.exceptions import RuleProductionError
from featurerunner.feature import RunnerFeature
from featurerunner.graph import FeatureGraphResolver
from featurerunner.injection import create_root, inject
from featurerunner.registry import FeatureRegistry
from featurerunner.rules import RuleCollector, RuleKind, class_rule, rule, rule_members


class NamedRule:
    """Rule recording its name around the wrapped statement."""

    def __init__(self, name: str, log: list[str] | None = None) -> None:
        self.name = name
        self.log = log if log is not None else []

    def apply(self, base: Statement, description: Description) -> Statement:
        def evaluate() -> None:
            self.log.append(f"{self.name}:before")
            base()
            self.log.append(f"{self.name}:after")

        return evaluate


class Clock:
    pass


class InjectedRule(NamedRule):
    clock: Clock = inject()


class BaseFeature(RunnerFeature):
    base_field = rule(NamedRule("base-field"))

    @rule
    def base_method(self) -> NamedRule:
        return NamedRule("base-method")

    @class_rule
    def base_class_rule(self) -> NamedRule:
        return NamedRule("base-class")


@requires(BaseFeature)
class DerivedFeature(RunnerFeature):
    @rule
    def derived_method(self) -> InjectedRule:
        return InjectedRule("derived-method")

    derived_field = class_rule(NamedRule("derived-class-field"))


@requires(DerivedFeature)
class RuleCase:
    own_field = rule(NamedRule("test-field"))
    own_class_field = class_rule(NamedRule("test-class-field"))

    @rule
    def own_method(self) -> NamedRule:
        return NamedRule(f"test-method-{id(self)}")

    @class_rule
    @classmethod
    def own_class_method(cls) -> NamedRule:
        return NamedRule("test-class-method")


def make_collector(
    test_class: type, bindings: dict[object, object] | None = None
) -> RuleCollector:
    graph = FeatureGraphResolver().resolve(test_class)
    registry = FeatureRegistry()
    registry.instantiate(graph)
    scope = create_root(bindings or {Clock: Clock()})
    return RuleCollector(test_class, graph, registry, lambda: scope)


class TestRuleMembers:
    """Tests for rule_members scanning."""

    def test_fields_and_methods(self) -> None:
        """Test that fields and methods are told apart."""
        fields, methods = rule_members(BaseFeature, RuleKind.METHOD)
        assert fields == ["base_field"]
        assert methods == ["base_method"]

    def test_kind_filter(self) -> None:
        """Test that class rules and method rules are separate."""
        fields, methods = rule_members(BaseFeature, RuleKind.CLASS)
        assert fields == []
        assert methods == ["base_class_rule"]

    def test_classmethod_marker(self) -> None:
        """Test that marked classmethods are found."""
        _, methods = rule_members(RuleCase, RuleKind.CLASS)
        assert methods == ["own_class_method"]

    def test_override_without_marker_removes_rule(self) -> None:
        """Test that a subclass can drop an inherited rule."""

        class Quiet(BaseFeature):
            def base_method(self) -> NamedRule:
                return NamedRule("unused")

        _, methods = rule_members(Quiet, RuleKind.METHOD)
        assert methods == []


class TestCollectMethodLevel:
    """Tests for method-level rule collection."""

    def test_order_features_then_test(self) -> None:
        """Test that feature rules come first, in graph order."""
        collector = make_collector(RuleCase)
        test = RuleCase()

        entries = collector.collect_method_level(test)

        assert [(e.source, e.member) for e in entries] == [
            (BaseFeature, "base_field"),
            (BaseFeature, "base_method"),
            (DerivedFeature, "derived_method"),
            (RuleCase, "own_field"),
            (RuleCase, "own_method"),
        ]

    def test_test_methods_evaluated_against_instance(self) -> None:
        """Test that the test's own rule methods run on the given instance."""
        collector = make_collector(RuleCase)
        test = RuleCase()

        entries = collector.collect_method_level(test)

        assert entries[-1].rule.name == f"test-method-{id(test)}"
        assert entries[-1].from_method

    def test_fields_taken_directly(self) -> None:
        """Test that field rules are the declared objects."""
        collector = make_collector(RuleCase)
        entries = collector.collect_method_level(RuleCase())
        assert entries[0].rule is BaseFeature.base_field
        assert not entries[0].from_method

    def test_method_rules_are_injected(self) -> None:
        """Test that rules produced by methods get their members injected."""
        clock = Clock()
        collector = make_collector(RuleCase, {Clock: clock})

        entries = collector.collect_method_level(RuleCase())
        derived = next(e for e in entries if e.member == "derived_method")

        assert derived.rule.clock is clock

    def test_injection_failure_wrapped(self) -> None:
        """Test that a failed rule injection names the method."""
        collector = make_collector(RuleCase, {"unrelated": 1})

        with pytest.raises(RuleProductionError, match="DerivedFeature.derived_method"):
            collector.collect_method_level(RuleCase())

    def test_method_failure_wrapped(self) -> None:
        """Test that an exception in a rule method is wrapped with its name."""

        class Failing(RunnerFeature):
            @rule
            def explode(self) -> NamedRule:
                raise RuntimeError("cannot build rule")

        @requires(Failing)
        class Case:
            pass

        with pytest.raises(RuleProductionError) as exc_info:
            make_collector(Case).collect_method_level(Case())

        assert "explode" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_non_rule_value_rejected(self) -> None:
        """Test that a rule method must return something with apply()."""

        class Wrong(RunnerFeature):
            @rule
            def nothing(self) -> object:
                return object()

        @requires(Wrong)
        class Case:
            pass

        with pytest.raises(RuleProductionError):
            make_collector(Case).collect_method_level(Case())


class TestCollectClassLevel:
    """Tests for class-level rule collection."""

    def test_order_features_then_test_class(self) -> None:
        """Test class rule order: features in graph order, then the class."""
        entries = make_collector(RuleCase).collect_class_level()

        assert [e.member for e in entries] == [
            "base_class_rule",
            "derived_field",
            "own_class_field",
            "own_class_method",
        ]

    def test_feature_methods_invoked_on_instance(self) -> None:
        """Test that feature rule methods are invoked on the live instance."""
        seen: list[RunnerFeature] = []

        class Tracking(RunnerFeature):
            @class_rule
            def tracked(self) -> NamedRule:
                seen.append(self)
                return NamedRule("tracked")

        @requires(Tracking)
        class Case:
            pass

        collector = make_collector(Case)
        collector.collect_class_level()

        assert seen == [collector.registry.lookup(Tracking)]


class TestRuleNesting:
    """Tests for how collected rules wrap a statement."""

    def test_first_rule_is_outermost(self) -> None:
        """Test that earlier rules run their before first and after last."""
        from featurerunner.engine.statements import with_rules

        log: list[str] = []
        rules = [NamedRule("feature", log), NamedRule("test", log)]
        body: Callable[[], None] = lambda: log.append("body")  # noqa: E731

        with_rules(body, rules, Description(RuleCase, "test_x"))()

        assert log == [
            "feature:before",
            "test:before",
            "body",
            "test:after",
            "feature:after",
        ]
