"""
Lifecycle orchestration of runner features.

FeaturesRunner resolves the features a test class requires, owns their
instances and injection scopes for one class run, and drives them through the
fixed phase sequence. The execution engine calls its entry points around
class and method execution:

    initialize -> start -> configure_bindings -> before_run
        (before_setup -> before_method_run -> test -> after_method_run
         -> after_teardown)*
    after_run -> stop
"""

from collections.abc import Callable, Sequence
from enum import Enum
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel

from featurerunner.config.settings import merge_configs
from featurerunner.dispatch import Phase, invoke_features
from featurerunner.exceptions import LifecycleError
from featurerunner.feature import RunnerFeature
from featurerunner.graph import FeatureGraph, FeatureGraphResolver
from featurerunner.injection import Binder, Scope, create_root
from featurerunner.locator import ResourceLocator
from featurerunner.notifier import RunNotifier
from featurerunner.registry import FeatureRegistry
from featurerunner.rules import Rule, RuleCollector, RuleEntry
from featurerunner.scanner import AnnotationScanner
from featurerunner.utils.logging import get_logger

log = get_logger(__name__)

F = TypeVar("F", bound=RunnerFeature)
C = TypeVar("C", bound=BaseModel)


class RunState(Enum):
    """Progress of a class run."""

    CREATED = "created"
    INITIALIZED = "initialized"
    STARTED = "started"
    BOUND = "bound"
    RUNNING = "running"
    STOPPED = "stopped"


class FeaturesRunner:
    """
    Drives the features of one test class run.

    The feature graph is resolved on construction, so a requirement cycle is
    reported before any feature runs.
    """

    def __init__(
        self,
        test_class: type,
        *,
        scanner: AnnotationScanner | None = None,
        locator: ResourceLocator | None = None,
    ) -> None:
        """
        Initialize runner.

        Args:
            test_class: Class under run.
            scanner: Annotation index; a fresh one by default.
            locator: Resource locator; one rooted at the test module by default.

        Raises:
            CycleDetectedError: If the feature requirements contain a cycle.
            FeatureDeclarationError: If a requirement is not a feature type.
        """
        self.test_class = test_class
        self.scanner = scanner or AnnotationScanner()
        self.locator = locator or ResourceLocator(test_class)
        self.graph: FeatureGraph = FeatureGraphResolver(self.scanner).resolve(test_class)
        self.registry = FeatureRegistry()
        self.rules = RuleCollector(test_class, self.graph, self.registry, lambda: self.scope)
        self.scope: Scope | None = None
        self.state = RunState.CREATED
        self.under_test: object | None = None

    # -- queries ---------------------------------------------------------

    @property
    def feature_classes(self) -> tuple[type[RunnerFeature], ...]:
        """Resolved feature identities, in dependency order."""
        return self.graph.order

    @property
    def features(self) -> list[RunnerFeature]:
        """Live feature instances, in dependency order."""
        return self.registry.features

    def get_feature(self, feature_type: type[F]) -> F | None:
        """Live instance of exactly feature_type, or None."""
        return self.registry.lookup(feature_type)

    def get_config(
        self, config_type: type[C], method: Callable[..., Any] | None = None
    ) -> C | None:
        """
        Look up configuration declared with ``@annotate``.

        When method is given and carries its own config, that config wins.
        Otherwise the test class's config comes first, then each resolved
        feature's in reverse dependency order, merged field by field.

        Args:
            config_type: Config model type to look up.
            method: Optional test method checked before the class.

        Returns:
            Merged config, the model defaults, or None when there is nothing
            to return.
        """
        if method is not None:
            own = self.scanner.get_annotation(method, config_type)
            if own is not None:
                return own

        configs: list[C] = []
        found = self.scanner.get_annotation(self.test_class, config_type)
        if found is not None:
            configs.append(found)
        for identity in self.graph.reversed():
            found = self.scanner.get_annotation(identity, config_type)
            if found is not None:
                configs.append(found)
        return merge_configs(config_type, configs)

    @property
    def target_test_basepath(self) -> Path:
        """Directory of the test class's module."""
        return self.locator.basepath

    def get_target_test_resource(self, name: str) -> Path | None:
        """Resolve a test resource by relative name."""
        return self.locator.get_target_test_resource(name)

    # -- injection -------------------------------------------------------

    def on_scope(self, notifier: RunNotifier) -> Scope:
        """
        Create the root scope of the run.

        Binds this runner, the notifier and the resource locator.
        """
        self.scope = create_root(
            {
                FeaturesRunner: self,
                RunNotifier: notifier,
                ResourceLocator: self.locator,
            }
        )
        return self.scope

    def _require_scope(self) -> Scope:
        if self.scope is None:
            msg = "No injection scope: on_scope() must be called first"
            raise LifecycleError(msg)
        return self.scope

    def _configure_features(self, binder: Binder) -> None:
        for feature in self.features:
            feature.configure(self, binder)

    # -- lifecycle -------------------------------------------------------

    def _require(self, *allowed: RunState) -> None:
        if self.state is RunState.STOPPED:
            msg = f"{self!r} is stopped"
            raise LifecycleError(msg)
        if allowed and self.state not in allowed:
            expected = ", ".join(s.value for s in allowed)
            msg = f"{self!r} is {self.state.value}, expected {expected}"
            raise LifecycleError(msg)

    def _dispatch(self, phase: Phase, call: Callable[[RunnerFeature], None]) -> None:
        invoke_features(phase, self.features, call)

    def initialize(self) -> None:
        """Instantiate every resolved feature and call its initialize hook."""
        self._require(RunState.CREATED)
        self.registry.instantiate(self.graph)
        self.state = RunState.INITIALIZED
        log.info(
            "Initialized features",
            test_class=self.test_class.__qualname__,
            features=[f.__qualname__ for f in self.feature_classes],
        )
        self._dispatch(Phase.INITIALIZE, lambda f: f.initialize(self))

    def start(self) -> None:
        """Dispatch start."""
        self._require(RunState.INITIALIZED)
        self.state = RunState.STARTED
        self._dispatch(Phase.START, lambda f: f.start(self))

    def configure_bindings(self) -> None:
        """
        Build the feature scope and inject every feature.

        Features contribute bindings in dependency order, so a later feature
        overrides a binding of a feature it depends on.
        """
        self._require(RunState.STARTED)
        scope = self._require_scope()
        self.scope = scope.create_child(self._configure_features)
        for feature in self.features:
            self.scope.inject_members(feature)
        self.state = RunState.BOUND

    def before_run(self) -> None:
        """Dispatch before_run."""
        self._require(RunState.BOUND)
        self.state = RunState.RUNNING
        self._dispatch(Phase.BEFORE_RUN, lambda f: f.before_run(self))

    def create_test(self) -> object:
        """Instantiate the test class and keep it as the test under run."""
        self._require(RunState.RUNNING)
        self.under_test = self.test_class()
        return self.under_test

    def before_setup(self) -> None:
        """Dispatch before_setup, then inject and announce the test under run."""
        self._require(RunState.RUNNING)
        self._dispatch(Phase.BEFORE_SETUP, lambda f: f.before_setup(self))
        if self.under_test is None:
            msg = "No test under run: create_test() must be called first"
            raise LifecycleError(msg)
        test = self.under_test
        self._require_scope().inject_members(test)
        self._dispatch(Phase.TEST_CREATED, lambda f: f.test_created(test))

    def before_method_run(self, method: Callable[..., Any], test: object) -> None:
        """Dispatch before_method_run, then inject the test instance."""
        self._require(RunState.RUNNING)
        self._dispatch(
            Phase.BEFORE_METHOD_RUN, lambda f: f.before_method_run(self, method, test)
        )
        self._require_scope().inject_members(test)

    def after_method_run(self, method: Callable[..., Any], test: object) -> None:
        """Dispatch after_method_run."""
        self._require()
        self._dispatch(
            Phase.AFTER_METHOD_RUN, lambda f: f.after_method_run(self, method, test)
        )

    def after_teardown(self) -> None:
        """Dispatch after_teardown, in reverse order."""
        self._require()
        self._dispatch(Phase.AFTER_TEARDOWN, lambda f: f.after_teardown(self))

    def after_run(self) -> None:
        """Discard the feature scope, then dispatch after_run in reverse order."""
        self._require()
        if self.scope is not None and self.scope.parent is not None:
            self.scope = self.scope.parent
        self._dispatch(Phase.AFTER_RUN, lambda f: f.after_run(self))

    def stop(self) -> None:
        """Dispatch stop in reverse order, then drop every feature."""
        self._require()
        try:
            self._dispatch(Phase.STOP, lambda f: f.stop(self))
        finally:
            self.registry.clear()
            self.under_test = None
            self.state = RunState.STOPPED
            log.info("Stopped features", test_class=self.test_class.__qualname__)

    # -- rules -----------------------------------------------------------

    def class_rule_entries(self) -> list[RuleEntry]:
        """Class rules with their origin."""
        return self.rules.collect_class_level()

    def method_rule_entries(self, test: object) -> list[RuleEntry]:
        """Method rules for test, with their origin."""
        return self.rules.collect_method_level(test)

    def class_rules(self) -> list[Rule]:
        """Class rules, outermost first."""
        return [entry.rule for entry in self.class_rule_entries()]

    def method_rules(self, test: object) -> Sequence[Rule]:
        """Method rules for test, outermost first."""
        return [entry.rule for entry in self.method_rule_entries(test)]

    def __repr__(self) -> str:
        return f"FeaturesRunner(test_class={self.test_class.__qualname__})"
