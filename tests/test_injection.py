"""Tests for injection scopes."""

import pytest

from featurerunner.exceptions import InjectionError
from featurerunner.injection import Binder, Scope, create_root, inject


class Clock:
    pass


class Store:
    def __init__(self, name: str = "default") -> None:
        self.name = name


class Consumer:
    clock: Clock = inject()
    store: Store = inject()


class OptionalConsumer:
    store: Store | None = inject(optional=True)


class NamedConsumer:
    url: str = inject("database.url")


class DerivedConsumer(Consumer):
    extra: Clock = inject()


class HidingConsumer(Consumer):
    store = None


class TestScope:
    """Tests for Scope lookup."""

    def test_root_lookup(self) -> None:
        """Test resolving a root binding."""
        clock = Clock()
        root = create_root({Clock: clock})
        assert root.get(Clock) is clock
        assert Clock in root

    def test_missing_key_raises(self) -> None:
        """Test that an unbound key raises InjectionError."""
        root = create_root({})
        with pytest.raises(InjectionError, match="No binding for Clock"):
            root.get(Clock)

    def test_find_default(self) -> None:
        """Test find returns the default for unbound keys."""
        root = create_root({})
        assert root.find(Clock) is None
        assert root.find(Clock, "fallback") == "fallback"

    def test_child_delegates_to_parent(self) -> None:
        """Test that a child sees its parent's bindings."""
        clock = Clock()
        root = create_root({Clock: clock})
        child = root.create_child(lambda binder: binder.bind(Store, Store()))

        assert child.get(Clock) is clock
        assert isinstance(child.get(Store), Store)
        assert child.parent is root

    def test_parent_does_not_see_child(self) -> None:
        """Test that bindings do not leak upwards."""
        root = create_root({})
        root.create_child(lambda binder: binder.bind(Store, Store()))
        assert Store not in root

    def test_child_shadows_parent(self) -> None:
        """Test that a child binding wins over the parent's."""
        root = create_root({Store: Store("root")})
        child = root.create_child(lambda binder: binder.bind(Store, Store("child")))
        assert child.get(Store).name == "child"
        assert root.get(Store).name == "root"

    def test_last_write_wins(self) -> None:
        """Test that a later binding for the same key overrides."""

        def configure(binder: Binder) -> None:
            binder.bind(Store, Store("base"))
            binder.bind(Store, Store("derived"))

        child = create_root({}).create_child(configure)
        assert child.get(Store).name == "derived"

    def test_provider_called_per_lookup(self) -> None:
        """Test that provider bindings create a value per lookup."""
        child = create_root({}).create_child(lambda binder: binder.bind_provider(Store, Store))
        assert child.get(Store) is not child.get(Store)

    def test_configure_called_once(self) -> None:
        """Test that the configure callback runs exactly once."""
        seen: list[Binder] = []
        create_root({}).create_child(seen.append)
        assert len(seen) == 1


class TestInjectMembers:
    """Tests for Scope.inject_members."""

    def test_injects_by_annotation(self) -> None:
        """Test that inject() attributes are set from their annotation."""
        clock, store = Clock(), Store()
        scope = create_root({Clock: clock, Store: store})

        consumer = scope.inject_members(Consumer())

        assert consumer.clock is clock
        assert consumer.store is store

    def test_uninjected_attribute_raises(self) -> None:
        """Test that reading an attribute before injection fails clearly."""
        with pytest.raises(AttributeError, match="has not been injected"):
            _ = Consumer().clock

    def test_missing_binding_raises(self) -> None:
        """Test that a required binding must exist."""
        scope = create_root({Clock: Clock()})
        with pytest.raises(InjectionError, match="Consumer.store"):
            scope.inject_members(Consumer())

    def test_optional_binding(self) -> None:
        """Test that optional injection sets None when unbound."""
        consumer = create_root({}).inject_members(OptionalConsumer())
        assert consumer.store is None

    def test_optional_annotation_unwrapped(self) -> None:
        """Test that X | None annotations resolve to X."""
        store = Store()
        consumer = create_root({Store: store}).inject_members(OptionalConsumer())
        assert consumer.store is store

    def test_explicit_key(self) -> None:
        """Test injection by an explicit, non-type key."""
        scope = create_root({"database.url": "sqlite://"})
        assert scope.inject_members(NamedConsumer()).url == "sqlite://"

    def test_inherited_injection_points(self) -> None:
        """Test that base-class inject() attributes are injected too."""
        clock = Clock()
        scope = create_root({Clock: clock, Store: Store()})
        consumer = scope.inject_members(DerivedConsumer())
        assert consumer.clock is clock
        assert consumer.extra is clock

    def test_subclass_can_hide_injection_point(self) -> None:
        """Test that a plain attribute in a subclass disables injection."""
        scope = create_root({Clock: Clock()})
        consumer = scope.inject_members(HidingConsumer())
        assert consumer.store is None

    def test_child_scope_injection_sees_parent(self) -> None:
        """Test injecting from a child scope with parent bindings."""
        clock = Clock()
        child = create_root({Clock: clock}).create_child(
            lambda binder: binder.bind(Store, Store("child"))
        )
        consumer = child.inject_members(Consumer())
        assert consumer.clock is clock
        assert consumer.store.name == "child"

    def test_scope_repr(self) -> None:
        """Test the scope representation names the chain."""
        child = Scope({}, parent=Scope({}, name="root"), name="features")
        assert "features" in repr(child)
        assert "root" in repr(child)
