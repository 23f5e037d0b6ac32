"""Live feature instances for one class run."""

from typing import TypeVar

from featurerunner.exceptions import InstantiationError
from featurerunner.feature import RunnerFeature
from featurerunner.graph import FeatureGraph
from featurerunner.utils.logging import get_logger

log = get_logger(__name__)

F = TypeVar("F", bound=RunnerFeature)


class FeatureRegistry:
    """
    Holds one instance per resolved feature identity, in graph order.

    Lookup is by exact type: a base class that was not itself resolved is
    never matched by one of its subclasses.
    """

    def __init__(self) -> None:
        self._instances: dict[type[RunnerFeature], RunnerFeature] = {}

    def instantiate(self, graph: FeatureGraph) -> dict[type[RunnerFeature], RunnerFeature]:
        """
        Construct every feature of the graph, in order.

        The registry is only populated once every feature was constructed.

        Args:
            graph: Resolved feature graph.

        Returns:
            Mapping of identity to instance, in graph order.

        Raises:
            InstantiationError: If any feature fails to construct.
        """
        instances: dict[type[RunnerFeature], RunnerFeature] = {}
        for identity in graph:
            if identity in instances:
                continue
            try:
                instance = identity.construct()
            except Exception as e:
                log.error(
                    "Feature instantiation failed",
                    feature=identity.__qualname__,
                    error=f"{type(e).__name__}: {e!s}",
                )
                raise InstantiationError(identity) from e
            if type(instance) is not identity:
                msg = f"{identity.__qualname__}.construct() returned {type(instance).__qualname__}"
                raise InstantiationError(identity) from TypeError(msg)
            instances[identity] = instance
            log.debug("Instantiated feature", feature=identity.__qualname__)

        self._instances = instances
        return dict(instances)

    def lookup(self, identity: type[F]) -> F | None:
        """Instance of exactly this type, or None."""
        instance = self._instances.get(identity)
        return instance  # type: ignore[return-value]

    @property
    def features(self) -> list[RunnerFeature]:
        """Live instances in graph order."""
        return list(self._instances.values())

    def clear(self) -> None:
        """Drop every instance."""
        self._instances.clear()

    def __len__(self) -> int:
        return len(self._instances)

    def __contains__(self, identity: object) -> bool:
        return identity in self._instances
