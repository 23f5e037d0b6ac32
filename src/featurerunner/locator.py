"""Lookup of resource files that live next to a test class."""

import inspect
from pathlib import Path

from featurerunner.utils.logging import get_logger

log = get_logger(__name__)


class ResourceLocator:
    """
    Finds test resources relative to the module defining a test class.

    Falls back to a configured resources root when the file is not next to the
    test module.
    """

    def __init__(self, test_class: type, resources_root: Path | None = None) -> None:
        """
        Initialize resource locator.

        Args:
            test_class: Class whose module directory is the base path.
            resources_root: Optional fallback directory.
        """
        self.test_class = test_class
        self.resources_root = resources_root
        self._basepath = self._find_basepath(test_class)

    @staticmethod
    def _find_basepath(test_class: type) -> Path:
        try:
            source = inspect.getsourcefile(test_class)
        except TypeError:
            # builtins and classes created in __main__ without a file
            source = None
        if source is None:
            return Path.cwd()
        return Path(source).resolve().parent

    @property
    def basepath(self) -> Path:
        """Directory of the test class's module."""
        return self._basepath

    def get_target_test_resource(self, name: str) -> Path | None:
        """
        Resolve a resource by relative name.

        Args:
            name: Path relative to the test module directory or resources root.

        Returns:
            Existing path, or None if not found.
        """
        candidates = [self._basepath / name]
        if self.resources_root is not None:
            candidates.append(self.resources_root / name)
        for candidate in candidates:
            if candidate.exists():
                return candidate
        log.debug("Resource not found", name=name, searched=[str(c) for c in candidates])
        return None
