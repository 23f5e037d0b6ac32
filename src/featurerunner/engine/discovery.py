"""Locating test classes from command-line targets."""

import importlib
import importlib.util
import inspect
import sys
from pathlib import Path
from types import ModuleType

from featurerunner.config.settings import RunnerSettings
from featurerunner.feature import RunnerFeature

# File targets are imported under this prefix so they never shadow real modules
_FILE_MODULE_PREFIX = "featurerunner_target_"


def _import_module(name: str) -> ModuleType:
    path = Path(name)
    if path.suffix == ".py":
        if not path.exists():
            msg = f"No such file: {path}"
            raise FileNotFoundError(msg)
        module_name = f"{_FILE_MODULE_PREFIX}{path.stem}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            msg = f"Cannot import {path}"
            raise ImportError(msg)
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise
        return module
    return importlib.import_module(name)


def find_test_methods(cls: type, prefix: str) -> list[str]:
    """
    Names of the test methods of cls, in definition order (base classes first).

    Lifecycle hooks of RunnerFeature never count, even when they match the
    prefix.
    """
    names: dict[str, None] = {}
    for klass in reversed(cls.__mro__):
        for name, value in vars(klass).items():
            if name in vars(RunnerFeature):
                continue
            if name.startswith(prefix) and inspect.isfunction(value):
                names[name] = None
    return list(names)


def has_test_methods(cls: type, prefix: str) -> bool:
    """Whether cls is a test class: not a feature, with at least one test method."""
    if issubclass(cls, RunnerFeature):
        return False
    return bool(find_test_methods(cls, prefix))


def load_test_classes(target: str, settings: RunnerSettings | None = None) -> list[type]:
    """
    Resolve a target to test classes.

    Args:
        target: ``module:Class``, ``module``, ``path/to/file.py`` or
            ``path/to/file.py:Class``. Without a class name, every class
            defined in the module that has test methods is returned, in
            definition order.
        settings: Supplies the test method prefix.

    Returns:
        Test classes to run.

    Raises:
        ImportError: If the module cannot be imported.
        LookupError: If the named class does not exist.
    """
    settings = settings or RunnerSettings()
    module_name, _, class_name = target.partition(":")
    module = _import_module(module_name)

    if class_name:
        cls = module
        for part in class_name.split("."):
            cls = getattr(cls, part, None)
            if cls is None:
                msg = f"{module_name} has no class {class_name}"
                raise LookupError(msg)
        if not isinstance(cls, type):
            msg = f"{target} is not a class"
            raise LookupError(msg)
        return [cls]

    return [
        value
        for value in vars(module).values()
        if isinstance(value, type)
        and value.__module__ == module.__name__
        and has_test_methods(value, settings.test_method_prefix)
    ]
