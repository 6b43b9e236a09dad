"""Import plugin packages so their kind registrations run."""

from __future__ import annotations

import logging
from importlib import import_module
from pkgutil import walk_packages
from types import ModuleType
from typing import Dict, List

__all__ = ["import_submodules"]

logger = logging.getLogger(__name__)


def _is_private(module_name: str) -> bool:
    return any(part.startswith("_") for part in module_name.split("."))


def import_submodules(*package_names: str, include_private: bool = False) -> List[ModuleType]:
    """Import each named package and every module below it.

    Kinds usually register themselves with :func:`register_kind` at import
    time, so a package of plugin modules only has to be imported once during
    setup, before the first decode. Modules with a leading underscore in their
    name are skipped unless ``include_private`` is set. Each module appears
    once in the result, packages before their children.
    """
    loaded: Dict[str, ModuleType] = {}

    for package_name in package_names:
        package = import_module(package_name)
        loaded.setdefault(package.__name__, package)
        search_path = getattr(package, "__path__", None)
        if search_path is None:
            continue
        for info in walk_packages(search_path, package.__name__ + "."):
            if info.name in loaded:
                continue
            if not include_private and _is_private(info.name[len(package.__name__) + 1:]):
                logger.debug("Skipping private plugin module %s", info.name)
                continue
            logger.debug("Importing plugin module %s", info.name)
            loaded[info.name] = import_module(info.name)

    return list(loaded.values())
