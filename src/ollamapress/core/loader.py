# src/core/loader.py
"""
Extension loading

Extensions are plain callables taking the registry, referenced either by an
import string in ``OLLAMAPRESS_EXTENSION_MODULES`` or by an entry point in the
``ollamapress.extensions`` group of an installed distribution.
"""
from importlib import import_module
from importlib.metadata import entry_points
from typing import Any, Callable, List

import structlog

from ..gateway.exceptions import ServiceConfigurationError
from .registry import ServiceRegistry

logger = structlog.get_logger()

ENTRY_POINT_GROUP = "ollamapress.extensions"


def import_callable(path: str) -> Callable[..., Any]:
    """Resolve ``package.module:function``"""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ServiceConfigurationError(f"Extension '{path}' must look like 'package.module:function'")
    try:
        module = import_module(module_name)
    except ImportError as e:
        raise ServiceConfigurationError(f"Cannot import extension module '{module_name}': {e}") from e
    target = getattr(module, attr, None)
    if not callable(target):
        raise ServiceConfigurationError(f"Extension '{path}' is not callable")
    return target


def load_extensions(registry: ServiceRegistry, import_paths: List[str], use_entry_points: bool = True) -> List[str]:
    """Run every configured extension setup function against ``registry``

    Returns the names of the setups that ran.
    """
    loaded = []
    for path in import_paths:
        import_callable(path)(registry)
        loaded.append(path)

    if use_entry_points:
        for entry_point in entry_points(group=ENTRY_POINT_GROUP):
            entry_point.load()(registry)
            loaded.append(entry_point.name)

    if loaded:
        logger.info("Extensions loaded", extensions=loaded, services=len(registry.list()))
    return loaded
