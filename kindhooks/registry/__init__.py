"""Public API for the interface registry."""

from .interface import Factory, InterfaceDescriptor
from .interface_registry import (
    DEFAULT_REGISTRY,
    InterfaceRegistry,
    is_registered,
    register,
    register_interface,
    register_kind,
    reset_registry,
)
from .plugin_loader import import_submodules

__all__ = [
    "DEFAULT_REGISTRY",
    "Factory",
    "InterfaceDescriptor",
    "InterfaceRegistry",
    "import_submodules",
    "is_registered",
    "register",
    "register_interface",
    "register_kind",
    "reset_registry",
]
