"""Registry mapping interfaces to their discriminator key and kinds.

Typical setup code registers every interface once and then the kinds that
implement it::

    register_interface(Plugin, "kind")
    register(Plugin, "file", FileConfig)

    @register_kind(Plugin, "gelf")
    @dataclass
    class GelfConfig(Plugin):
        url: str = ""

Registration must finish before the first decode: decoding seals the
registry and any later registration raises :class:`RegistrationError`.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from kindhooks.errors import RegistrationError
from .interface import Factory, InterfaceDescriptor

logger = logging.getLogger(__name__)


def _type_name(interface: Any) -> str:
    return getattr(interface, "__qualname__", repr(interface))


class InterfaceRegistry:
    """Dispatch table from interface type to :class:`InterfaceDescriptor`."""

    def __init__(self) -> None:
        self._interfaces: Dict[Any, InterfaceDescriptor] = {}
        self._sealed = False

    def __contains__(self, interface: Any) -> bool:
        return self.lookup(interface) is not None

    def __len__(self) -> int:
        return len(self._interfaces)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        """Close the registry for writes. Lookups keep working."""
        self._sealed = True

    def reset(self) -> None:
        """Drop every descriptor and reopen the registry."""
        self._interfaces = {}
        self._sealed = False

    def _check_open(self) -> None:
        if self._sealed:
            raise RegistrationError(
                "registry is sealed; register interfaces and kinds before decoding"
            )

    def register_interface(self, interface: Any, kind_key: str) -> InterfaceDescriptor:
        """Register ``interface`` with the field name holding its kind.

        Must be called once per interface.
        """
        self._check_open()
        if not kind_key:
            raise RegistrationError(
                f"empty kind key for interface {_type_name(interface)}"
            )
        if interface in self._interfaces:
            raise RegistrationError(
                f"interface already registered: {_type_name(interface)}"
            )
        descriptor = InterfaceDescriptor(interface=interface, kind_key=kind_key)
        self._interfaces[interface] = descriptor
        logger.debug(
            "Registered interface %s with kind key '%s'",
            _type_name(interface),
            kind_key,
        )
        return descriptor

    def register(self, interface: Any, kind: str, factory: Factory) -> None:
        """Register the factory creating instances of ``kind``.

        A later registration for the same kind replaces the earlier one.
        """
        self._check_open()
        descriptor = self.lookup(interface)
        if descriptor is None:
            raise RegistrationError(
                f"interface not registered: {_type_name(interface)}"
            )
        if not kind:
            raise RegistrationError(
                f"empty kind for interface {_type_name(interface)}"
            )
        if not callable(factory):
            raise RegistrationError(
                f"factory for kind '{kind}' is not callable: {factory!r}"
            )
        if kind in descriptor.factories:
            logger.debug(
                "Replacing factory for kind '%s' of %s", kind, _type_name(interface)
            )
        descriptor.factories[kind] = factory
        logger.debug("Registered kind '%s' for %s", kind, _type_name(interface))

    def register_kind(self, interface: Any, kind: str) -> Callable[[type], type]:
        """Class decorator registering the decorated class as ``kind``."""

        def decorator(cls: type) -> type:
            self.register(interface, kind, cls)
            return cls

        return decorator

    def lookup(self, target_type: Any) -> Optional[InterfaceDescriptor]:
        try:
            return self._interfaces.get(target_type)
        except TypeError:  # unhashable annotation
            return None


DEFAULT_REGISTRY = InterfaceRegistry()


def register_interface(interface: Any, kind_key: str) -> InterfaceDescriptor:
    """Register ``interface`` on the default registry."""
    return DEFAULT_REGISTRY.register_interface(interface, kind_key)


def register(interface: Any, kind: str, factory: Factory) -> None:
    """Register a kind factory on the default registry."""
    DEFAULT_REGISTRY.register(interface, kind, factory)


def register_kind(interface: Any, kind: str) -> Callable[[type], type]:
    """Class decorator registering a kind on the default registry."""
    return DEFAULT_REGISTRY.register_kind(interface, kind)


def is_registered(interface: Any) -> bool:
    return interface in DEFAULT_REGISTRY


def reset_registry() -> None:
    """Reset the default registry. It is intended mainly for testing."""
    DEFAULT_REGISTRY.reset()
