"""Plugin package whose modules register kinds on import."""

from kindhooks import InterfaceRegistry


class Handler:
    """Interface implemented by the kinds of this package."""


KINDS_REGISTRY = InterfaceRegistry()
KINDS_REGISTRY.register_interface(Handler, "kind")
