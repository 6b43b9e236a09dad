from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict

Factory = Callable[[], Any]


@dataclass
class InterfaceDescriptor:
    """Discriminator key and kind factories registered for one interface."""

    interface: Any
    kind_key: str
    factories: Dict[str, Factory] = field(default_factory=dict)

    def factory_for(self, kind: str) -> Factory | None:
        return self.factories.get(kind)
