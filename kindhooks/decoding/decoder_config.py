from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from kindhooks.registry import DEFAULT_REGISTRY, InterfaceRegistry
from .hooks import (
    DecodeElementsHook,
    Hook,
    string_to_timedelta_hook,
    string_unmarshaller_hook,
)


@dataclass
class DecoderConfig:
    """Settings of a :class:`~kindhooks.decoding.decoder.Decoder`.

    ``hooks`` run in order on every value before the structural conversion.
    ``error_unused`` rejects mapping keys that match no dataclass field;
    payloads of registered kinds are checked regardless. ``weakly_typed_input``
    lets strings, numbers and booleans convert into one another.
    """

    hooks: List[Hook] = field(default_factory=list)
    error_unused: bool = True
    weakly_typed_input: bool = False
    registry: Optional[InterfaceRegistry] = None


def default_decoder_config(registry: Optional[InterfaceRegistry] = None) -> DecoderConfig:
    """Config with duration, kind and ``unmarshal_string`` support."""
    registry = registry if registry is not None else DEFAULT_REGISTRY
    return DecoderConfig(
        hooks=[
            string_to_timedelta_hook,
            DecodeElementsHook(registry),
            string_unmarshaller_hook,
        ],
        error_unused=True,
        weakly_typed_input=False,
        registry=registry,
    )
