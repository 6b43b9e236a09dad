"""Decode hooks.

A hook is called by the :class:`~kindhooks.decoding.decoder.Decoder` for every
value it converts, with the type of the source data, the target annotation and
the data itself. It returns either the data unchanged or a replacement that
the decoder then continues with.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from datetime import timedelta
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Optional,
    Protocol,
    Tuple,
    get_origin,
    runtime_checkable,
)

from kindhooks.errors import DiscriminatorNotFoundError, UnknownKindError
from kindhooks.registry import InterfaceRegistry
from .durations import parse_duration

if TYPE_CHECKING:  # pragma: no cover
    from .decoder import Decoder

logger = logging.getLogger(__name__)

Hook = Callable[[type, Any, Any], Any]


def compose_hooks(*hooks: Hook) -> Hook:
    """Chain ``hooks``; each one receives the output of the previous one."""

    def composed(source_type: type, target_type: Any, data: Any) -> Any:
        for hook in hooks:
            data = hook(source_type, target_type, data)
            source_type = type(data)
        return data

    return composed


def extract_from_map(key: str, data: Any) -> Optional[Tuple[str, Dict[Any, Any]]]:
    """Split a mapping into its kind and the remaining payload.

    Returns ``None`` when ``data`` is not a mapping. The payload is a new
    dict; ``data`` is left untouched. Raises
    :class:`DiscriminatorNotFoundError` when ``key`` is absent or does not
    hold a string.
    """
    if not isinstance(data, Mapping):
        return None

    payload = {k: v for k, v in data.items() if k != key}
    if key not in data:
        raise DiscriminatorNotFoundError(key)
    kind = data[key]
    if not isinstance(kind, str):
        raise DiscriminatorNotFoundError(
            key, f"expected a string, got {type(kind).__name__}"
        )
    return kind, payload


class DecodeElementsHook:
    """Turns mappings into registered kinds at interface-typed sites.

    The kind is read from the interface's kind key, the matching factory
    creates a fresh instance and the rest of the mapping is decoded into it.
    Payloads are always decoded with unused-field checking enabled.
    """

    def __init__(self, registry: InterfaceRegistry, decoder: Optional["Decoder"] = None):
        self.registry = registry
        self.decoder = decoder
        self._payload_decoder: Optional["Decoder"] = None

    def bind(self, decoder: "Decoder") -> "DecodeElementsHook":
        return DecodeElementsHook(self.registry, decoder)

    def payload_decoder(self) -> "Decoder":
        if self._payload_decoder is None:
            from .decoder import Decoder
            from .decoder_config import default_decoder_config

            if self.decoder is None:
                self._payload_decoder = Decoder(default_decoder_config(self.registry))
            elif self.decoder.config.error_unused:
                self._payload_decoder = self.decoder
            else:
                self._payload_decoder = Decoder(
                    replace(self.decoder.config, error_unused=True)
                )
        return self._payload_decoder

    def __call__(self, source_type: type, target_type: Any, data: Any) -> Any:
        descriptor = self.registry.lookup(target_type)
        if descriptor is None:
            return data

        extracted = extract_from_map(descriptor.kind_key, data)
        if extracted is None:
            return data
        kind, payload = extracted
        if not kind:
            raise DiscriminatorNotFoundError(descriptor.kind_key, "empty kind")

        factory = descriptor.factory_for(kind)
        if factory is None:
            raise UnknownKindError(kind, target_type)

        instance = factory()
        logger.debug(
            "Decoding kind '%s' as %s", kind, type(instance).__qualname__
        )
        return self.payload_decoder().populate(payload, instance)


@runtime_checkable
class StringUnmarshaller(Protocol):
    """Types that build themselves from a plain string."""

    def unmarshal_string(self, text: str) -> Any:
        ...


def string_unmarshaller_hook(source_type: type, target_type: Any, data: Any) -> Any:
    """Convert strings through the target's ``unmarshal_string``."""
    if not issubclass(source_type, str):
        return data
    if not isinstance(target_type, type) or get_origin(target_type) is not None:
        return data
    if not issubclass(target_type, StringUnmarshaller):
        return data
    return target_type().unmarshal_string(data)


def string_to_timedelta_hook(source_type: type, target_type: Any, data: Any) -> Any:
    """Convert duration strings into :class:`datetime.timedelta`."""
    if not issubclass(source_type, str) or target_type is not timedelta:
        return data
    return parse_duration(data)
