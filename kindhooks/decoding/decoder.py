"""Structural decoder turning generic trees into typed values.

Dataclasses are built with ``dataclasses_json`` (``from_dict``), which also
walks container fields such as ``List[Server]`` or ``Dict[str, Plugin]``.
The decoder adds the parts ``from_dict`` does not do by itself:

* every class reachable from the target annotation is entered in
  ``dataclasses_json.cfg.global_config.decoders`` while a decode runs, so the
  values ``from_dict`` meets are handed back here and go through the
  configured hooks first (registered kinds, durations, ``unmarshal_string``
  types);
* case-insensitive field matching and unused-field errors;
* strict scalars, or weak conversion when enabled, plus enums by member name
  and literals;
* population of an existing instance, with dict fields merged over what they
  already hold (a factory's defaults survive);
* dotted paths on errors.

Config classes that are already annotated for JSON round trips decode the
same way::

    @dataclass_json
    @dataclass
    class ServerConfig:
        home_dir: Path = field(
            default=None,
            metadata=config(field_name="homeDir", decoder=decode_path),
        )
"""

from __future__ import annotations

import collections.abc
import types
from contextlib import contextmanager
from dataclasses import MISSING, Field, fields, is_dataclass, make_dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from pathlib import PurePath
from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Literal,
    Optional,
    Tuple,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)
from uuid import UUID

from dataclasses_json import DataClassJsonMixin, Undefined
from dataclasses_json.cfg import global_config

from kindhooks.errors import DecodeError, MissingFieldError, UnusedFieldsError
from kindhooks.registry import InterfaceRegistry
from .decoder_config import DecoderConfig, default_decoder_config
from .hooks import DecodeElementsHook, compose_hooks

_MISSING = object()

_MAPPING_TYPES = (dict, collections.abc.Mapping, collections.abc.MutableMapping)
_SEQUENCE_TYPES = (
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
)

# converted by dataclasses_json itself
_NATIVE_TYPES = (datetime, Decimal, UUID)

_TRUE_STRINGS = {"1", "t", "true", "y", "yes", "on"}
_FALSE_STRINGS = {"0", "f", "false", "n", "no", "off", ""}


def _type_name(target: Any) -> str:
    if isinstance(target, type):
        return target.__qualname__
    return repr(target).replace("typing.", "")


def _join(path: str, key: Any) -> str:
    return f"{path}.{key}" if path else str(key)


def _is_union(target: Any) -> bool:
    origin = get_origin(target)
    return origin is Union or origin is types.UnionType


def _accepts_none(target: Any) -> bool:
    if target is Any or target is object or target is type(None) or target is None:
        return True
    if _is_union(target):
        return type(None) in get_args(target)
    return False


def _optional_member(target: Any) -> Any:
    """``X`` for ``Optional[X]``, ``None`` for anything else."""
    if not _is_union(target):
        return None
    members = [m for m in get_args(target) if m is not type(None)]
    if len(members) == 1 and len(get_args(target)) == 2:
        return members[0]
    return None


def _is_leaf(target: Any) -> bool:
    """Whether ``target`` is converted here rather than walked by dataclasses_json."""
    if target is Any or target is object or isinstance(target, TypeVar):
        return False
    origin = get_origin(target)
    if origin is not None:
        return origin is Literal
    return target not in _MAPPING_TYPES and target not in _SEQUENCE_TYPES


def _is_mapping(target: Any) -> bool:
    target = _optional_member(target) or target
    return (get_origin(target) or target) in _MAPPING_TYPES


def _json_config(cls: type) -> Dict[str, Any]:
    return getattr(cls, "dataclass_json_config", None) or {}


def _field_metadata(f: Field) -> Dict[str, Any]:
    return f.metadata.get("dataclasses_json", {})


def _field_default(f: Field) -> Any:
    if f.default is not MISSING:
        return f.default
    if f.default_factory is not MISSING:
        return f.default_factory()
    return _MISSING


@lru_cache(maxsize=None)
def _struct_fields(cls: type) -> Tuple[Tuple[str, Field, Any], ...]:
    """(input key, field, resolved annotation) for every field of ``cls``."""
    hints = get_type_hints(cls)
    class_case = _json_config(cls).get("letter_case")
    result = []
    for f in fields(cls):
        letter_case = _field_metadata(f).get("letter_case") or class_case
        key = letter_case(f.name) if letter_case else f.name
        result.append((key, f, hints.get(f.name, Any)))
    return tuple(result)


@lru_cache(maxsize=None)
def _holder(target: Any) -> type:
    """One-field dataclass that lets ``from_dict`` decode a bare annotation."""
    return make_dataclass("Holder", [("value", target)])


def _collect_leaf_types(target: Any, found: Dict[Any, None]) -> None:
    if target is type(None) or target is Ellipsis:
        return
    try:
        if target in found:
            return
    except TypeError:
        return
    if not _is_leaf(target):
        for arg in get_args(target):
            _collect_leaf_types(arg, found)
        return
    if isinstance(target, type) and issubclass(target, _NATIVE_TYPES):
        return
    found[target] = None
    if hasattr(target, "__supertype__"):
        _collect_leaf_types(target.__supertype__, found)
    elif isinstance(target, type) and is_dataclass(target):
        for _, _, hint in _struct_fields(target):
            _collect_leaf_types(hint, found)


class _Escalated(Exception):
    """Carries an error raised under ``from_dict`` back out unchanged."""

    def __init__(self, error: Exception):
        super().__init__(error)
        self.error = error


class _LeafDecoder:
    """``global_config.decoders`` entry handing one type back to a Decoder."""

    def __init__(self, decoder: "Decoder", target: Any, previous: Optional[Callable]):
        self.decoder = decoder
        self.target = target
        self.previous = previous

    def __call__(self, value: Any) -> Any:
        try:
            return self.decoder._convert(
                value, self.target, _MISSING, self.decoder._current_path()
            )
        except _Escalated:
            raise
        except Exception as exc:
            # dataclasses_json swallows ValueError while probing unions
            raise _Escalated(exc) from exc


class Decoder:
    """Decode generic trees according to a :class:`DecoderConfig`."""

    def __init__(self, config: Optional[DecoderConfig] = None):
        self.config = config if config is not None else DecoderConfig()
        hooks = [
            hook.bind(self) if hasattr(hook, "bind") else hook
            for hook in self.config.hooks
        ]
        self._hook: Optional[Callable[[type, Any, Any], Any]] = (
            compose_hooks(*hooks) if hooks else None
        )
        self._paths: List[str] = []

    def decode(self, data: Any, target: Any) -> Any:
        """Decode ``data`` into ``target``.

        ``target`` is either a dataclass instance, which is populated in place
        and returned, or an annotation such as ``MyConfig`` or
        ``dict[str, Plugin]``, in which case a new value is returned.
        """
        if is_dataclass(target) and not isinstance(target, type):
            with self._routed_through(type(target)):
                return self._convert(data, type(target), target)
        with self._routed_through(target):
            return self._decode_field(data, target, _MISSING, "")

    def populate(self, data: Any, instance: Any, path: str = "") -> Any:
        """Decode the mapping ``data`` into the dataclass ``instance``.

        Unlike :meth:`decode`, the hooks do not see ``data`` itself, only the
        field values inside it.
        """
        cls = type(instance)
        if not is_dataclass(cls):
            raise DecodeError(f"{cls.__qualname__} is not a dataclass", path)
        with self._routed_through(cls):
            return self._build(cls, data, instance, path)

    @contextmanager
    def _routed_through(self, target: Any) -> Iterator[None]:
        found: Dict[Any, None] = {}
        _collect_leaf_types(target, found)
        decoders = global_config.decoders
        saved = []
        for leaf in found:
            previous = decoders.get(leaf, _MISSING)
            saved.append((leaf, previous))
            if isinstance(previous, _LeafDecoder):
                fallback = previous.previous
            else:
                fallback = None if previous is _MISSING else previous
            decoders[leaf] = _LeafDecoder(self, leaf, fallback)
        try:
            yield
        finally:
            for leaf, previous in reversed(saved):
                if previous is _MISSING:
                    decoders.pop(leaf, None)
                else:
                    decoders[leaf] = previous

    def _current_path(self) -> str:
        return self._paths[-1] if self._paths else ""

    def _run_hooks(self, data: Any, target: Any) -> Any:
        if self._hook is None:
            return data
        return self._hook(type(data), target, data)

    def _decode_field(self, data: Any, target: Any, current: Any, path: str) -> Any:
        member = _optional_member(target)
        if member is not None:
            if data is None:
                return None
            return self._decode_field(data, member, current, path)
        if _is_leaf(target):
            return self._convert(data, target, current, path)

        data = self._run_hooks(data, target)
        if target is Any or target is object or isinstance(target, TypeVar):
            return data
        self._check_shape(data, target, path)
        self._paths.append(path)
        try:
            value = self._from_dict(
                _holder(target), {"value": data}, path, _type_name(target)
            ).value
        finally:
            self._paths.pop()

        if isinstance(current, collections.abc.Mapping) and isinstance(
            value, collections.abc.Mapping
        ):
            # decoded entries are merged over what the field already holds
            value = {**current, **value}
        return value

    @staticmethod
    def _check_shape(data: Any, target: Any, path: str) -> None:
        container = get_origin(target) or target
        if container in _MAPPING_TYPES:
            if not isinstance(data, collections.abc.Mapping):
                raise DecodeError(f"expected a mapping, got {type(data).__name__}", path)
        elif container in _SEQUENCE_TYPES:
            if not isinstance(data, (list, tuple, set, frozenset)):
                raise DecodeError(f"expected a sequence, got {type(data).__name__}", path)
            args = get_args(target)
            fixed = container is tuple and args and not (len(args) == 2 and args[1] is Ellipsis)
            if fixed and len(data) != len(args):
                raise DecodeError(f"expected {len(args)} items, got {len(data)}", path)

    @staticmethod
    def _from_dict(
        cls: type, kvs: Dict[str, Any], path: str, name: Optional[str] = None
    ) -> Any:
        try:
            return DataClassJsonMixin.from_dict.__func__(cls, kvs)
        except _Escalated as exc:
            raise exc.error from None
        except (TypeError, ValueError, KeyError, AttributeError) as exc:
            raise DecodeError(
                f"cannot build {name or cls.__qualname__}: {exc}", path
            ) from exc

    def _convert(self, data: Any, target: Any, current: Any = _MISSING, path: str = "") -> Any:
        data = self._run_hooks(data, target)
        if data is None:
            if current is not _MISSING:
                return current
            raise DecodeError(f"expected {_type_name(target)}, got None", path)

        if get_origin(target) is Literal:
            if data in get_args(target):
                return data
            raise DecodeError(f"{data!r} is not one of {get_args(target)!r}", path)
        if hasattr(target, "__supertype__"):  # typing.NewType
            return self._convert(data, target.__supertype__, current, path)
        if not isinstance(target, type):
            raise DecodeError(f"unsupported target type {_type_name(target)}", path)

        if is_dataclass(target):
            if isinstance(data, target):
                return data
            instance = current if isinstance(current, target) else None
            return self._build(target, data, instance, path)
        if issubclass(target, Enum):
            return self._decode_enum(data, target, path)
        if target in (bool, int, float, str, bytes):
            return self._decode_primitive(data, target, path)
        if issubclass(target, _NATIVE_TYPES):
            return data
        try:
            if isinstance(data, target):
                return data
        except TypeError:
            # protocols without @runtime_checkable cannot be verified
            return data
        if issubclass(target, PurePath) and isinstance(data, str):
            return target(data)
        installed = global_config.decoders.get(target)
        fallback = installed.previous if isinstance(installed, _LeafDecoder) else installed
        if fallback is not None:
            return fallback(data)
        raise DecodeError(
            f"cannot decode {type(data).__name__} into {_type_name(target)}", path
        )

    def _build(self, cls: type, data: Any, instance: Any, path: str) -> Any:
        if not isinstance(data, collections.abc.Mapping):
            raise DecodeError(
                f"expected a mapping for {cls.__qualname__}, got {type(data).__name__}",
                path,
            )
        for key in data:
            if not isinstance(key, str):
                raise DecodeError(
                    f"{cls.__qualname__} needs a mapping with string keys, got {key!r}",
                    path,
                )

        struct_fields = _struct_fields(cls)
        by_key = {key: (f, hint) for key, f, hint in struct_fields}
        by_lower_key = {key.lower(): (f, hint) for key, f, hint in struct_fields}

        matched = []
        unused = []
        for key, raw in data.items():
            entry = by_key.get(key) or by_lower_key.get(key.lower())
            if entry is None:
                unused.append(key)
            else:
                matched.append((key, raw) + entry)

        undefined = _json_config(cls).get("undefined")
        # EXCLUDE and INCLUDE classes get unknown keys handled by from_dict
        forward_unused = undefined in (Undefined.EXCLUDE, Undefined.INCLUDE)
        if unused and not forward_unused:
            if undefined is Undefined.RAISE or self.config.error_unused:
                raise UnusedFieldsError(unused, cls, path)

        kvs: Dict[str, Any] = {}
        late: Dict[str, Any] = {}
        for key, raw, f, hint in matched:
            if raw is None and not _accepts_none(hint):
                continue
            if _field_metadata(f).get("decoder") is not None:
                value = raw  # applied by from_dict
            else:
                if instance is not None:
                    existing = getattr(instance, f.name, _MISSING)
                elif _is_mapping(hint):
                    existing = _field_default(f)
                else:
                    existing = _MISSING
                value = self._decode_field(raw, hint, existing, _join(path, key))
            if f.init:
                kvs[f.name] = value
            else:
                late[f.name] = value

        assigned = list(kvs)
        if forward_unused:
            kvs.update((key, data[key]) for key in unused)
        for key, f, _ in struct_fields:
            if f.name in kvs or not f.init:
                continue
            if f.default is MISSING and f.default_factory is MISSING:
                if instance is None:
                    raise MissingFieldError(key, cls, path)
                kvs[f.name] = getattr(instance, f.name)

        built = self._from_dict(cls, kvs, path)
        target = built if instance is None else instance
        if instance is not None:
            for name in assigned:
                setattr(instance, name, getattr(built, name))
        for name, value in late.items():
            setattr(target, name, value)
        return target

    @staticmethod
    def _decode_enum(data: Any, target: type, path: str) -> Enum:
        if isinstance(data, target):
            return data
        try:
            return target(data)
        except ValueError:
            pass
        if isinstance(data, str) and data in target.__members__:
            return target[data]
        raise DecodeError(f"{data!r} is not a valid {target.__qualname__}", path)

    def _decode_primitive(self, data: Any, target: type, path: str) -> Any:
        weak = self.config.weakly_typed_input
        if target is bool:
            if isinstance(data, bool):
                return data
            if weak and isinstance(data, (int, float)):
                return data != 0
            if weak and isinstance(data, str):
                lowered = data.strip().lower()
                if lowered in _TRUE_STRINGS:
                    return True
                if lowered in _FALSE_STRINGS:
                    return False
        elif target is int:
            if isinstance(data, bool):
                if weak:
                    return int(data)
            elif isinstance(data, int):
                return data
            elif isinstance(data, float) and data.is_integer():
                return int(data)
            elif weak and isinstance(data, str):
                try:
                    return int(data.strip(), 0)
                except ValueError:
                    pass
        elif target is float:
            if isinstance(data, bool):
                if weak:
                    return float(data)
            elif isinstance(data, (int, float)):
                return float(data)
            elif weak and isinstance(data, str):
                try:
                    return float(data)
                except ValueError:
                    pass
        elif target is str:
            if isinstance(data, str):
                return data
            if weak and isinstance(data, bool):
                return "1" if data else "0"
            if weak and isinstance(data, (int, float)):
                return str(data)
            if weak and isinstance(data, (bytes, bytearray)):
                return bytes(data).decode("utf-8")
        elif target is bytes:
            if isinstance(data, (bytes, bytearray)):
                return bytes(data)
            if weak and isinstance(data, str):
                return data.encode("utf-8")
        raise DecodeError(
            f"expected {target.__name__}, got {type(data).__name__} {data!r}", path
        )


def decode(
    data: Any,
    target: Any,
    registry: Optional[InterfaceRegistry] = None,
    config: Optional[DecoderConfig] = None,
) -> Any:
    """Decode a parsed configuration tree into ``target``.

    Without ``config`` the default hooks for ``registry`` (the default
    registry when omitted) are used. Every registry the decode can read from
    is sealed: registering after the first decode raises
    :class:`~kindhooks.errors.RegistrationError`.
    """
    if config is None:
        config = default_decoder_config(registry)
    registries = [registry, config.registry]
    registries.extend(
        hook.registry for hook in config.hooks if isinstance(hook, DecodeElementsHook)
    )
    for used_registry in registries:
        if used_registry is not None:
            used_registry.seal()
    return Decoder(config).decode(data, target)
