"""Decode configuration trees into typed dataclasses, choosing the concrete
class of interface-typed fields from a kind field inside the data.

The main functions are:

* :func:`register_interface`: call once per interface type
* :func:`register` / :func:`register_kind`: register the kinds of an interface
* :func:`decode`: decode a parsed document

Everything else is for advanced uses.
"""

from kindhooks.errors import (
    DecodeError,
    DiscriminatorNotFoundError,
    InvalidDurationError,
    KindHooksError,
    MissingFieldError,
    RegistrationError,
    UnknownKindError,
    UnusedFieldsError,
)
from kindhooks.registry import (
    DEFAULT_REGISTRY,
    InterfaceDescriptor,
    InterfaceRegistry,
    import_submodules,
    is_registered,
    register,
    register_interface,
    register_kind,
    reset_registry,
)
from kindhooks.decoding import (
    DecodeElementsHook,
    Decoder,
    DecoderConfig,
    Hook,
    StringUnmarshaller,
    compose_hooks,
    decode,
    default_decoder_config,
    extract_from_map,
    parse_duration,
    string_to_timedelta_hook,
    string_unmarshaller_hook,
)
from kindhooks.loader import decode_file, decode_yaml

__all__ = [
    "DEFAULT_REGISTRY",
    "DecodeElementsHook",
    "DecodeError",
    "Decoder",
    "DecoderConfig",
    "DiscriminatorNotFoundError",
    "Hook",
    "InterfaceDescriptor",
    "InterfaceRegistry",
    "InvalidDurationError",
    "KindHooksError",
    "MissingFieldError",
    "RegistrationError",
    "StringUnmarshaller",
    "UnknownKindError",
    "UnusedFieldsError",
    "compose_hooks",
    "decode",
    "decode_file",
    "decode_yaml",
    "default_decoder_config",
    "extract_from_map",
    "import_submodules",
    "is_registered",
    "parse_duration",
    "register",
    "register_interface",
    "register_kind",
    "reset_registry",
    "string_to_timedelta_hook",
    "string_unmarshaller_hook",
]
