"""Public API for decoding trees into typed values."""

from .decoder import Decoder, decode
from .decoder_config import DecoderConfig, default_decoder_config
from .durations import parse_duration
from .hooks import (
    DecodeElementsHook,
    Hook,
    StringUnmarshaller,
    compose_hooks,
    extract_from_map,
    string_to_timedelta_hook,
    string_unmarshaller_hook,
)

__all__ = [
    "DecodeElementsHook",
    "Decoder",
    "DecoderConfig",
    "Hook",
    "StringUnmarshaller",
    "compose_hooks",
    "decode",
    "default_decoder_config",
    "extract_from_map",
    "parse_duration",
    "string_to_timedelta_hook",
    "string_unmarshaller_hook",
]
