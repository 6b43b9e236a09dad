"""Exception hierarchy for registration and decoding."""

from __future__ import annotations

from typing import Any, Iterable, Optional


class KindHooksError(Exception):
    """Base class of every error raised by this package."""


class RegistrationError(KindHooksError, RuntimeError):
    """Raised when the registry is wired incorrectly.

    These are programming errors: callers are expected to let them abort
    startup rather than recover.
    """


class DecodeError(KindHooksError, ValueError):
    """Raised when the input tree cannot be decoded into the target."""

    def __init__(self, message: str, path: str = ""):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class DiscriminatorNotFoundError(DecodeError):
    def __init__(self, key: str, reason: Optional[str] = None, path: str = ""):
        self.key = key
        message = f"no kind with key '{key}' found"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, path)


class UnknownKindError(DecodeError):
    def __init__(self, kind: str, interface: Any, path: str = ""):
        self.kind = kind
        self.interface = interface
        name = getattr(interface, "__qualname__", repr(interface))
        super().__init__(f"no registered kind '{kind}' for type {name}", path)


class UnusedFieldsError(DecodeError):
    def __init__(self, keys: Iterable[Any], target: Any, path: str = ""):
        self.keys = sorted(str(k) for k in keys)
        name = getattr(target, "__qualname__", repr(target))
        super().__init__(
            f"{name} has invalid keys: {', '.join(self.keys)}", path
        )


class MissingFieldError(DecodeError):
    def __init__(self, field: str, target: Any, path: str = ""):
        self.field = field
        name = getattr(target, "__qualname__", repr(target))
        super().__init__(f"missing required field '{field}' for {name}", path)


class InvalidDurationError(DecodeError):
    def __init__(self, text: str, reason: Optional[str] = None):
        self.text = text
        message = f"invalid duration {text!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
