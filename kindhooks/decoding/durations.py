"""Parsing of duration strings such as ``10ms``, ``1h30m`` or ``-1.5s``."""

from __future__ import annotations

import re
from datetime import timedelta
from decimal import Decimal

from kindhooks.errors import InvalidDurationError

# microseconds per unit
UNITS = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "µs": Decimal(1),  # U+00B5 micro sign
    "μs": Decimal(1),  # U+03BC greek mu
    "ms": Decimal(1000),
    "s": Decimal(1000000),
    "m": Decimal(60000000),
    "h": Decimal(3600000000),
}

_NUMBER = r"(?:\d+\.?\d*|\.\d+)"
_UNIT = "|".join(sorted((re.escape(u) for u in UNITS), key=len, reverse=True))
_PART = re.compile(rf"({_NUMBER})({_UNIT})")
_DURATION = re.compile(rf"[-+]?(?:{_NUMBER}(?:{_UNIT}))+")
_UNITLESS = re.compile(rf"[-+]?{_NUMBER}")


def parse_duration(text: str) -> timedelta:
    """Parse a signed sequence of decimal numbers, each with a unit suffix.

    Valid units are ``ns``, ``us`` (or ``µs``), ``ms``, ``s``, ``m`` and
    ``h``. ``"0"`` is accepted without a unit. Precision below one
    microsecond is truncated.
    """
    if not isinstance(text, str):
        raise InvalidDurationError(repr(text), "not a string")
    if text in ("0", "+0", "-0"):
        return timedelta(0)
    if not _DURATION.fullmatch(text):
        if _UNITLESS.fullmatch(text):
            raise InvalidDurationError(text, "missing unit")
        raise InvalidDurationError(text)

    total = Decimal(0)
    for number, unit in _PART.findall(text):
        total += Decimal(number) * UNITS[unit]

    micros = int(total)
    if text.startswith("-"):
        micros = -micros
    try:
        return timedelta(microseconds=micros)
    except OverflowError:
        raise InvalidDurationError(text, "out of range") from None
