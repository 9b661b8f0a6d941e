"""Exact resource quantities such as ``100m``, ``512Mi`` or ``2k``."""

from __future__ import annotations

import enum
import math
import re
from decimal import Decimal
from fractions import Fraction
from functools import total_ordering
from typing import Union


class QuantityError(ValueError):
    """Raised when a quantity string cannot be parsed."""


class Format(enum.Enum):
    """How a quantity is written back out."""

    DECIMAL_SI = "DecimalSI"
    BINARY_SI = "BinarySI"
    DECIMAL_EXPONENT = "DecimalExponent"


_BINARY_BITS = {"Ki": 10, "Mi": 20, "Gi": 30, "Ti": 40, "Pi": 50, "Ei": 60}
_BINARY_SUFFIX = {bits: suffix for suffix, bits in _BINARY_BITS.items()}
_DECIMAL_EXP = {"n": -9, "u": -6, "m": -3, "k": 3, "M": 6, "G": 9, "T": 12, "P": 15, "E": 18}
_DECIMAL_SUFFIX = {exp: suffix for suffix, exp in _DECIMAL_EXP.items()}
_DECIMAL_SUFFIX[0] = ""

_PATTERN = re.compile(
    r"([+-]?)(\d+(?:\.\d*)?|\.\d+)([eE][+-]?\d+|[KMGTPE]i|[numkMGTPE])?"
)

_NANO = 10**9

Number = Union[int, Fraction, Decimal]


def _round_nano(value: Fraction) -> Fraction:
    """Round away from zero to a whole number of nano units."""
    scaled = value * _NANO
    if scaled.denominator == 1:
        return value
    magnitude = math.ceil(abs(scaled))
    return Fraction(magnitude if scaled > 0 else -magnitude, _NANO)


@total_ordering
class Quantity:
    """An exact, immutable amount of a resource with a preferred notation."""

    __slots__ = ("_value", "_format")

    def __init__(self, value: Number = 0, fmt: Format = Format.DECIMAL_SI) -> None:
        self._value = _round_nano(Fraction(value))
        self._format = fmt

    @property
    def value(self) -> Fraction:
        return self._value

    @property
    def format(self) -> Format:
        return self._format

    def sign(self) -> int:
        """Return -1, 0 or 1 according to the sign of the quantity."""
        return (self._value > 0) - (self._value < 0)

    def __add__(self, other: object) -> Quantity:
        if not isinstance(other, Quantity):
            return NotImplemented
        fmt = other._format if self._value == 0 else self._format
        return Quantity(self._value + other._value, fmt)

    def __sub__(self, other: object) -> Quantity:
        if not isinstance(other, Quantity):
            return NotImplemented
        fmt = other._format if self._value == 0 else self._format
        return Quantity(self._value - other._value, fmt)

    def __neg__(self) -> Quantity:
        return Quantity(-self._value, self._format)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self._value == other._value

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self._value < other._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        return f"Quantity({str(self)!r})"

    def __str__(self) -> str:
        value = self._value
        if value == 0:
            return "0"
        sign = "-" if value < 0 else ""
        magnitude = abs(value)
        fmt = self._format
        if fmt is Format.BINARY_SI:
            if magnitude < 1024 or magnitude.denominator != 1:
                fmt = Format.DECIMAL_SI
            else:
                mantissa = magnitude.numerator
                bits = 0
                while bits < 60 and mantissa % 1024 == 0:
                    mantissa //= 1024
                    bits += 10
                return f"{sign}{mantissa}{_BINARY_SUFFIX.get(bits, '')}"

        mantissa = int(magnitude * _NANO)
        exponent = -9
        while mantissa % 10 == 0:
            mantissa //= 10
            exponent += 1
        aligned = exponent - (exponent % 3)
        mantissa *= 10 ** (exponent - aligned)
        if fmt is Format.DECIMAL_EXPONENT:
            suffix = f"e{aligned}" if aligned else ""
            return f"{sign}{mantissa}{suffix}"
        if aligned > 18:
            mantissa *= 10 ** (aligned - 18)
            aligned = 18
        return f"{sign}{mantissa}{_DECIMAL_SUFFIX[aligned]}"


def parse_quantity(text: str) -> Quantity:
    """Parse a quantity string such as ``250m``, ``1Gi`` or ``3e6``."""
    match = _PATTERN.fullmatch(text.strip()) if isinstance(text, str) else None
    if match is None:
        raise QuantityError(f"quantities must match the regular expression: {text!r}")
    sign, number, suffix = match.groups()
    value = Fraction(Decimal(number))
    if sign == "-":
        value = -value
    suffix = suffix or ""
    if suffix in _BINARY_BITS:
        return Quantity(value * 2 ** _BINARY_BITS[suffix], Format.BINARY_SI)
    if suffix[:1] in ("e", "E") and len(suffix) > 1:
        return Quantity(value * Fraction(10) ** int(suffix[1:]), Format.DECIMAL_EXPONENT)
    exponent = _DECIMAL_EXP.get(suffix, 0)
    return Quantity(value * Fraction(10) ** exponent, Format.DECIMAL_SI)